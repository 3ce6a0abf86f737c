"""Error message classification into error-type tags and friendly explanations."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import NamedTuple, Optional


@dataclass
class FeedbackItem:
    line: Optional[int]
    severity: str  # "error", "warning", "info", "success"
    message: str
    suggestion: Optional[str] = None
    error_type: Optional[str] = None


class ErrorPattern(NamedTuple):
    regex: re.Pattern
    error_type: str
    template: str


def _pattern(regex: str, error_type: str, template: str) -> ErrorPattern:
    return ErrorPattern(re.compile(regex), error_type, template)


# Checked in order; the first match decides the error type
ERROR_PATTERNS: list[ErrorPattern] = [
    _pattern(r"IndentationError: (.+)", "indentation",
             "Indentation error: {0}. Check your whitespace."),
    _pattern(r"SyntaxError: (.+)", "syntax",
             "Syntax error: {0}. Look for a missing colon or an unclosed bracket."),
    _pattern(r"NameError: name '(\w+)' is not defined", "name",
             "Variable '{0}' is not defined. Did you forget to create it?"),
    _pattern(r"AttributeError: '(\w+)' object has no attribute '(\w+)'", "attribute",
             "'{0}' doesn't have attribute '{1}'."),
    _pattern(r"TypeError: (.+)", "type", "Type error: {0}"),
    _pattern(r"IndexError: (.+)", "index", "Index error: {0}. Check your loop bounds."),
    _pattern(r"KeyError: (.+)", "key", "Key {0} is missing from the dictionary."),
    _pattern(r"ValueError: (.+)", "value", "Value error: {0}"),
    _pattern(r"ZeroDivisionError", "value", "Division by zero. Guard the denominator."),
    _pattern(r"RecursionError", "logic", "Maximum recursion depth exceeded. Check your base case."),
    _pattern(r"expected .+ but got|Test failed|[Ww]rong answer", "logic",
             "The output does not match the expected result."),
]


def _match(text: str) -> Optional[tuple[ErrorPattern, re.Match]]:
    if not text:
        return None
    for pattern in ERROR_PATTERNS:
        match = pattern.regex.search(text)
        if match:
            return pattern, match
    return None


def classify_error(text: str) -> Optional[str]:
    """Return the error-type tag of the first pattern that matches ``text``."""
    found = _match(text)
    return found[0].error_type if found else None


def explain_error(text: str) -> Optional[str]:
    """Learner-facing explanation for ``text``, or None when no pattern matches."""
    found = _match(text)
    if found is None:
        return None
    pattern, match = found
    return pattern.template.format(*match.groups())
