"""Two-layer answer evaluation: local AST checks + optional Claude judgement."""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from typing import Optional

from neurotutor.engine.diagnostics import FeedbackItem, classify_error, explain_error
from neurotutor.engine.models import Question
from neurotutor.errors import AIUnavailableError

logger = logging.getLogger(__name__)

MIN_CODE_LENGTH = 20
SHORT_CODE_LENGTH = 100

LOGIC_NODES = (ast.If, ast.For, ast.While, ast.Return)


@dataclass
class EvalResult:
    passed: bool
    feedback: list[FeedbackItem] = field(default_factory=list)
    encouragement: str = ""
    error_type: Optional[str] = None


def _failure(message: str, line: Optional[int] = None, suggestion: Optional[str] = None) -> EvalResult:
    error_type = classify_error(message) or "logic"
    return EvalResult(
        passed=False,
        feedback=[FeedbackItem(
            line=line, severity="error", message=message,
            suggestion=suggestion or explain_error(message), error_type=error_type,
        )],
        error_type=error_type,
    )


def defined_names(tree: ast.AST) -> set[str]:
    return {
        node.name
        for node in ast.walk(tree)
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef))
    }


class Evaluator:
    def __init__(self, provider=None):
        self.provider = provider

    # --- Layer 1: Local checks (instant) ---

    def check_syntax(self, code: str) -> EvalResult:
        """Parse code and return syntax errors."""
        try:
            ast.parse(code)
            return EvalResult(passed=True)
        except SyntaxError as e:
            return _failure(f"{type(e).__name__}: {e.msg}", line=e.lineno)

    def check_required_functions(self, code: str, starter_code: str) -> EvalResult:
        """Every function or class the starter code declares must still be defined."""
        if not starter_code.strip():
            return EvalResult(passed=True)
        try:
            required = defined_names(ast.parse(starter_code))
        except SyntaxError:
            # Starter snippets with placeholders are allowed to be incomplete
            return EvalResult(passed=True)
        try:
            present = defined_names(ast.parse(code))
        except SyntaxError as e:
            return _failure(f"{type(e).__name__}: {e.msg}", line=e.lineno)

        missing = sorted(required - present)
        if missing:
            return _failure(
                f"NameError: name '{missing[0]}' is not defined",
                suggestion=f"Keep the definition of {', '.join(missing)} from the starter code.",
            )
        return EvalResult(passed=True)

    def check_structure(self, code: str) -> EvalResult:
        """Reject empty or obviously unfinished submissions."""
        stripped = code.strip()
        if not stripped:
            return _failure("Code cannot be empty")
        if len(stripped) < MIN_CODE_LENGTH:
            return _failure("Code appears incomplete")

        try:
            tree = ast.parse(code)
        except SyntaxError as e:
            return _failure(f"{type(e).__name__}: {e.msg}", line=e.lineno)

        if not defined_names(tree):
            return _failure(
                "Code must define a function or class",
                suggestion="Wrap your solution in a def or class block.",
            )
        has_logic = any(isinstance(node, LOGIC_NODES) for node in ast.walk(tree))
        if not has_logic and len(code) < SHORT_CODE_LENGTH:
            return _failure(
                "Code may be incomplete - add logic or return statements",
                suggestion="Return a value or add the control flow the exercise asks for.",
            )
        return EvalResult(passed=True)

    # --- Layer 2: Claude judgement (optional) ---

    async def evaluate(self, code: str, question: Question) -> EvalResult:
        """Run the local checks, then ask the provider if one is configured.

        An unavailable provider leaves the local verdict in place.
        """
        for check in (
            self.check_syntax(code),
            self.check_required_functions(code, question.starter_code),
            self.check_structure(code),
        ):
            if not check.passed:
                return check

        if self.provider is None:
            return EvalResult(passed=True, encouragement="Code looks valid!")

        try:
            judgement = await self.provider.judge_solution(code, question.description)
        except AIUnavailableError as e:
            logger.info("AI judgement unavailable, using local checks: %s", e)
            return EvalResult(passed=True, encouragement="Code looks valid!")

        if judgement.passed:
            return EvalResult(passed=True, encouragement=judgement.reason or "Well done!")
        message = judgement.reason or "The output does not match the expected result."
        error_type = classify_error(message) or "logic"
        return EvalResult(
            passed=False,
            feedback=[FeedbackItem(
                line=None, severity="warning", message=message,
                suggestion=explain_error(message), error_type=error_type,
            )],
            error_type=error_type,
        )
