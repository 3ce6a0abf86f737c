"""Exception types raised across NeuroTutor."""

from __future__ import annotations


class NeuroTutorError(Exception):
    """Base class for every error NeuroTutor raises on purpose."""


class ProfileSchemaError(NeuroTutorError):
    """A persisted blob does not match the schema version we can read."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Stored '{key}' is not readable: {reason}")
        self.key = key
        self.reason = reason


class AIUnavailableError(NeuroTutorError):
    """The AI provider could not produce a usable answer."""


class CatalogError(NeuroTutorError):
    """A question source could not be read."""
