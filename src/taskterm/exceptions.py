"""Domain exception hierarchy for the TaskTerm application."""

from __future__ import annotations


class TaskTermError(RuntimeError):
    """Base class for all domain-level task list errors."""


class ValidationError(TaskTermError):
    """Raised when attributes fail a record's field policy."""

    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors: dict[str, str] = dict(errors or {})


class NotFoundError(TaskTermError):
    """Raised when a storage operation targets an unknown record id."""


class PersistenceError(TaskTermError):
    """Raised when the storage adapter fails (I/O, serialization)."""


class PersistenceFormatError(PersistenceError):
    """Raised when a persisted payload cannot be decoded safely."""


class ConfigValidationError(TaskTermError):
    """Raised when configuration cannot be validated safely."""


class UnknownEventError(TaskTermError, ValueError):
    """Raised when an event name is outside the known event set."""


class InvalidTransitionError(TaskTermError):
    """Raised when an item view is asked for a transition its mode forbids."""
