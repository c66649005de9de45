"""Exceptions raised by the biosignal domain."""

from __future__ import annotations


class BiosignalError(Exception):
    """Base class for biosignal domain failures."""

    retryable = False


class ValidationError(BiosignalError, ValueError):
    """Input violates a structural or range constraint.

    ``field`` names the offending attribute (dotted path) when known.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class DataIntegrityError(BiosignalError):
    """Stored documents for a session are missing or inconsistent."""

    def __init__(self, message: str, *, session_id: str | None = None) -> None:
        self.session_id = session_id
        super().__init__(message)


class InsufficientInputError(BiosignalError):
    """Neither an EEG nor a PPG sub-analysis carried usable dimension scores."""
