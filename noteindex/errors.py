"""Error taxonomy shared by all pipeline modules. Codes are stable for logs and metrics."""
from __future__ import annotations


class NoteIndexError(Exception):
    """Base for all pipeline errors.

    code is stable for logging; retryable tells the retry helper whether another
    attempt may succeed; fatal marks persistent misconfiguration that must be escalated
    instead of being skipped per file.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "UNKNOWN",
        retryable: bool = False,
        fatal: bool = False,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.fatal = fatal
        self.details = details or ""


class ReadFailed(NoteIndexError):
    """Note file could not be read (vanished, permission denied, is a directory)."""

    def __init__(self, message: str = "Note file could not be read", **kwargs: object) -> None:
        super().__init__(message, code="READ_FAILED", retryable=False, **kwargs)
