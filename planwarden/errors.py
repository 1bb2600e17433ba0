"""Error taxonomy for planwarden.

Usage and not-found errors are surfaced to the caller. Data errors describe
malformed persisted content and are recovered into findings at the reader
boundary.
"""

from __future__ import annotations


class PlanwardenError(Exception):
    """Base class for all planwarden errors."""


class UsageError(PlanwardenError, ValueError):
    """Invalid invocation shape: unknown command, missing argument."""


class DataError(PlanwardenError, ValueError):
    """Malformed persisted content such as invalid JSON or frontmatter."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class NotFoundError(PlanwardenError, FileNotFoundError):
    """A referenced phase or path does not exist."""
