"""Base exception hierarchy shared by every gitreporter package."""

from __future__ import annotations


class GitReporterError(Exception):
    """Base class for all gitreporter errors."""


class ValidationError(GitReporterError, ValueError):
    """Raised synchronously when caller-supplied data is rejected."""


class PersistenceError(GitReporterError):
    """Raised when the schedule database cannot complete a write."""

    @classmethod
    def during(cls, operation: str, cause: BaseException) -> PersistenceError:
        """Wrap a database failure raised while performing ``operation``."""
        return cls(f"{operation} failed: {type(cause).__name__}: {cause}")


__all__ = ["GitReporterError", "PersistenceError", "ValidationError"]
