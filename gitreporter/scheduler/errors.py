"""Scheduler errors and the mapping of run failures onto ledger reasons."""

from __future__ import annotations

from gitreporter.delivery.errors import DeliveryFailedError, InvalidRecipientError
from gitreporter.errors import GitReporterError
from gitreporter.schedules.storage import FailureReason
from gitreporter.source.errors import SourceUnavailableError


class SchedulerStateError(GitReporterError):
    """Raised when the engine lifecycle is driven out of order."""

    @classmethod
    def already_running(cls) -> SchedulerStateError:
        """Return an error for a second ``start`` call."""
        return cls("Scheduler engine is already running")


class StageTimeoutError(GitReporterError, TimeoutError):
    """Raised when one stage of a run exceeds its own budget."""

    @classmethod
    def exceeded(cls, stage: str, budget_s: float) -> StageTimeoutError:
        """Return an error naming the stage and its budget."""
        return cls(f"{stage} exceeded {budget_s:g}s")


def classify_failure(error: BaseException) -> FailureReason:
    """Map an exception raised during a run to its ledger failure reason.

    Examples
    --------
    >>> classify_failure(SourceUnavailableError("down"))
    <FailureReason.SOURCE_UNAVAILABLE: 'SourceUnavailable'>
    >>> classify_failure(KeyError("x"))
    <FailureReason.INTERNAL: 'Internal'>

    """
    if isinstance(error, SourceUnavailableError):
        return FailureReason.SOURCE_UNAVAILABLE
    if isinstance(error, InvalidRecipientError):
        return FailureReason.INVALID_RECIPIENT
    if isinstance(error, DeliveryFailedError):
        return FailureReason.DELIVERY_FAILED
    if isinstance(error, TimeoutError):
        return FailureReason.TIMEOUT
    return FailureReason.INTERNAL


def describe_failure(error: BaseException) -> str:
    """Return ``"<Reason>: <detail>"`` for storage in ``error_detail``."""
    detail = str(error) or type(error).__name__
    return f"{classify_failure(error)}: {detail}"
