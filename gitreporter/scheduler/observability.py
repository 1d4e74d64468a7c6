"""Emit structured observability events for the scheduler engine.

Events are logged as ``[event.type] key=value ...`` lines so they can be
grepped and parsed without a structured logging backend.

Usage
-----
>>> events = SchedulerEventLogger()
>>> events.log_run_started(schedule_id="s-1", trigger="manual")

"""

from __future__ import annotations

import enum
import typing as typ

from gitreporter.logging import (
    get_logger,
    log_debug,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import datetime as dt

logger = get_logger(__name__)


class SchedulerEventType(enum.StrEnum):
    """Structured log event types for scheduler activity."""

    ENGINE_STARTED = "scheduler.engine.started"
    ENGINE_STOPPED = "scheduler.engine.stopped"
    POLL_COMPLETED = "scheduler.poll.completed"
    POLL_FAILED = "scheduler.poll.failed"
    CLAIM_CONFLICT = "scheduler.claim.conflict"
    RUN_STARTED = "scheduler.run.started"
    RUN_SUCCEEDED = "scheduler.run.succeeded"
    RUN_FAILED = "scheduler.run.failed"
    RUN_ABORTED = "scheduler.run.aborted"
    RESCHEDULED = "scheduler.reschedule.completed"
    PERSIST_RETRY = "scheduler.persist.retry"
    RESCHEDULE_EXHAUSTED = "scheduler.reschedule.exhausted"


class SchedulerEventLogger:
    """Emit scheduler lifecycle events via femtologging."""

    def log_engine_started(self, *, poll_interval_s: float) -> None:
        """Log that the poll loop has started."""
        log_info(
            logger,
            "[%s] poll_interval_s=%.1f",
            SchedulerEventType.ENGINE_STARTED,
            poll_interval_s,
        )

    def log_engine_stopped(self, *, in_flight: int) -> None:
        """Log that the poll loop has stopped after draining runs."""
        log_info(
            logger, "[%s] drained=%d", SchedulerEventType.ENGINE_STOPPED, in_flight
        )

    def log_poll_completed(self, *, due: int, claimed: int) -> None:
        """Log the result of one poll cycle at DEBUG level."""
        log_debug(
            logger,
            "[%s] due=%d claimed=%d",
            SchedulerEventType.POLL_COMPLETED,
            due,
            claimed,
        )

    def log_poll_failed(self, *, error: BaseException) -> None:
        """Log a poll cycle that could not list or claim schedules."""
        log_error(
            logger,
            "[%s] error_type=%s error_message=%s",
            SchedulerEventType.POLL_FAILED,
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_claim_conflict(self, *, schedule_id: str, trigger: str) -> None:
        """Log a refused claim; this is expected under contention."""
        log_debug(
            logger,
            "[%s] schedule_id=%s trigger=%s",
            SchedulerEventType.CLAIM_CONFLICT,
            schedule_id,
            trigger,
        )

    def log_run_started(self, *, schedule_id: str, trigger: str) -> None:
        """Log the start of an execution attempt.

        Parameters
        ----------
        schedule_id
            Identifier of the claimed schedule.
        trigger
            ``scheduled`` or ``manual``.

        """
        log_info(
            logger,
            "[%s] schedule_id=%s trigger=%s",
            SchedulerEventType.RUN_STARTED,
            schedule_id,
            trigger,
        )

    def log_run_succeeded(
        self, *, schedule_id: str, delivered_to: str | None, duration: dt.timedelta
    ) -> None:
        """Log a run that delivered its report."""
        log_info(
            logger,
            "[%s] schedule_id=%s delivered_to=%s duration_seconds=%.3f",
            SchedulerEventType.RUN_SUCCEEDED,
            schedule_id,
            delivered_to,
            duration.total_seconds(),
        )

    def log_run_failed(
        self,
        *,
        schedule_id: str,
        reason: str,
        detail: str | None,
        duration: dt.timedelta,
    ) -> None:
        """Log a run recorded as a failure in the ledger."""
        log_warning(
            logger,
            "[%s] schedule_id=%s reason=%s duration_seconds=%.3f detail=%s",
            SchedulerEventType.RUN_FAILED,
            schedule_id,
            reason,
            duration.total_seconds(),
            detail,
        )

    def log_run_aborted(self, *, schedule_id: str, error: BaseException) -> None:
        """Log a run whose outcome could not be recorded."""
        log_error(
            logger,
            "[%s] schedule_id=%s error_type=%s error_message=%s",
            SchedulerEventType.RUN_ABORTED,
            schedule_id,
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_rescheduled(
        self, *, schedule_id: str, next_run_at: dt.datetime | None
    ) -> None:
        """Log the next run time armed after a scheduled run."""
        log_info(
            logger,
            "[%s] schedule_id=%s next_run_at=%s",
            SchedulerEventType.RESCHEDULED,
            schedule_id,
            None if next_run_at is None else next_run_at.isoformat(),
        )

    def log_persist_retry(
        self,
        *,
        schedule_id: str,
        operation: str,
        attempt: int,
        delay_s: float,
        error: BaseException,
    ) -> None:
        """Log a failed final write that will be retried."""
        log_warning(
            logger,
            "[%s] schedule_id=%s operation=%s attempt=%d retry_in_s=%.2f error=%s",
            SchedulerEventType.PERSIST_RETRY,
            schedule_id,
            operation,
            attempt,
            delay_s,
            str(error),
        )

    def log_reschedule_exhausted(
        self, *, schedule_id: str, attempts: int, error: BaseException
    ) -> None:
        """Raise the operator alert for a schedule left at a stale run time."""
        log_error(
            logger,
            "[%s] schedule_id=%s attempts=%d error_type=%s error_message=%s",
            SchedulerEventType.RESCHEDULE_EXHAUSTED,
            schedule_id,
            attempts,
            type(error).__name__,
            str(error),
            exc_info=error,
        )
