"""Unit tests for ``SchedulerEventLogger``."""

from __future__ import annotations

import datetime as dt

from gitreporter.scheduler import SchedulerEventLogger, SchedulerEventType
from tests.helpers.femtologging_capture import capture_femto_logs

LOGGER_NAME = "gitreporter.scheduler.observability"


class TestSchedulerEventLogger:
    """Event formatting and levels."""

    def test_run_succeeded_event(self) -> None:
        """Successful runs log the recipient and duration."""
        events = SchedulerEventLogger()

        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_run_succeeded(
                schedule_id="s-1",
                delivered_to="team@example.com",
                duration=dt.timedelta(milliseconds=1500),
            )
            record = capture.wait_for_message(str(SchedulerEventType.RUN_SUCCEEDED))

        assert record.level == "INFO"
        assert record.message == (
            "[scheduler.run.succeeded] schedule_id=s-1 "
            "delivered_to=team@example.com duration_seconds=1.500"
        )

    def test_run_failed_is_a_warning(self) -> None:
        """Failed runs log at WARNING with reason and detail."""
        events = SchedulerEventLogger()

        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_run_failed(
                schedule_id="s-1",
                reason="SourceUnavailable",
                detail="SourceUnavailable: GitHub GraphQL HTTP 502",
                duration=dt.timedelta(seconds=2),
            )
            record = capture.wait_for_message(str(SchedulerEventType.RUN_FAILED))

        assert record.level == "WARN"
        assert "reason=SourceUnavailable" in record.message
        assert record.message.endswith(
            "detail=SourceUnavailable: GitHub GraphQL HTTP 502"
        )

    def test_rescheduled_event_formats_time(self) -> None:
        """The next run time is logged in ISO format."""
        events = SchedulerEventLogger()
        next_run_at = dt.datetime(2024, 7, 3, 9, 0, tzinfo=dt.UTC)

        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_rescheduled(schedule_id="s-1", next_run_at=next_run_at)
            events.log_rescheduled(schedule_id="s-2", next_run_at=None)
            capture.wait_for_count(2)

        assert capture.messages() == [
            "[scheduler.reschedule.completed] schedule_id=s-1 "
            "next_run_at=2024-07-03T09:00:00+00:00",
            "[scheduler.reschedule.completed] schedule_id=s-2 next_run_at=None",
        ]

    def test_reschedule_exhausted_is_an_error(self) -> None:
        """Exhausted retries log at ERROR with the exception attached."""
        events = SchedulerEventLogger()
        error = RuntimeError("db down")

        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_reschedule_exhausted(schedule_id="s-1", attempts=5, error=error)
            record = capture.wait_for_message(
                str(SchedulerEventType.RESCHEDULE_EXHAUSTED)
            )

        assert record.level == "ERROR"
        assert "attempts=5" in record.message
        assert "error_type=RuntimeError error_message=db down" in record.message

    def test_claim_conflict_is_debug(self) -> None:
        """Claim conflicts are expected and logged at DEBUG."""
        events = SchedulerEventLogger()

        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_claim_conflict(schedule_id="s-1", trigger="manual")
            record = capture.wait_for_message(str(SchedulerEventType.CLAIM_CONFLICT))

        assert record.level == "DEBUG"
        assert record.message.endswith("schedule_id=s-1 trigger=manual")
