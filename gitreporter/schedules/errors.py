"""Errors raised by the schedule store and schedule operations."""

from __future__ import annotations

from gitreporter.errors import GitReporterError, ValidationError


class ScheduleNotFoundError(GitReporterError, LookupError):
    """Raised when a schedule identifier does not exist."""

    def __init__(self, schedule_id: str) -> None:
        """Record the missing schedule identifier."""
        super().__init__(f"Schedule {schedule_id} not found")
        self.schedule_id = schedule_id


class ClaimConflictError(GitReporterError):
    """Raised when a schedule already has an execution in flight."""

    def __init__(self, schedule_id: str) -> None:
        """Record the schedule whose claim was refused."""
        super().__init__(f"Schedule {schedule_id} is already running")
        self.schedule_id = schedule_id


class InvalidScheduleError(ValidationError):
    """Raised when schedule fields fail validation."""

    @classmethod
    def invalid_repository(cls, detail: str) -> InvalidScheduleError:
        """Return an error for a malformed ``owner/name`` source."""
        return cls(detail)

    @classmethod
    def unknown_template(cls, template_id: str) -> InvalidScheduleError:
        """Return an error for a template reference that does not exist."""
        return cls(f"Template {template_id} does not exist")

    @classmethod
    def unknown_field(cls, field: str) -> InvalidScheduleError:
        """Return an error for an update naming a non-editable column."""
        return cls(f"Schedule field {field!r} cannot be updated")


class ScheduleLimitError(ValidationError):
    """Raised when an owner would exceed their active schedule allowance."""

    def __init__(self, owner_id: str, limit: int) -> None:
        """Record the owner and the configured limit."""
        super().__init__(
            f"Owner {owner_id} already has the maximum of {limit} active schedules"
        )
        self.owner_id = owner_id
        self.limit = limit
