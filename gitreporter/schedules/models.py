"""Immutable records exchanged with the schedule store and run ledger."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt  # noqa: TC003
import typing as typ

from gitreporter.delivery.models import Channel
from gitreporter.schedules.storage import (
    FailureReason,
    RunOutcome,
    RunTrigger,
)

if typ.TYPE_CHECKING:
    from gitreporter.schedules.storage import RunLedgerEntry, Schedule


@dc.dataclass(frozen=True, slots=True)
class ScheduleRecord:
    """Snapshot of a stored schedule."""

    id: str
    owner_id: str
    source_repo: str
    template_id: str | None
    cron_expression: str
    channel: Channel
    recipient: str
    is_active: bool
    next_run_at: dt.datetime | None
    last_run_at: dt.datetime | None
    last_run_status: RunOutcome | None
    claimed_at: dt.datetime | None
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_row(cls, row: Schedule) -> ScheduleRecord:
        """Copy an ORM row into a detached record."""
        return cls(
            id=row.id,
            owner_id=row.owner_id,
            source_repo=row.source_repo,
            template_id=row.template_id,
            cron_expression=row.cron_expression,
            channel=Channel(row.channel),
            recipient=row.recipient,
            is_active=row.is_active,
            next_run_at=row.next_run_at,
            last_run_at=row.last_run_at,
            last_run_status=(
                None if row.last_run_status is None else RunOutcome(row.last_run_status)
            ),
            claimed_at=row.claimed_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


@dc.dataclass(frozen=True, slots=True)
class ScheduleDraft:
    """Fully validated values for a new schedule row."""

    owner_id: str
    source_repo: str
    cron_expression: str
    channel: Channel
    recipient: str
    template_id: str | None = None
    is_active: bool = True
    next_run_at: dt.datetime | None = None


@dc.dataclass(frozen=True, slots=True)
class ScheduleFilter:
    """Criteria for listing schedules; ``None`` fields do not filter."""

    owner_id: str | None = None
    is_active: bool | None = None
    due_before: dt.datetime | None = None


@dc.dataclass(frozen=True, slots=True)
class RunLedgerDraft:
    """Values for a ledger entry about to be appended."""

    schedule_id: str
    trigger: RunTrigger
    triggered_at: dt.datetime
    completed_at: dt.datetime
    outcome: RunOutcome
    failure_reason: FailureReason | None = None
    error_detail: str | None = None
    delivered_to: str | None = None
    rendered_content_snapshot: str | None = None
    warnings: tuple[dict[str, typ.Any], ...] = ()


@dc.dataclass(frozen=True, slots=True)
class RunLedgerRecord:
    """Stored ledger entry."""

    id: str
    schedule_id: str
    trigger: RunTrigger
    triggered_at: dt.datetime
    completed_at: dt.datetime
    outcome: RunOutcome
    failure_reason: FailureReason | None
    error_detail: str | None
    delivered_to: str | None
    rendered_content_snapshot: str | None
    warnings: tuple[dict[str, typ.Any], ...]

    @property
    def succeeded(self) -> bool:
        """Return whether the attempt delivered its report cleanly."""
        return self.outcome is RunOutcome.SUCCESS

    @classmethod
    def from_row(cls, row: RunLedgerEntry) -> RunLedgerRecord:
        """Copy an ORM row into a detached record."""
        return cls(
            id=row.id,
            schedule_id=row.schedule_id,
            trigger=RunTrigger(row.trigger),
            triggered_at=row.triggered_at,
            completed_at=row.completed_at,
            outcome=RunOutcome(row.outcome),
            failure_reason=(
                None
                if row.failure_reason is None
                else FailureReason(row.failure_reason)
            ),
            error_detail=row.error_detail,
            delivered_to=row.delivered_to,
            rendered_content_snapshot=row.rendered_content_snapshot,
            warnings=tuple(row.warnings or ()),
        )
