"""Append-only run ledger."""

from __future__ import annotations

import typing as typ

from sqlalchemy import select, update

from gitreporter.schedules.errors import ScheduleNotFoundError
from gitreporter.schedules.models import RunLedgerRecord
from gitreporter.schedules.storage import (
    RunLedgerEntry,
    Schedule,
    persistence_transaction,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import CursorResult

    from gitreporter.schedules.models import RunLedgerDraft
    from gitreporter.schedules.storage import SessionFactory

DEFAULT_HISTORY_LIMIT = 50


class RunLedger:
    """Record execution attempts and read them back newest first."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Bind the ledger to a session factory."""
        self._session_factory = session_factory

    async def append(self, draft: RunLedgerDraft) -> RunLedgerRecord:
        """Insert ``draft`` and refresh the schedule's last-run cache.

        Both writes share one transaction so ``last_run_status`` never
        disagrees with the newest ledger entry.

        Raises
        ------
        ScheduleNotFoundError
            If the schedule was deleted while the run was in flight.
        PersistenceError
            If the database rejects either write.

        """
        async with persistence_transaction(
            self._session_factory, "ledger append"
        ) as session:
            result = await session.execute(
                update(Schedule)
                .where(Schedule.id == draft.schedule_id)
                .values(last_run_at=draft.triggered_at, last_run_status=draft.outcome)
                .execution_options(synchronize_session=False)
            )
            if typ.cast("CursorResult[typ.Any]", result).rowcount != 1:
                raise ScheduleNotFoundError(draft.schedule_id)
            row = RunLedgerEntry(
                schedule_id=draft.schedule_id,
                trigger=draft.trigger,
                triggered_at=draft.triggered_at,
                completed_at=draft.completed_at,
                outcome=draft.outcome,
                failure_reason=draft.failure_reason,
                error_detail=draft.error_detail,
                delivered_to=draft.delivered_to,
                rendered_content_snapshot=draft.rendered_content_snapshot,
                warnings=list(draft.warnings),
            )
            session.add(row)
            await session.flush()
            return RunLedgerRecord.from_row(row)

    async def list_for_schedule(
        self, schedule_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[RunLedgerRecord]:
        """Return up to ``limit`` entries for ``schedule_id``, newest first."""
        stmt = (
            select(RunLedgerEntry)
            .where(RunLedgerEntry.schedule_id == schedule_id)
            .order_by(
                RunLedgerEntry.triggered_at.desc(),
                RunLedgerEntry.completed_at.desc(),
            )
            .limit(limit)
        )
        async with persistence_transaction(
            self._session_factory, "ledger history"
        ) as session:
            rows = (await session.scalars(stmt)).all()
            return [RunLedgerRecord.from_row(row) for row in rows]
