"""Schedule persistence, including the atomic execution claim.

All coordination between the poll loop, manual runs and user edits happens
through conditional UPDATE statements here rather than in-process locks, so
two callers racing for the same schedule are arbitrated by the database.
"""

from __future__ import annotations

import datetime as dt
import typing as typ
import uuid

from sqlalchemy import delete, func, or_, select, update

from gitreporter.schedules.errors import InvalidScheduleError, ScheduleNotFoundError
from gitreporter.schedules.models import ScheduleFilter, ScheduleRecord
from gitreporter.schedules.storage import (
    ReportTemplate,
    RunLedgerEntry,
    Schedule,
    persistence_transaction,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import CursorResult

    from gitreporter.schedules.models import ScheduleDraft
    from gitreporter.schedules.storage import SessionFactory

DEFAULT_CLAIM_TTL = dt.timedelta(minutes=5)

EDITABLE_FIELDS = frozenset(
    {
        "source_repo",
        "template_id",
        "cron_expression",
        "channel",
        "recipient",
        "is_active",
        "next_run_at",
    }
)


def _rowcount(result: object) -> int:
    return typ.cast("CursorResult[typ.Any]", result).rowcount


class ScheduleStore:
    """CRUD over schedule rows plus the claim, release and finish protocol.

    Parameters
    ----------
    session_factory
        Async session factory bound to the schedule database.
    claim_ttl
        Age after which an unreleased claim is considered abandoned (for
        example after a crash) and may be taken over.

    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        claim_ttl: dt.timedelta = DEFAULT_CLAIM_TTL,
    ) -> None:
        """Bind the store to a session factory."""
        self._session_factory = session_factory
        self._claim_ttl = claim_ttl

    @property
    def session_factory(self) -> SessionFactory:
        """Return the session factory backing this store."""
        return self._session_factory

    async def list_schedules(
        self, criteria: ScheduleFilter | None = None
    ) -> list[ScheduleRecord]:
        """Return schedules matching ``criteria`` ordered by creation time."""
        criteria = criteria or ScheduleFilter()
        stmt = select(Schedule).order_by(Schedule.created_at, Schedule.id)
        if criteria.owner_id is not None:
            stmt = stmt.where(Schedule.owner_id == criteria.owner_id)
        if criteria.is_active is not None:
            stmt = stmt.where(Schedule.is_active.is_(criteria.is_active))
        if criteria.due_before is not None:
            stmt = stmt.where(Schedule.next_run_at <= criteria.due_before)
        async with persistence_transaction(self._session_factory, "list") as session:
            rows = (await session.scalars(stmt)).all()
            return [ScheduleRecord.from_row(row) for row in rows]

    async def list_due(self, now: dt.datetime) -> list[ScheduleRecord]:
        """Return active schedules due at ``now`` that are not held by a live claim."""
        stale_before = now - self._claim_ttl
        stmt = (
            select(Schedule)
            .where(
                Schedule.is_active.is_(True),
                Schedule.next_run_at.is_not(None),
                Schedule.next_run_at <= now,
                or_(
                    Schedule.claimed_at.is_(None),
                    Schedule.claimed_at < stale_before,
                ),
            )
            .order_by(Schedule.next_run_at, Schedule.id)
        )
        async with persistence_transaction(
            self._session_factory, "list due"
        ) as session:
            rows = (await session.scalars(stmt)).all()
            return [ScheduleRecord.from_row(row) for row in rows]

    async def get(self, schedule_id: str) -> ScheduleRecord | None:
        """Return the schedule with ``schedule_id`` or ``None``."""
        async with persistence_transaction(self._session_factory, "get") as session:
            row = await session.get(Schedule, schedule_id)
            return None if row is None else ScheduleRecord.from_row(row)

    async def require(self, schedule_id: str) -> ScheduleRecord:
        """Return the schedule with ``schedule_id`` or raise."""
        record = await self.get(schedule_id)
        if record is None:
            raise ScheduleNotFoundError(schedule_id)
        return record

    async def create(self, draft: ScheduleDraft) -> ScheduleRecord:
        """Insert a validated schedule and return the stored record."""
        async with persistence_transaction(self._session_factory, "create") as session:
            row = Schedule(
                owner_id=draft.owner_id,
                source_repo=draft.source_repo,
                template_id=draft.template_id,
                cron_expression=draft.cron_expression,
                channel=draft.channel,
                recipient=draft.recipient,
                is_active=draft.is_active,
                next_run_at=draft.next_run_at if draft.is_active else None,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return ScheduleRecord.from_row(row)

    async def update(
        self, schedule_id: str, changes: typ.Mapping[str, object]
    ) -> ScheduleRecord:
        """Apply column ``changes`` to a schedule and return the new state.

        Raises
        ------
        InvalidScheduleError
            If ``changes`` names a column that is not user editable.
        ScheduleNotFoundError
            If the schedule does not exist.

        """
        for field in changes:
            if field not in EDITABLE_FIELDS:
                raise InvalidScheduleError.unknown_field(field)
        async with persistence_transaction(self._session_factory, "update") as session:
            row = await session.get(Schedule, schedule_id)
            if row is None:
                raise ScheduleNotFoundError(schedule_id)
            for field, value in changes.items():
                setattr(row, field, value)
            if not row.is_active:
                row.next_run_at = None
            await session.flush()
            await session.refresh(row)
            return ScheduleRecord.from_row(row)

    async def delete(self, schedule_id: str) -> bool:
        """Hard-delete a schedule and its ledger; return whether it existed."""
        async with persistence_transaction(self._session_factory, "delete") as session:
            await session.execute(
                delete(RunLedgerEntry).where(RunLedgerEntry.schedule_id == schedule_id)
            )
            result = await session.execute(
                delete(Schedule).where(Schedule.id == schedule_id)
            )
            return _rowcount(result) == 1

    async def count_active(self, owner_id: str) -> int:
        """Return how many active schedules ``owner_id`` has."""
        stmt = (
            select(func.count())
            .select_from(Schedule)
            .where(Schedule.owner_id == owner_id, Schedule.is_active.is_(True))
        )
        async with persistence_transaction(self._session_factory, "count") as session:
            return int(await session.scalar(stmt) or 0)

    async def template_available(self, template_id: str, owner_id: str) -> bool:
        """Return whether ``owner_id`` may attach ``template_id`` to a schedule.

        System templates are available to everyone; owner templates only to
        their owner.
        """
        async with persistence_transaction(
            self._session_factory, "template lookup"
        ) as session:
            row = await session.get(ReportTemplate, template_id)
            return row is not None and (row.is_default or row.owner_id == owner_id)

    async def claim(self, schedule_id: str, now: dt.datetime) -> str | None:
        """Atomically mark a schedule as executing.

        Returns
        -------
        str | None
            A lease token to pass to :meth:`release` or :meth:`finish_run`,
            or ``None`` if another execution holds a live claim or the
            schedule does not exist.

        """
        token = str(uuid.uuid4())
        stmt = (
            update(Schedule)
            .where(
                Schedule.id == schedule_id,
                or_(
                    Schedule.claimed_at.is_(None),
                    Schedule.claimed_at < now - self._claim_ttl,
                ),
            )
            .values(claimed_at=now, claim_token=token)
            .execution_options(synchronize_session=False)
        )
        async with persistence_transaction(self._session_factory, "claim") as session:
            result = await session.execute(stmt)
            return token if _rowcount(result) == 1 else None

    async def release(self, schedule_id: str, token: str) -> bool:
        """Drop the claim identified by ``token`` without rescheduling."""
        stmt = (
            update(Schedule)
            .where(Schedule.id == schedule_id, Schedule.claim_token == token)
            .values(claimed_at=None, claim_token=None)
            .execution_options(synchronize_session=False)
        )
        async with persistence_transaction(
            self._session_factory, "release"
        ) as session:
            result = await session.execute(stmt)
            return _rowcount(result) == 1

    async def finish_run(
        self,
        schedule_id: str,
        token: str,
        *,
        reschedule: typ.Callable[[str], dt.datetime],
    ) -> dt.datetime | None:
        """Arm the next occurrence and release the claim in one write.

        ``reschedule`` receives the schedule's current cron expression, so an
        edit made while the run was in flight is honoured. Schedules that
        were deactivated mid-run are released without being re-armed.

        Returns
        -------
        dt.datetime | None
            The new ``next_run_at``, or ``None`` when the schedule is inactive,
            was deleted, or the claim is no longer held.

        """
        async with persistence_transaction(
            self._session_factory, "reschedule"
        ) as session:
            row = await session.get(Schedule, schedule_id, with_for_update=True)
            if row is None or row.claim_token != token:
                return None
            next_run_at = reschedule(row.cron_expression) if row.is_active else None
            row.next_run_at = next_run_at
            row.claimed_at = None
            row.claim_token = None
            return next_run_at
