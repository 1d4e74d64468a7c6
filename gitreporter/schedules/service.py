"""User-facing schedule operations with synchronous validation.

Every write is validated before it reaches the store: the cron expression is
parsed, the recipient is checked against the channel, the repository slug is
split and the template reference is resolved. Validation failures surface as
:class:`~gitreporter.errors.ValidationError` subclasses.

Usage
-----
>>> service = ScheduleService(
...     ScheduleServiceDependencies(
...         store=store, ledger=ledger, engine=engine, config=SchedulerConfig()
...     )
... )
>>> schedule = await service.create_schedule(
...     "user-1",
...     ScheduleSpec(
...         source_repo="acme/widgets",
...         cron_expression="0 9 * * 1",
...         channel=Channel.EMAIL,
...         recipient="team@example.com",
...     ),
... )

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ

from gitreporter.common.slug import parse_repo_slug
from gitreporter.common.time import resolve_timezone, utcnow
from gitreporter.cron import next_occurrence, validate_cron_expression
from gitreporter.delivery.models import Channel
from gitreporter.delivery.recipients import validate_recipient
from gitreporter.logging import get_logger, log_info
from gitreporter.schedules.errors import (
    InvalidScheduleError,
    ScheduleLimitError,
    ScheduleNotFoundError,
)
from gitreporter.schedules.ledger import DEFAULT_HISTORY_LIMIT
from gitreporter.schedules.models import ScheduleDraft, ScheduleFilter

if typ.TYPE_CHECKING:
    from gitreporter.scheduler.config import SchedulerConfig
    from gitreporter.scheduler.engine import SchedulerEngine
    from gitreporter.schedules.ledger import RunLedger
    from gitreporter.schedules.models import RunLedgerRecord, ScheduleRecord
    from gitreporter.schedules.store import ScheduleStore

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class ScheduleSpec:
    """Caller-supplied fields for a new schedule."""

    source_repo: str
    cron_expression: str
    channel: Channel | str
    recipient: str
    template_id: str | None = None
    is_active: bool = True


@dc.dataclass(frozen=True, slots=True)
class SchedulePatch:
    """Partial update for a schedule; ``None`` leaves a field unchanged.

    Set ``clear_template`` to drop the template reference and fall back to
    the default content.
    """

    source_repo: str | None = None
    cron_expression: str | None = None
    channel: Channel | str | None = None
    recipient: str | None = None
    template_id: str | None = None
    clear_template: bool = False
    is_active: bool | None = None


@dc.dataclass(frozen=True, slots=True)
class ScheduleServiceDependencies:
    """Collaborators required by :class:`ScheduleService`."""

    store: ScheduleStore
    ledger: RunLedger
    engine: SchedulerEngine
    config: SchedulerConfig
    clock: typ.Callable[[], dt.datetime] = utcnow


def _validated_repo(source_repo: str) -> str:
    try:
        owner, name = parse_repo_slug(source_repo)
    except ValueError as exc:
        raise InvalidScheduleError.invalid_repository(str(exc)) from exc
    return f"{owner}/{name}"


class ScheduleService:
    """Create, edit, toggle, run and inspect schedules."""

    def __init__(self, dependencies: ScheduleServiceDependencies) -> None:
        """Bind the service to its collaborators."""
        self._store = dependencies.store
        self._ledger = dependencies.ledger
        self._engine = dependencies.engine
        self._config = dependencies.config
        self._clock = dependencies.clock
        self._zone = resolve_timezone(dependencies.config.timezone)

    async def create_schedule(
        self, owner_id: str, spec: ScheduleSpec
    ) -> ScheduleRecord:
        """Validate ``spec`` and persist a new schedule for ``owner_id``.

        Raises
        ------
        InvalidCronExpressionError
            If the cron expression is malformed or can never fire.
        InvalidRecipientError
            If the recipient does not match the channel.
        InvalidScheduleError
            If the repository slug is malformed or the template is unknown.
        ScheduleLimitError
            If ``owner_id`` already holds the maximum of active schedules.

        """
        cron_expression = validate_cron_expression(spec.cron_expression)
        recipient = validate_recipient(spec.channel, spec.recipient)
        source_repo = _validated_repo(spec.source_repo)
        if spec.template_id is not None:
            await self._require_template(spec.template_id, owner_id)
        if spec.is_active:
            await self._require_capacity(owner_id)

        record = await self._store.create(
            ScheduleDraft(
                owner_id=owner_id,
                source_repo=source_repo,
                cron_expression=cron_expression,
                channel=Channel(spec.channel),
                recipient=recipient,
                template_id=spec.template_id,
                is_active=spec.is_active,
                next_run_at=(
                    self._next_run_at(cron_expression) if spec.is_active else None
                ),
            )
        )
        log_info(
            logger,
            "Created schedule %s for %s (%s) next_run_at=%s",
            record.id,
            record.source_repo,
            record.cron_expression,
            record.next_run_at,
        )
        return record

    async def update_schedule(
        self, schedule_id: str, owner_id: str, patch: SchedulePatch
    ) -> ScheduleRecord:
        """Revalidate and apply ``patch`` to a schedule owned by ``owner_id``.

        ``next_run_at`` is recomputed from the current time whenever the cron
        expression changes or the schedule is activated, and cleared when it
        is deactivated.

        Raises
        ------
        ScheduleNotFoundError
            If the schedule does not exist or belongs to another owner.

        """
        current = await self._require_owned(schedule_id, owner_id)
        changes: dict[str, object] = {}

        if patch.source_repo is not None:
            changes["source_repo"] = _validated_repo(patch.source_repo)

        cron_expression = current.cron_expression
        if patch.cron_expression is not None:
            cron_expression = validate_cron_expression(patch.cron_expression)
            changes["cron_expression"] = cron_expression

        if patch.channel is not None or patch.recipient is not None:
            channel = patch.channel if patch.channel is not None else current.channel
            recipient = (
                patch.recipient if patch.recipient is not None else current.recipient
            )
            changes["recipient"] = validate_recipient(channel, recipient)
            changes["channel"] = Channel(channel)

        if patch.clear_template:
            changes["template_id"] = None
        elif patch.template_id is not None:
            await self._require_template(patch.template_id, owner_id)
            changes["template_id"] = patch.template_id

        is_active = current.is_active if patch.is_active is None else patch.is_active
        activating = is_active and not current.is_active
        if activating:
            await self._require_capacity(current.owner_id)
        changes["is_active"] = is_active
        if is_active and (activating or "cron_expression" in changes):
            changes["next_run_at"] = self._next_run_at(cron_expression)

        record = await self._store.update(schedule_id, changes)
        log_info(
            logger,
            "Updated schedule %s fields=%s next_run_at=%s",
            schedule_id,
            ",".join(sorted(changes)),
            record.next_run_at,
        )
        return record

    async def delete_schedule(self, schedule_id: str, owner_id: str) -> None:
        """Delete a schedule and its run history.

        Raises
        ------
        ScheduleNotFoundError
            If the schedule does not exist or belongs to another owner.

        """
        await self._require_owned(schedule_id, owner_id)
        if not await self._store.delete(schedule_id):
            raise ScheduleNotFoundError(schedule_id)
        log_info(logger, "Deleted schedule %s", schedule_id)

    async def toggle_active(self, schedule_id: str, owner_id: str) -> ScheduleRecord:
        """Flip a schedule between active and inactive."""
        current = await self._require_owned(schedule_id, owner_id)
        return await self.update_schedule(
            schedule_id, owner_id, SchedulePatch(is_active=not current.is_active)
        )

    async def activate(self, schedule_id: str, owner_id: str) -> ScheduleRecord:
        """Activate a schedule, arming its next run from now."""
        return await self.update_schedule(
            schedule_id, owner_id, SchedulePatch(is_active=True)
        )

    async def deactivate(self, schedule_id: str, owner_id: str) -> ScheduleRecord:
        """Deactivate a schedule; it will not be polled until reactivated."""
        return await self.update_schedule(
            schedule_id, owner_id, SchedulePatch(is_active=False)
        )

    async def run_now(self, schedule_id: str, owner_id: str) -> RunLedgerRecord:
        """Execute a schedule immediately; see :meth:`SchedulerEngine.run_now`."""
        await self._require_owned(schedule_id, owner_id)
        return await self._engine.run_now(schedule_id)

    async def list_run_history(
        self, schedule_id: str, owner_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[RunLedgerRecord]:
        """Return up to ``limit`` ledger entries for a schedule, newest first."""
        await self._require_owned(schedule_id, owner_id)
        return await self._ledger.list_for_schedule(schedule_id, limit=limit)

    async def get_schedule(self, schedule_id: str, owner_id: str) -> ScheduleRecord:
        """Return a schedule owned by ``owner_id``.

        Another owner's schedule is reported as missing.
        """
        return await self._require_owned(schedule_id, owner_id)

    async def list_schedules(self, owner_id: str) -> list[ScheduleRecord]:
        """Return every schedule owned by ``owner_id``."""
        return await self._store.list_schedules(ScheduleFilter(owner_id=owner_id))

    def _next_run_at(self, cron_expression: str) -> dt.datetime:
        return next_occurrence(cron_expression, self._clock(), self._zone)

    async def _require_owned(self, schedule_id: str, owner_id: str) -> ScheduleRecord:
        record = await self._store.require(schedule_id)
        if record.owner_id != owner_id:
            raise ScheduleNotFoundError(schedule_id)
        return record

    async def _require_template(self, template_id: str, owner_id: str) -> None:
        if not await self._store.template_available(template_id, owner_id):
            raise InvalidScheduleError.unknown_template(template_id)

    async def _require_capacity(self, owner_id: str) -> None:
        limit = self._config.max_active_schedules_per_owner
        if await self._store.count_active(owner_id) >= limit:
            raise ScheduleLimitError(owner_id, limit)
