"""Poll loop and execution pipeline for scheduled reports.

The engine polls the schedule store for due schedules, claims each one
atomically and executes the claimed runs on worker tasks. Every attempt ends
with exactly one ledger entry followed by a final write that either re-arms
the schedule (scheduled runs) or merely drops the claim (manual runs).

Usage
-----
Wire an engine from its collaborators and run one poll cycle:

>>> from gitreporter.scheduler import (
...     SchedulerEngine,
...     SchedulerEngineDependencies,
... )
>>> engine = SchedulerEngine(
...     SchedulerEngineDependencies(
...         store=store,
...         ledger=ledger,
...         templates=templates,
...         source=source,
...         dispatcher=dispatcher,
...     )
... )
>>> await engine.poll_once()

Or run the loop until asked to stop:

>>> await engine.start()
>>> ...
>>> await engine.stop()

"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses as dc
import datetime as dt
import typing as typ

import msgspec

from gitreporter.common.time import resolve_timezone, utcnow
from gitreporter.cron import next_occurrence
from gitreporter.delivery.models import OutboundMessage
from gitreporter.errors import PersistenceError
from gitreporter.rendering import build_render_context, render_template
from gitreporter.scheduler.config import SchedulerConfig
from gitreporter.scheduler.errors import (
    SchedulerStateError,
    StageTimeoutError,
    classify_failure,
    describe_failure,
)
from gitreporter.scheduler.observability import SchedulerEventLogger
from gitreporter.schedules.errors import ClaimConflictError
from gitreporter.schedules.models import RunLedgerDraft
from gitreporter.schedules.storage import FailureReason, RunOutcome, RunTrigger

if typ.TYPE_CHECKING:
    from gitreporter.delivery.dispatcher import DeliveryDispatcher
    from gitreporter.rendering import RenderContext, RenderResult, RenderWarning
    from gitreporter.schedules.ledger import RunLedger
    from gitreporter.schedules.models import RunLedgerRecord, ScheduleRecord
    from gitreporter.schedules.store import ScheduleStore
    from gitreporter.source.protocol import CommitSource
    from gitreporter.templates.service import TemplateService

type Renderer = typ.Callable[[str, RenderContext], RenderResult]
type Clock = typ.Callable[[], dt.datetime]

_SUBJECT_PREFIX = "Automated report - "


@dc.dataclass(frozen=True, slots=True)
class SchedulerEngineDependencies:
    """Collaborators required by :class:`SchedulerEngine`.

    Attributes
    ----------
    store
        Schedule store providing due lookups and the claim protocol.
    ledger
        Run ledger receiving one entry per attempt.
    templates
        Template service used to resolve a schedule's content.
    source
        Commit source queried for each reporting window.
    dispatcher
        Delivery dispatcher for the schedule's channel.
    renderer
        Function rendering template content against a context.
    clock
        Source of the current aware UTC time.

    """

    store: ScheduleStore
    ledger: RunLedger
    templates: TemplateService
    source: CommitSource
    dispatcher: DeliveryDispatcher
    renderer: Renderer = render_template
    clock: Clock = utcnow


class OperatorAlert(msgspec.Struct, kw_only=True, frozen=True):
    """A schedule whose next run time could not be persisted."""

    schedule_id: str
    raised_at: dt.datetime
    message: str


class SchedulerStatus(msgspec.Struct, kw_only=True, frozen=True):
    """Point-in-time view of the engine for health endpoints."""

    running: bool
    in_flight: int
    last_poll_at: dt.datetime | None
    alerts: tuple[OperatorAlert, ...] = ()


@dc.dataclass(slots=True)
class _Attempt:
    """Mutable state accumulated while one run executes."""

    rendered: str | None = None
    warnings: tuple[RenderWarning, ...] = ()
    delivered_to: str | None = None
    failure_reason: FailureReason | None = None
    error_detail: str | None = None

    def fail(self, reason: FailureReason, detail: str) -> None:
        self.failure_reason = reason
        self.error_detail = f"{reason}: {detail}"

    def fail_with(self, error: BaseException) -> None:
        self.failure_reason = classify_failure(error)
        self.error_detail = describe_failure(error)


class SchedulerEngine:
    """Execute due schedules with at-most-one run per schedule at a time.

    Parameters
    ----------
    dependencies
        Collaborators used by the pipeline.
    config
        Timing and concurrency settings. Defaults to
        :class:`SchedulerConfig` defaults.
    event_logger
        Optional structured event logger.

    """

    def __init__(
        self,
        dependencies: SchedulerEngineDependencies,
        config: SchedulerConfig | None = None,
        *,
        event_logger: SchedulerEventLogger | None = None,
    ) -> None:
        """Configure the engine without starting the poll loop."""
        self._deps = dependencies
        self._config = config or SchedulerConfig()
        self._events = event_logger or SchedulerEventLogger()
        self._zone = resolve_timezone(self._config.timezone)
        self._slots = asyncio.Semaphore(self._config.max_concurrent_runs)
        self._workers: set[asyncio.Task[typ.Any]] = set()
        self._alerts: list[OperatorAlert] = []
        self._last_poll_at: dt.datetime | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def config(self) -> SchedulerConfig:
        """Return the active configuration."""
        return self._config

    @property
    def alerts(self) -> tuple[OperatorAlert, ...]:
        """Return operator alerts raised since the engine was created."""
        return tuple(self._alerts)

    @property
    def running(self) -> bool:
        """Return whether the poll loop is active."""
        return self._loop_task is not None and not self._loop_task.done()

    def status(self) -> SchedulerStatus:
        """Return a snapshot of loop state, in-flight runs and alerts."""
        return SchedulerStatus(
            running=self.running,
            in_flight=len(self._workers),
            last_poll_at=self._last_poll_at,
            alerts=self.alerts,
        )

    async def start(self) -> None:
        """Start polling in a background task.

        Raises
        ------
        SchedulerStateError
            If the engine is already running.

        """
        if self.running:
            raise SchedulerStateError.already_running()
        self._stop_event = asyncio.Event()
        self._loop_task = asyncio.create_task(
            self._poll_loop(self._stop_event), name="gitreporter-scheduler-poll"
        )
        self._events.log_engine_started(poll_interval_s=self._config.poll_interval_s)

    async def stop(self) -> None:
        """Stop polling and wait for in-flight runs to finish."""
        if self._loop_task is None or self._stop_event is None:
            return
        self._stop_event.set()
        await self._loop_task
        self._loop_task = None
        self._stop_event = None
        in_flight = len(self._workers)
        await self.drain()
        self._events.log_engine_stopped(in_flight=in_flight)

    async def drain(self) -> None:
        """Wait until every spawned run has completed."""
        while self._workers:
            await asyncio.gather(*tuple(self._workers), return_exceptions=True)

    async def poll_once(self, *, wait: bool = True) -> list[ScheduleRecord]:
        """Claim every due schedule and start a run for each.

        Parameters
        ----------
        wait
            Wait for the spawned runs before returning. The background loop
            passes ``False`` so slow runs do not delay the next poll.

        Returns
        -------
        list[ScheduleRecord]
            The schedules claimed during this cycle.

        """
        now = self._now()
        self._last_poll_at = now
        due = await self._deps.store.list_due(now)
        claimed: list[ScheduleRecord] = []
        for schedule in due:
            token = await self._acquire_claim(schedule.id)
            if token is None:
                self._events.log_claim_conflict(
                    schedule_id=schedule.id, trigger=RunTrigger.SCHEDULED
                )
                continue
            claimed.append(schedule)
            self._spawn(
                self._run_in_background(schedule.id, token),
                name=f"gitreporter-run-{schedule.id}",
            )
        self._events.log_poll_completed(due=len(due), claimed=len(claimed))
        if wait:
            await self.drain()
        return claimed

    async def run_now(self, schedule_id: str) -> RunLedgerRecord:
        """Execute a schedule immediately without touching ``next_run_at``.

        Raises
        ------
        ScheduleNotFoundError
            If the schedule does not exist.
        ClaimConflictError
            If a run of the schedule is already in flight.
        PersistenceError
            If the ledger entry could not be written.

        """
        await self._deps.store.require(schedule_id)
        token = await self._acquire_claim(schedule_id)
        if token is None:
            self._events.log_claim_conflict(
                schedule_id=schedule_id, trigger=RunTrigger.MANUAL
            )
            raise ClaimConflictError(schedule_id)
        task = self._spawn(
            self._run_claimed(schedule_id, token, RunTrigger.MANUAL),
            name=f"gitreporter-run-now-{schedule_id}",
        )
        return await task

    async def execute(
        self,
        schedule_id: str,
        token: str,
        *,
        trigger: RunTrigger = RunTrigger.SCHEDULED,
    ) -> RunLedgerRecord:
        """Run the pipeline for a claimed schedule and record the outcome.

        Parameters
        ----------
        schedule_id
            The claimed schedule.
        token
            Lease token returned by :meth:`ScheduleStore.claim`.
        trigger
            Whether the run came from the poll loop or a manual request.

        Returns
        -------
        RunLedgerRecord
            The ledger entry written for this attempt.

        Raises
        ------
        PersistenceError
            If the ledger entry could not be written. The claim is released
            without rescheduling so the run is attempted again.
        ScheduleNotFoundError
            If the schedule was deleted while the run was in flight.

        """
        triggered_at = self._now()
        self._events.log_run_started(schedule_id=schedule_id, trigger=trigger)
        attempt = _Attempt()
        budget_s = self._config.execution_timeout_s
        try:
            async with asyncio.timeout(budget_s):
                await self._perform(schedule_id, attempt)
        except StageTimeoutError as exc:
            attempt.fail_with(exc)
        except TimeoutError:
            attempt.fail(FailureReason.TIMEOUT, f"run exceeded {budget_s:g}s budget")
        except Exception as exc:
            attempt.fail_with(exc)

        completed_at = self._now()
        draft = RunLedgerDraft(
            schedule_id=schedule_id,
            trigger=trigger,
            triggered_at=triggered_at,
            completed_at=completed_at,
            outcome=(
                RunOutcome.SUCCESS
                if attempt.failure_reason is None
                else RunOutcome.FAILURE
            ),
            failure_reason=attempt.failure_reason,
            error_detail=attempt.error_detail,
            delivered_to=attempt.delivered_to,
            rendered_content_snapshot=attempt.rendered,
            warnings=tuple(msgspec.to_builtins(w) for w in attempt.warnings),
        )
        try:
            record = await self._deps.ledger.append(draft)
        except Exception:
            await self._persist_with_retry(
                schedule_id,
                "release",
                lambda: self._deps.store.release(schedule_id, token),
            )
            raise

        duration = completed_at - triggered_at
        if record.succeeded:
            self._events.log_run_succeeded(
                schedule_id=schedule_id,
                delivered_to=record.delivered_to,
                duration=duration,
            )
        else:
            self._events.log_run_failed(
                schedule_id=schedule_id,
                reason=str(record.failure_reason),
                detail=record.error_detail,
                duration=duration,
            )

        await self._finalize(schedule_id, token, trigger)
        return record

    async def _perform(self, schedule_id: str, attempt: _Attempt) -> None:
        schedule = await self._deps.store.require(schedule_id)
        content = await self._deps.templates.resolve_content(schedule.template_id)

        window_end = self._now()
        window_start = schedule.last_run_at or window_end - self._config.default_window
        commits = await self._bounded(
            "commit fetch",
            self._config.source_timeout_s,
            self._deps.source.fetch_commits(
                schedule.source_repo, since=window_start, until=window_end
            ),
        )

        context = build_render_context(
            schedule.source_repo,
            commits,
            window_start=window_start,
            window_end=window_end,
            tz=self._zone,
        )
        result = self._deps.renderer(content, context)
        attempt.rendered = result.text
        attempt.warnings = tuple(result.warnings)
        if result.warnings:
            attempt.fail(
                FailureReason.RENDER_WARNING,
                "; ".join(warning.message for warning in result.warnings),
            )

        message = OutboundMessage(
            subject=f"{_SUBJECT_PREFIX}{schedule.source_repo}", body=result.text
        )
        delivery = await self._bounded(
            "delivery",
            self._config.dispatch_timeout_s,
            self._deps.dispatcher.dispatch(
                schedule.channel, schedule.recipient, message
            ),
        )
        attempt.delivered_to = delivery.recipient

    async def _finalize(
        self, schedule_id: str, token: str, trigger: RunTrigger
    ) -> None:
        if trigger is RunTrigger.MANUAL:
            await self._persist_with_retry(
                schedule_id,
                "release",
                lambda: self._deps.store.release(schedule_id, token),
            )
            return

        try:
            next_run_at = await self._persist_with_retry(
                schedule_id,
                "reschedule",
                lambda: self._deps.store.finish_run(
                    schedule_id, token, reschedule=self._next_run_from_now
                ),
            )
        except PersistenceError as exc:
            self._raise_alert(schedule_id, exc)
            return
        self._events.log_rescheduled(schedule_id=schedule_id, next_run_at=next_run_at)

    async def _persist_with_retry[T](
        self,
        schedule_id: str,
        operation: str,
        write: typ.Callable[[], typ.Awaitable[T]],
    ) -> T:
        delay_s = self._config.reschedule_backoff_s
        for attempt in range(1, self._config.reschedule_max_attempts):
            try:
                return await write()
            except PersistenceError as exc:
                self._events.log_persist_retry(
                    schedule_id=schedule_id,
                    operation=operation,
                    attempt=attempt,
                    delay_s=delay_s,
                    error=exc,
                )
            await asyncio.sleep(delay_s)
            delay_s *= 2
        return await write()

    def _raise_alert(self, schedule_id: str, error: PersistenceError) -> None:
        attempts = self._config.reschedule_max_attempts
        self._alerts.append(
            OperatorAlert(
                schedule_id=schedule_id,
                raised_at=self._now(),
                message=(
                    f"next_run_at not persisted after {attempts} attempts: {error}"
                ),
            )
        )
        self._events.log_reschedule_exhausted(
            schedule_id=schedule_id, attempts=attempts, error=error
        )

    def _next_run_from_now(self, cron_expression: str) -> dt.datetime:
        # Anchored on the current time so a missed backlog fires only once.
        return next_occurrence(cron_expression, self._now(), self._zone)

    async def _bounded[T](
        self, stage: str, budget_s: float, awaitable: typ.Awaitable[T]
    ) -> T:
        try:
            async with asyncio.timeout(budget_s):
                return await awaitable
        except TimeoutError as exc:
            raise StageTimeoutError.exceeded(stage, budget_s) from exc

    async def _acquire_claim(self, schedule_id: str) -> str | None:
        await self._slots.acquire()
        try:
            token = await self._deps.store.claim(schedule_id, self._now())
        except BaseException:
            self._slots.release()
            raise
        if token is None:
            self._slots.release()
        return token

    def _spawn[T](
        self, coro: typ.Coroutine[typ.Any, typ.Any, T], *, name: str
    ) -> asyncio.Task[T]:
        task = asyncio.create_task(coro, name=name)
        self._workers.add(task)
        task.add_done_callback(self._workers.discard)
        return task

    async def _run_claimed(
        self, schedule_id: str, token: str, trigger: RunTrigger
    ) -> RunLedgerRecord:
        try:
            return await self.execute(schedule_id, token, trigger=trigger)
        finally:
            self._slots.release()

    async def _run_in_background(self, schedule_id: str, token: str) -> None:
        try:
            await self._run_claimed(schedule_id, token, RunTrigger.SCHEDULED)
        except Exception as exc:
            self._events.log_run_aborted(schedule_id=schedule_id, error=exc)

    async def _poll_loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.poll_once(wait=False)
            except Exception as exc:
                self._events.log_poll_failed(error=exc)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self._config.poll_interval_s
                )

    def _now(self) -> dt.datetime:
        return self._deps.clock()
