"""In-memory collaborators for scheduler and delivery tests."""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import typing as typ

from gitreporter.delivery import DeliveryDispatcher
from gitreporter.delivery.models import Channel
from gitreporter.errors import PersistenceError
from gitreporter.scheduler import (
    SchedulerConfig,
    SchedulerEngine,
    SchedulerEngineDependencies,
)
from gitreporter.schedules import RunLedger, ScheduleDraft, ScheduleStore
from gitreporter.source.models import CommitRecord
from gitreporter.templates import TemplateService

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from gitreporter.delivery.models import OutboundMessage
    from gitreporter.delivery.transport import Transport
    from gitreporter.schedules import ScheduleRecord

T0 = dt.datetime(2024, 7, 2, 9, 0, tzinfo=dt.UTC)


def make_commit(
    sha: str,
    message: str,
    *,
    author: str = "Ada",
    date: dt.datetime = T0,
    additions: int = 1,
    deletions: int = 0,
) -> CommitRecord:
    """Build a commit record with sensible defaults."""
    return CommitRecord(
        sha=sha,
        message=message,
        author=author,
        date=date,
        additions=additions,
        deletions=deletions,
    )


def three_commits() -> list[CommitRecord]:
    """Return the three-commit fixture used by end-to-end tests."""
    return [
        make_commit("a" * 40, "feat: add widget", author="Ada", additions=10),
        make_commit(
            "b" * 40, "fix: null check", author="Grace", additions=2, deletions=1
        ),
        make_commit("c" * 40, "docs: readme", author="Ada", additions=3),
    ]


class FixedClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, now: dt.datetime = T0) -> None:
        """Start the clock at ``now``."""
        self.now = now

    def __call__(self) -> dt.datetime:
        """Return the current fake time."""
        return self.now

    def advance(self, delta: dt.timedelta) -> None:
        """Move the clock forward by ``delta``."""
        self.now += delta


@dataclasses.dataclass(slots=True)
class FetchCall:
    """Arguments received by :class:`FakeCommitSource`."""

    source_repo: str
    since: dt.datetime
    until: dt.datetime | None


class FakeCommitSource:
    """Commit source returning canned commits, an error or a delay."""

    def __init__(
        self,
        commits: typ.Sequence[CommitRecord] = (),
        *,
        error: Exception | None = None,
        delay_s: float = 0.0,
    ) -> None:
        """Configure the canned behaviour."""
        self.commits = list(commits)
        self.error = error
        self.delay_s = delay_s
        self.calls: list[FetchCall] = []

    async def fetch_commits(
        self,
        source_repo: str,
        *,
        since: dt.datetime,
        until: dt.datetime | None = None,
    ) -> list[CommitRecord]:
        """Record the call and return the configured outcome."""
        self.calls.append(FetchCall(source_repo=source_repo, since=since, until=until))
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return list(self.commits)


class RecordingTransport:
    """Transport that records messages and returns sequential ids."""

    def __init__(self, *, delay_s: float = 0.0) -> None:
        """Start with an empty outbox."""
        self.sent: list[tuple[str, OutboundMessage]] = []
        self.delay_s = delay_s

    async def send(self, recipient: str, message: OutboundMessage) -> str | None:
        """Record ``message`` for ``recipient``."""
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        self.sent.append((recipient, message))
        return f"msg-{len(self.sent)}"


class FailingTransport:
    """Transport that always raises ``error``."""

    def __init__(self, error: Exception) -> None:
        """Store the error to raise."""
        self.error = error
        self.attempts = 0

    async def send(self, recipient: str, message: OutboundMessage) -> str | None:
        """Raise the configured error."""
        del recipient, message
        self.attempts += 1
        raise self.error


class FlakyFinishStore(ScheduleStore):
    """Schedule store whose ``finish_run`` fails a set number of times."""

    def __init__(self, *args: typ.Any, failures: int, **kwargs: typ.Any) -> None:  # noqa: ANN401
        """Fail the next ``failures`` reschedule writes."""
        super().__init__(*args, **kwargs)
        self.remaining_failures = failures
        self.finish_attempts = 0

    async def finish_run(
        self,
        schedule_id: str,
        token: str,
        *,
        reschedule: typ.Callable[[str], dt.datetime],
    ) -> dt.datetime | None:
        """Raise :class:`PersistenceError` until the failure budget is spent."""
        self.finish_attempts += 1
        if self.remaining_failures > 0:
            self.remaining_failures -= 1
            raise PersistenceError.during("reschedule", RuntimeError("db down"))
        return await super().finish_run(schedule_id, token, reschedule=reschedule)


@dataclasses.dataclass(slots=True)
class EngineHarness:
    """An engine wired to fakes plus handles on its collaborators."""

    engine: SchedulerEngine
    store: ScheduleStore
    ledger: RunLedger
    templates: TemplateService
    source: FakeCommitSource
    clock: FixedClock

    async def add_schedule(
        self,
        *,
        source_repo: str = "acme/widgets",
        cron_expression: str = "0 9 * * *",
        channel: Channel = Channel.EMAIL,
        recipient: str = "team@example.com",
        template_id: str | None = None,
        is_active: bool = True,
        next_run_at: dt.datetime | None = None,
    ) -> ScheduleRecord:
        """Insert a schedule that is due at the current fake time by default."""
        return await self.store.create(
            ScheduleDraft(
                owner_id="user-1",
                source_repo=source_repo,
                cron_expression=cron_expression,
                channel=channel,
                recipient=recipient,
                template_id=template_id,
                is_active=is_active,
                next_run_at=next_run_at or self.clock.now,
            )
        )


def fast_config(**overrides: typ.Any) -> SchedulerConfig:  # noqa: ANN401
    """Return a scheduler configuration with short timings for tests."""
    values: dict[str, typ.Any] = {
        "poll_interval_s": 0.01,
        "reschedule_backoff_s": 0.0,
        "reschedule_max_attempts": 3,
    }
    values.update(overrides)
    return SchedulerConfig(**values)


def build_engine_harness(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    source: FakeCommitSource | None = None,
    transports: typ.Mapping[Channel, Transport] | None = None,
    config: SchedulerConfig | None = None,
    clock: FixedClock | None = None,
    store: ScheduleStore | None = None,
) -> EngineHarness:
    """Wire a :class:`SchedulerEngine` to in-memory collaborators."""
    source = source or FakeCommitSource(three_commits())
    clock = clock or FixedClock()
    store = store or ScheduleStore(session_factory)
    ledger = RunLedger(session_factory)
    templates = TemplateService(session_factory, clock=clock)
    engine = SchedulerEngine(
        SchedulerEngineDependencies(
            store=store,
            ledger=ledger,
            templates=templates,
            source=source,
            dispatcher=DeliveryDispatcher(
                transports
                if transports is not None
                else {Channel.EMAIL: RecordingTransport()}
            ),
            clock=clock,
        ),
        config or fast_config(),
    )
    return EngineHarness(
        engine=engine,
        store=store,
        ledger=ledger,
        templates=templates,
        source=source,
        clock=clock,
    )
