"""Unit tests for the run-now Dramatiq actor."""

from __future__ import annotations

import asyncio
import typing as typ

import dramatiq
import pytest
from dramatiq.brokers.stub import StubBroker
from dramatiq.message import Message
from dramatiq.worker import Worker
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from gitreporter.delivery.models import Channel
from gitreporter.scheduler import build_scheduler
from gitreporter.schedules import (
    ClaimConflictError,
    RunLedger,
    RunTrigger,
    ScheduleDraft,
    ScheduleNotFoundError,
    ScheduleStore,
    init_storage,
)
from tests.helpers.fakes import (
    T0,
    FakeCommitSource,
    RecordingTransport,
    fast_config,
    three_commits,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession

    from gitreporter.scheduler import SchedulerComponents
    from gitreporter.schedules import RunLedgerRecord
    from gitreporter.schedules.storage import SessionFactory


@pytest.fixture(autouse=True)
def stub_broker() -> StubBroker:
    """Provide a stub Dramatiq broker for actor tests."""
    broker = StubBroker()
    dramatiq.set_broker(broker)
    return broker


class _ClosableSource(FakeCommitSource):
    """Commit source recording whether it was closed."""

    closed = False

    async def aclose(self) -> None:
        self.closed = True


def _components(
    session_factory: SessionFactory, source: FakeCommitSource | None = None
) -> SchedulerComponents:
    return build_scheduler(
        session_factory,
        fast_config(),
        source=source or FakeCommitSource(three_commits()),
        transports={Channel.EMAIL: RecordingTransport()},
    )


async def _create_schedule(session_factory: SessionFactory) -> str:
    record = await ScheduleStore(session_factory).create(
        ScheduleDraft(
            owner_id="user-1",
            source_repo="acme/widgets",
            cron_expression="0 9 * * *",
            channel=Channel.EMAIL,
            recipient="team@example.com",
            next_run_at=T0,
        )
    )
    return record.id


class TestRunScheduleAsync:
    """The coroutine executed by the actor."""

    @pytest.mark.asyncio
    async def test_runs_schedule_and_closes_adapters(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """A queued run writes a manual ledger entry and closes clients."""
        from gitreporter.scheduler.actor import _run_schedule_async

        schedule_id = await _create_schedule(session_factory)
        source = _ClosableSource(three_commits())

        entry_id = await _run_schedule_async(
            _components(session_factory, source), schedule_id, "user-1"
        )

        history = await RunLedger(session_factory).list_for_schedule(schedule_id)
        assert [entry.id for entry in history] == [entry_id]
        assert history[0].trigger is RunTrigger.MANUAL
        assert source.closed is True

    @pytest.mark.asyncio
    async def test_closes_adapters_on_failure(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Clients are closed even when the schedule is missing."""
        from gitreporter.scheduler.actor import _run_schedule_async
        source = _ClosableSource()

        with pytest.raises(ScheduleNotFoundError):
            await _run_schedule_async(
                _components(session_factory, source), "missing", "user-1"
            )

        assert source.closed is True


class TestRunScheduleJob:
    """The Dramatiq actor entry point."""

    def test_actor_runs_schedule(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Calling the actor executes the schedule in a fresh event loop."""
        from gitreporter.scheduler import actor

        database_url = f"sqlite+aiosqlite:///{tmp_path / 'actor.db'}"

        async def prepare() -> str:
            engine = create_async_engine(database_url)
            try:
                await init_storage(engine)
                factory = async_sessionmaker(engine, expire_on_commit=False)
                return await _create_schedule(factory)
            finally:
                await engine.dispose()

        async def history(schedule_id: str) -> list[RunLedgerRecord]:
            engine = create_async_engine(database_url)
            try:
                factory = async_sessionmaker(engine, expire_on_commit=False)
                return await RunLedger(factory).list_for_schedule(schedule_id)
            finally:
                await engine.dispose()

        schedule_id = asyncio.run(prepare())
        monkeypatch.setattr(actor, "build_scheduler", _components)

        entry_id = actor.run_schedule_job(database_url, schedule_id, "user-1")

        entries = asyncio.run(history(schedule_id))
        assert [entry.id for entry in entries] == [entry_id]

    def test_send_enqueues_message(self) -> None:
        """``send`` enqueues the database URL, schedule id and owner."""
        from gitreporter.scheduler.actor import run_schedule_job

        run_schedule_job.send("sqlite+aiosqlite:///example.db", "s-1", "user-1")

        broker = typ.cast("StubBroker", run_schedule_job.broker)
        queue = broker.queues[run_schedule_job.queue_name]
        decoded = Message.decode(queue.get_nowait())
        assert list(decoded.args) == [
            "sqlite+aiosqlite:///example.db",
            "s-1",
            "user-1",
        ]
        assert decoded.actor_name == "run_schedule_job"

    def test_refused_runs_are_not_retried(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Missing schedules fail once and go straight to the dead letters."""
        from gitreporter.scheduler import actor

        database_url = f"sqlite+aiosqlite:///{tmp_path / 'refused.db'}"

        async def prepare() -> None:
            engine = create_async_engine(database_url)
            try:
                await init_storage(engine)
            finally:
                await engine.dispose()

        asyncio.run(prepare())
        monkeypatch.setattr(actor, "build_scheduler", _components)
        broker = typ.cast("StubBroker", actor.run_schedule_job.broker)
        broker.flush_all()
        worker = Worker(broker, worker_timeout=100)
        worker.start()
        try:
            actor.run_schedule_job.send(database_url, "missing", "user-1")
            broker.join(actor.run_schedule_job.queue_name, fail_fast=False)
            worker.join()
        finally:
            worker.stop()

        [dead] = broker.dead_letters
        assert dead.args[1] == "missing"
        assert "retries" not in dead.options

    def test_refusals_are_declared_final(self) -> None:
        """Claim conflicts and unknown schedules are excluded from retries."""
        from gitreporter.scheduler.actor import run_schedule_job

        assert set(run_schedule_job.options["throws"]) == {
            ClaimConflictError,
            ScheduleNotFoundError,
        }
