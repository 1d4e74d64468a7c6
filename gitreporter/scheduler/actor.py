"""Dramatiq actor for out-of-process run-now requests.

API handlers enqueue :func:`run_schedule_job` instead of awaiting a run
inline. The worker builds the scheduler from environment configuration and
executes the schedule once through the same claim protocol as the poll loop,
so a queued request racing a scheduled run is refused rather than doubled.
Refused runs and unknown or foreign schedules are final and never retried.

Importing this module binds the actor to the broker returned by
:func:`ensure_broker_configured`.

Usage
-----
>>> run_schedule_job.send(
...     database_url="postgresql+asyncpg://...",
...     schedule_id="550e8400-e29b-41d4-a716-446655440000",
...     owner_id="user-1",
... )

"""

from __future__ import annotations

import asyncio
import threading
import typing as typ

import dramatiq
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from gitreporter.logging import get_logger, log_info
from gitreporter.scheduler._broker import ensure_broker_configured
from gitreporter.scheduler.factory import build_scheduler
from gitreporter.schedules.errors import ClaimConflictError, ScheduleNotFoundError

if typ.TYPE_CHECKING:
    from gitreporter.scheduler.factory import SchedulerComponents
    from gitreporter.schedules.storage import SessionFactory

logger = get_logger(__name__)

_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_SESSION_FACTORY_CACHE: dict[str, SessionFactory] = {}
_CACHE_LOCK = threading.Lock()


def _get_or_create_session_factory(database_url: str) -> SessionFactory:
    """Return the cached session factory for ``database_url``.

    Thread-safe. Each actor call runs in a fresh event loop, so the engine
    does not pool connections between calls.
    """
    with _CACHE_LOCK:
        if database_url not in _SESSION_FACTORY_CACHE:
            engine = create_async_engine(database_url, poolclass=NullPool)
            _ENGINE_CACHE[database_url] = engine
            _SESSION_FACTORY_CACHE[database_url] = async_sessionmaker(
                engine, expire_on_commit=False
            )
        return _SESSION_FACTORY_CACHE[database_url]


async def _run_schedule_async(
    components: SchedulerComponents, schedule_id: str, owner_id: str
) -> str:
    """Run ``schedule_id`` once and return the ledger entry id.

    The adapters' HTTP clients are closed before returning, whatever the
    outcome.
    """
    try:
        record = await components.schedules.run_now(schedule_id, owner_id)
    finally:
        await components.aclose()
    log_info(
        logger,
        "Queued run of schedule %s finished with %s (entry %s)",
        schedule_id,
        record.outcome,
        record.id,
    )
    return record.id


@dramatiq.actor(
    broker=ensure_broker_configured(),
    throws=(ClaimConflictError, ScheduleNotFoundError),
)
def run_schedule_job(database_url: str, schedule_id: str, owner_id: str) -> str:
    """Execute a schedule immediately on a Dramatiq worker.

    Parameters
    ----------
    database_url
        SQLAlchemy URL for the schedule database.
    schedule_id
        The schedule to run.
    owner_id
        Owner on whose behalf the run was requested.

    Returns
    -------
    str
        Identifier of the ledger entry written for the run.

    Raises
    ------
    ScheduleNotFoundError
        If the schedule does not exist or belongs to another owner.
    ClaimConflictError
        If a run of the schedule is already in flight.

    """
    session_factory = _get_or_create_session_factory(database_url)

    async def run() -> str:
        components = build_scheduler(session_factory)
        return await _run_schedule_async(components, schedule_id, owner_id)

    return asyncio.run(run())
