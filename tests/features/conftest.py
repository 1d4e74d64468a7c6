"""Shared fixtures for BDD feature tests."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from gitreporter.schedules import init_storage

if typ.TYPE_CHECKING:
    from pathlib import Path

    from gitreporter.schedules.storage import SessionFactory


@pytest.fixture
def feature_session_factory(tmp_path: Path) -> typ.Iterator[SessionFactory]:
    """Yield a session factory usable from ``asyncio.run`` in each step.

    ``NullPool`` keeps connections from outliving the event loop that opened
    them.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'features.db'}", poolclass=NullPool
    )
    asyncio.run(init_storage(engine))
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        asyncio.run(engine.dispose())
