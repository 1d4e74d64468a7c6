"""Persistence models for schedules, templates and the run ledger."""

from __future__ import annotations

import contextlib
import datetime as dt
import enum
import typing as typ
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from gitreporter.common.time import TimezoneAwareRequiredError, utcnow
from gitreporter.delivery.models import Channel
from gitreporter.errors import PersistenceError

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

type SessionFactory = async_sessionmaker[AsyncSession]


class RunOutcome(enum.StrEnum):
    """Result recorded for one execution attempt."""

    SUCCESS = "success"
    FAILURE = "failure"


class RunTrigger(enum.StrEnum):
    """What started an execution attempt."""

    SCHEDULED = "scheduled"
    MANUAL = "manual"


class FailureReason(enum.StrEnum):
    """Failure taxonomy recorded on failed ledger entries."""

    SOURCE_UNAVAILABLE = "SourceUnavailable"
    RENDER_WARNING = "RenderWarning"
    INVALID_RECIPIENT = "InvalidRecipient"
    DELIVERY_FAILED = "DeliveryFailed"
    TIMEOUT = "Timeout"
    INTERNAL = "Internal"


def _string_enum[E: enum.StrEnum](enum_cls: type[E]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    """Base declarative class for gitreporter models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Force bound datetime values to UTC with tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError("stored datetime values")
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


class ReportTemplate(Base):
    """Reusable message blueprint owned by a user or by the system."""

    __tablename__ = "report_templates"
    __table_args__ = (Index("ix_report_templates_owner", "owner_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), default=None)
    content: Mapped[str] = mapped_column(Text(), nullable=False)
    variables: Mapped[list[dict[str, str]]] = mapped_column(
        JSON, default=list, nullable=False
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )


class Schedule(Base):
    """Recurring delivery obligation polled by the scheduler engine."""

    __tablename__ = "schedules"
    __table_args__ = (
        Index("ix_schedules_owner", "owner_id"),
        Index("ix_schedules_due", "is_active", "next_run_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source_repo: Mapped[str] = mapped_column(String(255), nullable=False)
    template_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("report_templates.id", ondelete="SET NULL"),
        default=None,
    )
    cron_expression: Mapped[str] = mapped_column(String(128), nullable=False)
    channel: Mapped[Channel] = mapped_column(_string_enum(Channel), nullable=False)
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    next_run_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    last_run_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    last_run_status: Mapped[RunOutcome | None] = mapped_column(
        _string_enum(RunOutcome), default=None
    )
    claimed_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)
    claim_token: Mapped[str | None] = mapped_column(String(36), default=None)
    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )


class RunLedgerEntry(Base):
    """Append-only record of one execution attempt."""

    __tablename__ = "run_ledger"
    __table_args__ = (
        Index("ix_run_ledger_schedule_time", "schedule_id", "triggered_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    schedule_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False
    )
    trigger: Mapped[RunTrigger] = mapped_column(
        _string_enum(RunTrigger), nullable=False
    )
    triggered_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), nullable=False)
    completed_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), nullable=False)
    outcome: Mapped[RunOutcome] = mapped_column(
        _string_enum(RunOutcome), nullable=False
    )
    failure_reason: Mapped[FailureReason | None] = mapped_column(
        _string_enum(FailureReason), default=None
    )
    error_detail: Mapped[str | None] = mapped_column(Text(), default=None)
    delivered_to: Mapped[str | None] = mapped_column(String(255), default=None)
    rendered_content_snapshot: Mapped[str | None] = mapped_column(
        Text(), default=None
    )
    warnings: Mapped[list[dict[str, typ.Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )


async def init_storage(engine: AsyncEngine) -> None:
    """Create gitreporter tables if absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@contextlib.asynccontextmanager
async def persistence_transaction(
    session_factory: SessionFactory, operation: str
) -> typ.AsyncIterator[AsyncSession]:
    """Yield a session inside a transaction, wrapping database failures.

    Raises
    ------
    PersistenceError
        If SQLAlchemy raises while the transaction is open or committing.

    """
    try:
        async with session_factory() as session, session.begin():
            yield session
    except SQLAlchemyError as exc:
        raise PersistenceError.during(operation, exc) from exc
