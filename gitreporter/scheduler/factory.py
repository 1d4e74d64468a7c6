"""Build a fully wired scheduler from environment configuration."""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ

from gitreporter.delivery.dispatcher import DeliveryDispatcher
from gitreporter.delivery.email import (
    LoggingEmailTransport,
    ResendConfig,
    ResendEmailTransport,
)
from gitreporter.delivery.models import Channel
from gitreporter.delivery.whatsapp import TwilioConfig, TwilioWhatsAppTransport
from gitreporter.logging import get_logger, log_info, log_warning
from gitreporter.scheduler.config import SchedulerConfig
from gitreporter.scheduler.engine import SchedulerEngine, SchedulerEngineDependencies
from gitreporter.schedules.ledger import RunLedger
from gitreporter.schedules.service import (
    ScheduleService,
    ScheduleServiceDependencies,
)
from gitreporter.schedules.store import ScheduleStore
from gitreporter.source.github import GitHubCommitSource, GitHubConfig
from gitreporter.templates.service import TemplateService

if typ.TYPE_CHECKING:
    from gitreporter.delivery.transport import Transport
    from gitreporter.schedules.storage import SessionFactory
    from gitreporter.source.protocol import CommitSource

logger = get_logger(__name__)

EMAIL_MOCK_ENV_VAR = "GITREPORTER_EMAIL_MOCK"
_TWILIO_SID_ENV_VAR = "GITREPORTER_TWILIO_ACCOUNT_SID"
_TRUTHY = frozenset({"1", "true", "yes", "on"})


class _Closable(typ.Protocol):
    async def aclose(self) -> None: ...


def env_flag(name: str) -> bool:
    """Return whether environment variable ``name`` holds a truthy value."""
    return os.environ.get(name, "").strip().lower() in _TRUTHY


@dc.dataclass(frozen=True, slots=True)
class SchedulerComponents:
    """The engine and services sharing one database and set of adapters."""

    engine: SchedulerEngine
    schedules: ScheduleService
    templates: TemplateService
    closables: tuple[_Closable, ...] = ()

    async def aclose(self) -> None:
        """Close the HTTP clients owned by the adapters."""
        for resource in self.closables:
            await resource.aclose()


def create_transports(
    *, email_mock: bool | None = None
) -> dict[Channel, Transport]:
    """Create delivery transports from environment configuration.

    The email channel uses :class:`LoggingEmailTransport` when
    ``GITREPORTER_EMAIL_MOCK`` is truthy and Resend otherwise. The
    chat-message channel is registered only when Twilio credentials are set.

    Raises
    ------
    TransportConfigError
        If a required credential for an enabled transport is missing.

    """
    mock = env_flag(EMAIL_MOCK_ENV_VAR) if email_mock is None else email_mock
    transports: dict[Channel, Transport] = {}
    if mock:
        log_warning(logger, "Email delivery is in mock mode; messages are logged")
        transports[Channel.EMAIL] = LoggingEmailTransport()
    else:
        transports[Channel.EMAIL] = ResendEmailTransport(ResendConfig.from_env())

    if os.environ.get(_TWILIO_SID_ENV_VAR, "").strip():
        transports[Channel.CHAT_MESSAGE] = TwilioWhatsAppTransport(
            TwilioConfig.from_env()
        )
    else:
        log_info(logger, "Twilio not configured; chat-message channel disabled")
    return transports


def build_scheduler(
    session_factory: SessionFactory,
    config: SchedulerConfig | None = None,
    *,
    source: CommitSource | None = None,
    transports: typ.Mapping[Channel, Transport] | None = None,
) -> SchedulerComponents:
    """Wire the scheduler engine and the schedule and template services.

    Parameters
    ----------
    session_factory
        Session factory for the schedule database.
    config
        Scheduler settings; read from the environment when omitted.
    source
        Commit source override; defaults to the GitHub GraphQL source.
    transports
        Transport overrides; defaults to :func:`create_transports`.

    """
    config = config or SchedulerConfig.from_env()
    source = source or GitHubCommitSource(GitHubConfig.from_env())
    transports = transports if transports is not None else create_transports()

    store = ScheduleStore(session_factory, claim_ttl=config.claim_ttl)
    ledger = RunLedger(session_factory)
    templates = TemplateService(session_factory)
    engine = SchedulerEngine(
        SchedulerEngineDependencies(
            store=store,
            ledger=ledger,
            templates=templates,
            source=source,
            dispatcher=DeliveryDispatcher(transports),
        ),
        config,
    )
    schedules = ScheduleService(
        ScheduleServiceDependencies(
            store=store, ledger=ledger, engine=engine, config=config
        )
    )
    closables = tuple(
        typ.cast("_Closable", resource)
        for resource in (source, *transports.values())
        if hasattr(resource, "aclose")
    )
    return SchedulerComponents(
        engine=engine,
        schedules=schedules,
        templates=templates,
        closables=closables,
    )
