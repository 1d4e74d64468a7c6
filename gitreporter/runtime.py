"""gitreporter runtime entrypoint.

Starts the scheduler engine as a long-running process. On start-up the
runtime creates the schema, seeds the default templates and then polls for
due schedules until it receives SIGINT or SIGTERM, at which point it stops
polling and waits for in-flight runs before exiting.

Configuration is driven by environment variables:

- ``GITREPORTER_DATABASE_URL``: SQLAlchemy async URL (required)
- ``GITREPORTER_LOG_LEVEL``: Log level (default ``INFO``)
- ``GITREPORTER_EMAIL_MOCK``: Log emails instead of sending them
- ``GITREPORTER_*``: scheduler, GitHub, Resend and Twilio settings read by
  the respective ``from_env`` constructors

Run the service directly with ``python -m gitreporter.runtime``.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import os
import signal

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from gitreporter.logging import (
    LOG_LEVEL_ENV_VAR,
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from gitreporter.scheduler.config import SchedulerConfig
from gitreporter.scheduler.factory import (
    EMAIL_MOCK_ENV_VAR,
    build_scheduler,
    create_transports,
    env_flag,
)
from gitreporter.schedules.storage import init_storage

__all__ = ["RuntimeConfig", "main", "serve"]

logger = get_logger(__name__)

DATABASE_URL_ENV_VAR = "GITREPORTER_DATABASE_URL"
_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dc.dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Process-level settings for the runtime."""

    database_url: str
    log_level: str | None = None
    email_mock: bool = False

    @classmethod
    def from_env(cls) -> RuntimeConfig:
        """Build configuration from the environment.

        Raises
        ------
        ValueError
            If ``GITREPORTER_DATABASE_URL`` is unset or blank.

        """
        database_url = os.environ.get(DATABASE_URL_ENV_VAR, "").strip()
        if not database_url:
            msg = f"{DATABASE_URL_ENV_VAR} must be set to an async SQLAlchemy URL"
            raise ValueError(msg)
        return cls(
            database_url=database_url,
            log_level=os.environ.get(LOG_LEVEL_ENV_VAR),
            email_mock=env_flag(EMAIL_MOCK_ENV_VAR),
        )


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in _STOP_SIGNALS:
        loop.add_signal_handler(sig, stop_event.set)


def _remove_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for sig in _STOP_SIGNALS:
        loop.remove_signal_handler(sig)


async def serve(
    config: RuntimeConfig,
    *,
    scheduler_config: SchedulerConfig | None = None,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Run the scheduler until ``stop_event`` is set or a stop signal arrives.

    Parameters
    ----------
    config
        Runtime settings.
    scheduler_config
        Scheduler settings; read from the environment when omitted.
    stop_event
        Event that ends the run when set. A fresh event is created when
        omitted.

    """
    engine = create_async_engine(config.database_url)
    try:
        await init_storage(engine)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        components = build_scheduler(
            session_factory,
            scheduler_config,
            transports=create_transports(email_mock=config.email_mock),
        )
        await components.templates.seed_default_templates()

        stop = stop_event or asyncio.Event()
        _install_signal_handlers(stop)
        await components.engine.start()
        try:
            await stop.wait()
            log_info(logger, "Stop requested; draining in-flight runs")
        finally:
            _remove_signal_handlers()
            await components.engine.stop()
            await components.aclose()
    finally:
        await engine.dispose()


def main() -> None:
    """Start the gitreporter scheduler process."""
    try:
        config = RuntimeConfig.from_env()
    except ValueError as exc:
        log_error(logger, "Invalid runtime configuration: %s", exc)
        raise SystemExit(1) from exc

    normalized_level, invalid_level = configure_logging(config.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid %s %r, falling back to %s",
            LOG_LEVEL_ENV_VAR,
            config.log_level,
            normalized_level,
        )
    log_info(
        logger,
        "Starting gitreporter scheduler (log_level=%s, email_mock=%s)",
        normalized_level,
        config.email_mock,
    )
    asyncio.run(serve(config))
    log_info(logger, "gitreporter scheduler stopped")


if __name__ == "__main__":
    main()
