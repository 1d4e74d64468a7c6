"""Dramatiq broker selection for the run-now actor.

``dramatiq.actor`` binds to the global broker when
:mod:`gitreporter.scheduler.actor` is imported, and dramatiq's default broker
needs the RabbitMQ client. Local runs without one opt into an in-memory
:class:`StubBroker` with ``GITREPORTER_ALLOW_STUB_BROKER``.
"""

from __future__ import annotations

import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

from gitreporter.scheduler.factory import env_flag

ALLOW_STUB_BROKER_ENV_VAR = "GITREPORTER_ALLOW_STUB_BROKER"

_BROKER_LOCK = threading.Lock()


def ensure_broker_configured() -> dramatiq.Broker:
    """Return the global broker, installing a stub broker when allowed.

    Raises
    ------
    RuntimeError
        If no broker is configured, the default RabbitMQ broker cannot be
        created and stub brokers are not allowed.

    """
    with _BROKER_LOCK:
        try:
            return dramatiq.get_broker()
        except ImportError as exc:
            if not env_flag(ALLOW_STUB_BROKER_ENV_VAR):
                message = (
                    "No Dramatiq broker configured. "
                    f"Set {ALLOW_STUB_BROKER_ENV_VAR}=1 for local runs "
                    "or configure a real broker."
                )
                raise RuntimeError(message) from exc
        broker = StubBroker()
        dramatiq.set_broker(broker)
        return broker
