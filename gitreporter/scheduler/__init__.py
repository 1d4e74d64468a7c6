"""Scheduler engine executing due report schedules.

Public API
----------
SchedulerConfig
    Timing, concurrency and policy settings loaded from the environment.
SchedulerEngine
    Poll loop, claim-guarded execution pipeline and run-now entry point.
SchedulerEngineDependencies
    Frozen dataclass grouping the engine's collaborators.
SchedulerStatus, OperatorAlert
    Health snapshot and reschedule-exhaustion alerts.
SchedulerEventLogger
    Structured lifecycle event emitter.
build_scheduler
    Wire the engine and services from environment configuration.
classify_failure
    Map a run exception to its ledger failure reason.

The Dramatiq actor lives in :mod:`gitreporter.scheduler.actor` and is not
imported here, so importing this package never touches the broker.

Example:
>>> engine = SchedulerEngine(dependencies, SchedulerConfig.from_env())
>>> await engine.start()

"""

from gitreporter.scheduler.config import SchedulerConfig
from gitreporter.scheduler.engine import (
    OperatorAlert,
    SchedulerEngine,
    SchedulerEngineDependencies,
    SchedulerStatus,
)
from gitreporter.scheduler.errors import (
    SchedulerStateError,
    StageTimeoutError,
    classify_failure,
    describe_failure,
)
from gitreporter.scheduler.factory import (
    SchedulerComponents,
    build_scheduler,
    create_transports,
)
from gitreporter.scheduler.observability import (
    SchedulerEventLogger,
    SchedulerEventType,
)

__all__ = [
    "OperatorAlert",
    "SchedulerComponents",
    "SchedulerConfig",
    "SchedulerEngine",
    "SchedulerEngineDependencies",
    "SchedulerEventLogger",
    "SchedulerEventType",
    "SchedulerStateError",
    "SchedulerStatus",
    "StageTimeoutError",
    "build_scheduler",
    "classify_failure",
    "create_transports",
    "describe_failure",
]
