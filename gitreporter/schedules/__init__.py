"""Schedule persistence: storage models, the schedule store and the run ledger.

Public API
----------
ScheduleStore
    CRUD plus the atomic claim/release/finish protocol.
RunLedger
    Append-only execution history.
ScheduleService
    Validated create, update, toggle, run-now and history operations.
init_storage
    Create all tables on an async engine.

"""

from gitreporter.schedules.errors import (
    ClaimConflictError,
    InvalidScheduleError,
    ScheduleLimitError,
    ScheduleNotFoundError,
)
from gitreporter.schedules.ledger import RunLedger
from gitreporter.schedules.models import (
    RunLedgerDraft,
    RunLedgerRecord,
    ScheduleDraft,
    ScheduleFilter,
    ScheduleRecord,
)
from gitreporter.schedules.storage import (
    Base,
    FailureReason,
    ReportTemplate,
    RunLedgerEntry,
    RunOutcome,
    RunTrigger,
    Schedule,
    UTCDateTime,
    init_storage,
)
from gitreporter.schedules.service import (
    SchedulePatch,
    ScheduleService,
    ScheduleServiceDependencies,
    ScheduleSpec,
)
from gitreporter.schedules.store import ScheduleStore

__all__ = [
    "Base",
    "ClaimConflictError",
    "FailureReason",
    "InvalidScheduleError",
    "ReportTemplate",
    "RunLedger",
    "RunLedgerDraft",
    "RunLedgerEntry",
    "RunLedgerRecord",
    "RunOutcome",
    "RunTrigger",
    "Schedule",
    "ScheduleDraft",
    "ScheduleFilter",
    "ScheduleLimitError",
    "ScheduleNotFoundError",
    "SchedulePatch",
    "ScheduleRecord",
    "ScheduleService",
    "ScheduleServiceDependencies",
    "ScheduleSpec",
    "ScheduleStore",
    "UTCDateTime",
    "init_storage",
]
