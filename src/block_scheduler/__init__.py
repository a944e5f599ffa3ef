"""Block Scheduler - weekly 35-minute teaching block assignment.

Builds concrete events for the modules of a study program: each event binds
one module to a teacher, a room and a 35-minute block, with teacher and room
overlaps rejected by the event store itself and weekly teacher load kept as a
derived aggregate.

Example usage:
    from block_scheduler import ScheduleRequest, Settings, create_scheduler

    settings = Settings.from_env()
    scheduler = create_scheduler(
        settings.database_url, settings.reference_dir, tz=settings.tzinfo
    )
    result = scheduler.schedule(ScheduleRequest(program_id="ING-INF"))

    print(f"Assigned blocks: {result.assigned_count}")
    for unmet in result.unmet_modules:
        print(f"{unmet.module_id}: {unmet.satisfied}/{unmet.required}")
"""

from .exceptions import (
    CatalogError,
    DuplicateEventError,
    EventNotFoundError,
    ModuleCompleteError,
    NoEligibleTeachersError,
    NoUsableRoomsError,
    NotFoundError,
    SchedulerError,
    SlotConflictError,
    StorageUnavailableError,
    ValidationError,
)
from .linking import LegacyLinker, import_legacy_events
from .scheduler import (
    BlockScheduler,
    Event,
    ScheduleRequest,
    ScheduleResult,
    Shift,
    create_scheduler,
)
from .settings import Settings

__version__ = "0.1.0"

__all__ = [
    # Main scheduler
    "BlockScheduler",
    "create_scheduler",
    "Settings",
    # Models
    "Event",
    "ScheduleRequest",
    "ScheduleResult",
    "Shift",
    # Legacy import
    "LegacyLinker",
    "import_legacy_events",
    # Exceptions
    "SchedulerError",
    "ValidationError",
    "NotFoundError",
    "NoEligibleTeachersError",
    "NoUsableRoomsError",
    "EventNotFoundError",
    "SlotConflictError",
    "DuplicateEventError",
    "StorageUnavailableError",
    "ModuleCompleteError",
    "CatalogError",
]
