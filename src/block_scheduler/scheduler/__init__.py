"""Weekly 35-minute block scheduling.

This package assigns the weekly teaching blocks of a program's modules to
concrete (teacher, room, time) events, keeping every teacher and room free of
overlaps and every teacher inside a weekly hour cap.

Main classes:
- BlockScheduler: Greedy best-fit search over weeks, weekdays and blocks
- EventStore / EventService: Conflict-rejecting event persistence
- LoadTracker: Derived minutes per (teacher, ISO week)
- ConfigLoader: Loads the catalog from the reference directory

Usage:
    from block_scheduler.scheduler import ScheduleRequest, create_scheduler

    scheduler = create_scheduler("sqlite:///data/block_scheduler.db", "data/reference")
    result = scheduler.schedule(ScheduleRequest(program_id="ING-INF", num_weeks=2))
"""

from .algorithm import BlockScheduler, create_scheduler, sort_pending_modules
from .catalog import Catalog, CatalogRepository
from .clock import Clock, FixedClock, SystemClock
from .config import ConfigLoader
from .conflicts import ConflictChecker
from .constants import (
    BLOCK_MINUTES,
    DEFAULT_TIME_LIMIT,
    MAX_BLOCK,
    MIN_BLOCK,
    SCORE_WEIGHTS,
    Shift,
    blocks_needed,
)
from .events import EventService, EventStore
from .excel_generator import generate_timetable_excel
from .exporter import export_events_json, export_schedule_json, load_schedule_json
from .load import LoadTracker
from .models import (
    Assignment,
    AvailabilityRule,
    Event,
    Interval,
    Module,
    Program,
    ProgramLink,
    Room,
    RuleMode,
    ScheduleRequest,
    ScheduleResult,
    ScheduleStatistics,
    Teacher,
    UnmetModule,
    WeeklyLoad,
)
from .scoring import SlotScorer
from .storage import create_store_engine, init_schema
from .utils import block_interval, iso_week_of

__all__ = [
    # Main scheduler
    "BlockScheduler",
    "create_scheduler",
    "sort_pending_modules",
    # Components
    "Catalog",
    "CatalogRepository",
    "ConflictChecker",
    "EventService",
    "EventStore",
    "LoadTracker",
    "SlotScorer",
    "Clock",
    "FixedClock",
    "SystemClock",
    # Configuration and storage
    "ConfigLoader",
    "create_store_engine",
    "init_schema",
    # Models
    "Assignment",
    "AvailabilityRule",
    "Event",
    "Interval",
    "Module",
    "Program",
    "ProgramLink",
    "Room",
    "RuleMode",
    "ScheduleRequest",
    "ScheduleResult",
    "ScheduleStatistics",
    "Teacher",
    "UnmetModule",
    "WeeklyLoad",
    # Constants
    "BLOCK_MINUTES",
    "DEFAULT_TIME_LIMIT",
    "MAX_BLOCK",
    "MIN_BLOCK",
    "SCORE_WEIGHTS",
    "Shift",
    # Export
    "export_events_json",
    "export_schedule_json",
    "generate_timetable_excel",
    "load_schedule_json",
    # Utilities
    "block_interval",
    "blocks_needed",
    "iso_week_of",
]
