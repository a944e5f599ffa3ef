"""Greedy best-fit assignment of weekly teaching blocks."""

import logging
import threading
import time
from datetime import date, timedelta, timezone, tzinfo
from pathlib import Path

from ..exceptions import (
    DuplicateEventError,
    ModuleCompleteError,
    NoEligibleTeachersError,
    NoUsableRoomsError,
    SlotConflictError,
    ValidationError,
)
from .catalog import CatalogRepository
from .clock import Clock, SystemClock
from .config import ConfigLoader
from .conflicts import ConflictChecker
from .constants import (
    BLOCK_MINUTES,
    DEFAULT_TIME_LIMIT,
    TEACHING_WEEKDAYS,
    WEEKDAY_NAMES,
    Shift,
    get_blocks_for_shift,
)
from .events import EventService, EventStore
from .load import LoadTracker
from .models import (
    Assignment,
    Candidate,
    Event,
    Interval,
    Module,
    PendingModule,
    Room,
    ScheduleRequest,
    ScheduleResult,
    ScheduleStatistics,
    Teacher,
    UnmetModule,
)
from .scoring import SlotScorer, rank_priorities
from .storage import create_store_engine, init_schema
from .utils import block_interval, horizon_window, iso_week_of, monday_of, parse_date

logger = logging.getLogger(__name__)

# Longest horizon a single run may search
MAX_WEEKS = 52


def sort_pending_modules(pending: list[PendingModule]) -> list[PendingModule]:
    """Heaviest modules first, then by module id."""
    return sorted(pending, key=lambda p: (-p.module.weekly_minutes, p.module.id))


class BlockScheduler:
    """Assigns pending module blocks to (teacher, room, slot) events.

    Search order for each module, heaviest module first:
    1. week in the horizon
    2. weekday Monday..Friday
    3. block in the shift's range

    At each position every eligible (teacher, room) pair passing the policy,
    overlap and weekly-cap checks is scored, and the best one is committed as
    a single-block event. A commit rejected by storage (another writer took
    the slot) moves on to the next-best pair. Modules left short when the
    space is exhausted are reported in ``unmet_modules``.
    """

    def __init__(
        self,
        catalog: CatalogRepository,
        events: EventService,
        clock: Clock | None = None,
        scorer: SlotScorer | None = None,
        time_limit: float | None = DEFAULT_TIME_LIMIT,
    ) -> None:
        """Initialize the scheduler.

        Args:
            catalog: Catalog repository (modules, teachers, rooms, rules)
            events: Event write path (store + load tracker)
            clock: Supplies today's date and the grid timezone
            scorer: Candidate scorer
            time_limit: Seconds after which the run stops with a partial result
        """
        self.catalog = catalog
        self.events = events
        self.tracker = events.tracker
        self.checker = ConflictChecker(events.store, catalog)
        self.clock = clock or SystemClock()
        self.scorer = scorer or SlotScorer()
        self.time_limit = time_limit

    def _validate(self, request: ScheduleRequest) -> tuple[str, date]:
        program_id = str(request.program_id or "").strip()
        if not program_id:
            raise ValidationError("program_id is required", field="program_id")

        num_weeks = request.num_weeks
        if isinstance(num_weeks, bool) or not isinstance(num_weeks, int):
            raise ValidationError("num_weeks must be an integer", field="num_weeks")
        if num_weeks < 1 or num_weeks > MAX_WEEKS:
            raise ValidationError(f"num_weeks must be between 1 and {MAX_WEEKS}", field="num_weeks")

        try:
            Shift(request.shift)
        except ValueError as exc:
            raise ValidationError(f"unknown shift '{request.shift}'", field="shift") from exc

        try:
            start_date = parse_date(request.start_date)
        except ValueError as exc:
            raise ValidationError(f"invalid date '{request.start_date}'", field="start_date") from exc

        return program_id, start_date or self.clock.today()

    def schedule(
        self,
        request: ScheduleRequest,
        cancel_event: threading.Event | None = None,
    ) -> ScheduleResult:
        """Run the block search for one program.

        Args:
            request: Program, horizon and shift
            cancel_event: When set, the run stops at the next position and
                          returns what was committed so far

        Returns:
            ScheduleResult with assignments and unmet modules

        Raises:
            ValidationError: Bad program id, week count, shift or date
            NoEligibleTeachersError: Program has no active linked teacher
            NoUsableRoomsError: Program may not use any room
            StorageUnavailableError: Event store failed; earlier commits stay
        """
        started = time.monotonic()
        program_id, start_date = self._validate(request)
        shift = Shift(request.shift)

        teachers = self.catalog.list_eligible_teachers(program_id)
        if not teachers:
            raise NoEligibleTeachersError(program_id)
        rooms = self.catalog.list_usable_rooms(program_id)
        if not rooms:
            raise NoUsableRoomsError(program_id)

        window = horizon_window(start_date, request.num_weeks, self.clock.tz)
        pending = sort_pending_modules(self.catalog.list_pending_modules(program_id, window))

        result = ScheduleResult(program_id=program_id, shift=shift)
        stats = result.statistics
        stats.pending_modules = len(pending)

        if not pending:
            logger.info(f"No pending modules for program {program_id}")
            stats.elapsed_seconds = time.monotonic() - started
            return result

        logger.info(
            f"Scheduling {len(pending)} modules for program {program_id}: "
            f"{len(teachers)} teachers, {len(rooms)} rooms, "
            f"{request.num_weeks} week(s) from {start_date.isoformat()}, {shift.value} shift"
        )

        program = self.catalog.get_program(program_id)
        program_rooms = frozenset(program.preferred_room_ids) if program else frozenset()
        deadline = started + self.time_limit if self.time_limit is not None else None

        for item in pending:
            stopped = self._schedule_module(
                item,
                start_date,
                request.num_weeks,
                window,
                shift,
                teachers,
                rooms,
                program_rooms | frozenset(item.module.preferred_room_ids),
                result,
                cancel_event,
                deadline,
            )
            # Other writers may have added blocks while this run searched
            satisfied = self.events.store.count_module_blocks(item.module.id, window)
            if satisfied < item.required:
                logger.warning(
                    f"Module {item.module.id} ({item.module.name}): "
                    f"{satisfied} of {item.required} blocks"
                )
                result.unmet_modules.append(
                    UnmetModule(module_id=item.module.id, required=item.required, satisfied=satisfied)
                )
            else:
                logger.info(f"Module {item.module.id} ({item.module.name}): complete")
            if stopped:
                logger.warning(f"Run for program {program_id} cancelled; returning partial result")
                result.cancelled = True
                break

        stats.elapsed_seconds = time.monotonic() - started
        logger.info(
            f"Assigned {result.assigned_count} blocks, "
            f"{len(result.unmet_modules)} modules unmet, "
            f"{stats.lost_races} lost races"
        )
        return result

    def _should_stop(self, cancel_event: threading.Event | None, deadline: float | None) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    def _schedule_module(
        self,
        item: PendingModule,
        start_date: date,
        num_weeks: int,
        window: Interval,
        shift: Shift,
        teachers: list[Teacher],
        rooms: list[Room],
        preferred_room_ids: frozenset[str],
        result: ScheduleResult,
        cancel_event: threading.Event | None,
        deadline: float | None,
    ) -> bool:
        """Search the slot space for one module.

        Every commit is capped at the module's requirement inside the store
        transaction, so blocks written meanwhile by other runs count too.

        Returns:
            Whether the run was stopped
        """
        needed = item.remaining
        committed = 0
        blocks = get_blocks_for_shift(shift)
        first_monday = monday_of(start_date)

        for week in range(num_weeks):
            for weekday in TEACHING_WEEKDAYS:
                day = first_monday + timedelta(weeks=week, days=weekday)
                if day < start_date:
                    continue
                for block in blocks:
                    if committed >= needed:
                        return False
                    if self._should_stop(cancel_event, deadline):
                        return True

                    result.statistics.positions_visited += 1
                    try:
                        assignment = self._fill_position(
                            item, window, day, weekday, block, teachers, rooms,
                            preferred_room_ids, result.statistics,
                        )
                    except ModuleCompleteError as exc:
                        logger.info(f"Stopping module {item.module.id}: {exc}")
                        return False
                    if assignment is not None:
                        result.assignments.append(assignment)
                        self._count(result.statistics, assignment)
                        committed += 1

        return False

    def _rank_candidates(
        self,
        module: Module,
        day: date,
        weekday: int,
        block: int,
        interval: Interval,
        teachers: list[Teacher],
        rooms: list[Room],
        preferred_room_ids: frozenset[str],
    ) -> list[tuple[int, Candidate]]:
        """Score every valid (teacher, room) pair at one position.

        Returns:
            (score, candidate) pairs, best first; ties keep enumeration order
        """
        free_rooms = [r for r in rooms if self.checker.is_room_free(r.id, interval)]
        if not free_rooms:
            logger.debug(f"No free room on {day.isoformat()} block {block}")
            return []

        iso_year, iso_week = iso_week_of(interval.start)
        used = {t.id: self.tracker.minutes_used(t.id, iso_year, iso_week) for t in teachers}
        ordered = sorted(teachers, key=lambda t: (t.priority, used[t.id], t.name))
        ranks = rank_priorities(t.priority for t in teachers)

        ranked: list[tuple[int, Candidate]] = []
        for teacher in ordered:
            if used[teacher.id] + BLOCK_MINUTES > teacher.cap_minutes:
                continue
            if not self.checker.is_teacher_available_by_policy(teacher.id, weekday, block, day):
                continue
            if not self.checker.is_teacher_free(teacher.id, interval):
                continue
            adjacent = self.checker.has_adjacent_assignment(module.id, teacher.id, interval)
            for room in free_rooms:
                candidate = Candidate(
                    teacher=teacher,
                    room=room,
                    interval=interval,
                    minutes_used=used[teacher.id],
                    preferred_room_ids=preferred_room_ids,
                    adjacent=adjacent,
                    priority_rank=ranks[teacher.priority],
                    priority_levels=len(ranks),
                )
                score = self.scorer.score(candidate)
                if score > 0:
                    ranked.append((score, candidate))

        ranked.sort(key=lambda pair: -pair[0])
        return ranked

    def _fill_position(
        self,
        item: PendingModule,
        window: Interval,
        day: date,
        weekday: int,
        block: int,
        teachers: list[Teacher],
        rooms: list[Room],
        preferred_room_ids: frozenset[str],
        stats: ScheduleStatistics,
    ) -> Assignment | None:
        """Commit the best candidate at one position, if any.

        Raises:
            ModuleCompleteError: If the module reached its requirement meanwhile
        """
        module = item.module
        interval = block_interval(day, block, self.clock.tz)
        ranked = self._rank_candidates(
            module, day, weekday, block, interval, teachers, rooms, preferred_room_ids
        )

        for score, candidate in ranked:
            event = Event(
                title=module.name,
                start=interval.start,
                end=interval.end,
                module_id=module.id,
                teacher_id=candidate.teacher.id,
                room_id=candidate.room.id,
            )
            try:
                outcome = self.events.create(event, block_limit=item.required, window=window)
            except SlotConflictError as exc:
                stats.lost_races += 1
                logger.warning(f"Lost slot race, trying next candidate: {exc}")
                continue
            except DuplicateEventError as exc:
                stats.lost_races += 1
                logger.warning(f"Slot claimed concurrently: {exc}")
                return None

            if outcome.dedup:
                # Same title and interval already stored; every pair here would collide
                logger.debug(
                    f"Event '{module.name}' already exists at {interval.start.isoformat()}"
                )
                return None

            logger.debug(
                f"Committed {module.id} {day.isoformat()} block {block}: "
                f"{candidate.teacher.id} / {candidate.room.id} (score {score})"
            )
            return Assignment(
                event_id=outcome.id,
                module_id=module.id,
                teacher_id=candidate.teacher.id,
                room_id=candidate.room.id,
                start=interval.start,
                end=interval.end,
                weekday=weekday,
                block=block,
                score=score,
            )
        return None

    def _count(self, stats: ScheduleStatistics, assignment: Assignment) -> None:
        day_name = WEEKDAY_NAMES[assignment.weekday]
        stats.by_weekday[day_name] = stats.by_weekday.get(day_name, 0) + 1
        stats.by_teacher[assignment.teacher_id] = stats.by_teacher.get(assignment.teacher_id, 0) + 1


def create_scheduler(
    database_url: str,
    reference_dir: Path | str,
    tz: tzinfo = timezone.utc,
    time_limit: float | None = DEFAULT_TIME_LIMIT,
    init_db: bool = True,
) -> BlockScheduler:
    """Factory function to create a BlockScheduler with loaded reference data.

    Args:
        database_url: SQLite URL of the event store
        reference_dir: Directory with the catalog reference files
        tz: Local timezone of the block grid
        time_limit: Search time limit in seconds (None = unbounded)
        init_db: Create missing tables and triggers

    Returns:
        Configured BlockScheduler instance
    """
    engine = create_store_engine(database_url)
    if init_db:
        init_schema(engine)

    store = EventStore(engine)
    service = EventService(store, LoadTracker(engine))
    catalog = ConfigLoader(Path(reference_dir)).build_catalog()
    return BlockScheduler(
        CatalogRepository(catalog, store),
        service,
        clock=SystemClock(tz),
        time_limit=time_limit,
    )
