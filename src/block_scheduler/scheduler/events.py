"""Event store: idempotent, conflict-rejecting persistence for scheduled events."""

import logging
import uuid
from collections.abc import Iterable
from datetime import date, datetime, timezone, tzinfo
from typing import Any

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import IntegrityError

from ..exceptions import (
    DuplicateEventError,
    EventNotFoundError,
    ModuleCompleteError,
    SchedulerError,
    SlotConflictError,
    ValidationError,
)
from .constants import BLOCK_MINUTES
from .load import LoadTracker
from .models import Event, EventChange, Interval, UpsertResult
from .storage import (
    ROOM_EXCLUSION,
    TEACHER_EXCLUSION,
    events_table,
    from_db,
    to_db,
    transaction,
)
from .utils import block_interval, change_week_keys, ensure_utc

logger = logging.getLogger(__name__)

# Fields an update may change
UPDATABLE_FIELDS = ("title", "start", "end", "module_id", "teacher_id", "room_id")


def _row_to_event(row: Row) -> Event:
    return Event(
        id=row.id,
        title=row.title,
        start=from_db(row.start_at),
        end=from_db(row.end_at),
        module_id=row.module_id,
        teacher_id=row.teacher_id,
        room_id=row.room_id,
    )


def _event_values(event: Event) -> dict[str, Any]:
    return {
        "title": event.title,
        "start_at": to_db(event.start),
        "end_at": to_db(event.end),
        "module_id": event.module_id,
        "teacher_id": event.teacher_id,
        "room_id": event.room_id,
    }


class EventStore:
    """Persistence for concrete events, queryable by teacher, room and time.

    The natural key ``(title, start, end)`` is unique. Overlap exclusion per
    teacher and per room is enforced by storage triggers; rejected writes
    surface as SlotConflictError.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _validate(self, event: Event) -> None:
        if not event.title or not event.title.strip():
            raise ValidationError("event title is required", field="title")
        if ensure_utc(event.end) <= ensure_utc(event.start):
            raise ValidationError("event end must be after start", field="end")

    def _translate(self, exc: IntegrityError, event: Event) -> SchedulerError | None:
        """Map a storage rejection to a domain error."""
        message = str(exc.orig)
        if TEACHER_EXCLUSION in message:
            return SlotConflictError("teacher", event.start, event.end, event.teacher_id)
        if ROOM_EXCLUSION in message:
            return SlotConflictError("room", event.start, event.end, event.room_id)
        if "UNIQUE" in message and "title" in message:
            return DuplicateEventError(event.title, event.start, event.end)
        return None

    def _write(self, conn: Connection, statement, event: Event) -> None:
        try:
            conn.execute(statement)
        except IntegrityError as exc:
            error = self._translate(exc, event)
            if error is None:
                raise
            raise error from exc

    def _fetch(self, conn: Connection, event_id: str) -> Event | None:
        row = conn.execute(
            select(events_table).where(events_table.c.id == event_id)
        ).first()
        return _row_to_event(row) if row else None

    def _module_blocks(self, conn: Connection, module_id: str, window: Interval | None) -> int:
        query = select(events_table.c.start_at, events_table.c.end_at).where(
            events_table.c.module_id == module_id
        )
        if window is not None:
            query = query.where(
                events_table.c.start_at >= to_db(window.start),
                events_table.c.start_at < to_db(window.end),
            )
        rows = conn.execute(query).all()
        return sum(
            round((row.end_at - row.start_at).total_seconds() / 60 / BLOCK_MINUTES) for row in rows
        )

    def upsert(
        self,
        event: Event,
        block_limit: int | None = None,
        window: Interval | None = None,
    ) -> UpsertResult:
        """Insert or update an event unless its natural key already exists.

        Args:
            event: Event to store; an ``id`` of an existing row updates it
            block_limit: Refuse a new event of ``event.module_id`` once the
                         module holds this many blocks inside ``window``
            window: Horizon the block limit is counted in (None = all time)

        Returns:
            UpsertResult with ``dedup=True`` and the existing id when an
            identical (title, start, end) row is present (nothing written)

        Raises:
            SlotConflictError: If storage rejects an overlapping interval
            DuplicateEventError: If a concurrent writer stored the same key first
            ModuleCompleteError: If the module already reached ``block_limit``
        """
        self._validate(event)
        with transaction(self.engine) as conn:
            existing = conn.execute(
                select(events_table.c.id).where(
                    events_table.c.title == event.title,
                    events_table.c.start_at == to_db(event.start),
                    events_table.c.end_at == to_db(event.end),
                )
            ).first()
            if existing is not None:
                logger.debug(f"Deduplicated event '{event.title}' at {event.start.isoformat()}")
                return UpsertResult(id=existing.id, dedup=True)

            now = to_db(datetime.now().astimezone())
            previous = self._fetch(conn, event.id) if event.id else None
            event_id = event.id or str(uuid.uuid4())
            values = _event_values(event)

            if previous is None and block_limit is not None and event.module_id:
                satisfied = self._module_blocks(conn, event.module_id, window)
                if satisfied >= block_limit:
                    raise ModuleCompleteError(event.module_id, satisfied, block_limit)

            if previous is None:
                statement = insert(events_table).values(
                    id=event_id, created_at=now, updated_at=now, **values
                )
            else:
                statement = (
                    update(events_table)
                    .where(events_table.c.id == event_id)
                    .values(updated_at=now, **values)
                )
            self._write(conn, statement, event)
            current = self._fetch(conn, event_id)

        return UpsertResult(
            id=event_id, dedup=False, change=EventChange(previous=previous, current=current)
        )

    def get(self, event_id: str) -> Event | None:
        """Get an event by id."""
        with transaction(self.engine) as conn:
            return self._fetch(conn, event_id)

    def update(self, event_id: str, **changes: Any) -> EventChange:
        """Update fields of an existing event.

        Args:
            event_id: Event to change
            **changes: Any of title, start, end, module_id, teacher_id, room_id

        Returns:
            EventChange with the previous and new state

        Raises:
            EventNotFoundError: If the id is unknown
            SlotConflictError: If the new interval overlaps for teacher or room
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"cannot update {', '.join(sorted(unknown))}")

        with transaction(self.engine) as conn:
            previous = self._fetch(conn, event_id)
            if previous is None:
                raise EventNotFoundError(event_id)

            merged = Event(
                id=event_id,
                title=changes.get("title", previous.title),
                start=changes.get("start", previous.start),
                end=changes.get("end", previous.end),
                module_id=changes.get("module_id", previous.module_id),
                teacher_id=changes.get("teacher_id", previous.teacher_id),
                room_id=changes.get("room_id", previous.room_id),
            )
            self._validate(merged)
            statement = (
                update(events_table)
                .where(events_table.c.id == event_id)
                .values(updated_at=to_db(datetime.now().astimezone()), **_event_values(merged))
            )
            self._write(conn, statement, merged)
            current = self._fetch(conn, event_id)

        return EventChange(previous=previous, current=current)

    def delete(self, event_id: str) -> EventChange:
        """Delete an event.

        Raises:
            EventNotFoundError: If the id is unknown
        """
        with transaction(self.engine) as conn:
            previous = self._fetch(conn, event_id)
            if previous is None:
                raise EventNotFoundError(event_id)
            conn.execute(delete(events_table).where(events_table.c.id == event_id))
        return EventChange(previous=previous, current=None)

    def find_overlapping(
        self,
        interval: Interval,
        teacher_id: str | None = None,
        room_id: str | None = None,
    ) -> list[Event]:
        """Events of a teacher or room that intersect an interval."""
        conditions = [
            events_table.c.start_at < to_db(interval.end),
            events_table.c.end_at > to_db(interval.start),
        ]
        if teacher_id is not None:
            conditions.append(events_table.c.teacher_id == teacher_id)
        if room_id is not None:
            conditions.append(events_table.c.room_id == room_id)

        with transaction(self.engine) as conn:
            rows = conn.execute(
                select(events_table).where(and_(*conditions)).order_by(events_table.c.start_at)
            ).all()
        return [_row_to_event(row) for row in rows]

    def find_adjacent(self, module_id: str, teacher_id: str, interval: Interval) -> list[Event]:
        """Events of the same module and teacher touching an interval's edges."""
        with transaction(self.engine) as conn:
            rows = conn.execute(
                select(events_table).where(
                    events_table.c.module_id == module_id,
                    events_table.c.teacher_id == teacher_id,
                    or_(
                        events_table.c.end_at == to_db(interval.start),
                        events_table.c.start_at == to_db(interval.end),
                    ),
                )
            ).all()
        return [_row_to_event(row) for row in rows]

    def list_events(
        self,
        window: Interval | None = None,
        module_ids: Iterable[str] | None = None,
        teacher_id: str | None = None,
        room_id: str | None = None,
    ) -> list[Event]:
        """List events ordered by start, optionally filtered.

        Args:
            window: Only events starting inside [window.start, window.end)
            module_ids: Only events of these modules
            teacher_id: Only events of this teacher
            room_id: Only events in this room
        """
        query = select(events_table)
        if window is not None:
            query = query.where(
                events_table.c.start_at >= to_db(window.start),
                events_table.c.start_at < to_db(window.end),
            )
        if module_ids is not None:
            query = query.where(events_table.c.module_id.in_(list(module_ids)))
        if teacher_id is not None:
            query = query.where(events_table.c.teacher_id == teacher_id)
        if room_id is not None:
            query = query.where(events_table.c.room_id == room_id)

        with transaction(self.engine) as conn:
            rows = conn.execute(
                query.order_by(events_table.c.start_at, events_table.c.title)
            ).all()
        return [_row_to_event(row) for row in rows]

    def count_module_blocks(self, module_id: str, window: Interval | None = None) -> int:
        """Blocks committed for a module, counting multi-block events in full."""
        with transaction(self.engine) as conn:
            return self._module_blocks(conn, module_id, window)

    def count(self) -> int:
        """Total number of stored events."""
        with transaction(self.engine) as conn:
            return conn.execute(select(func.count()).select_from(events_table)).scalar_one()


class EventService:
    """Write path for events that keeps weekly load in step.

    Every create, update and delete goes through the store and then
    recomputes the load of each affected (teacher, ISO week) pair.
    """

    def __init__(self, store: EventStore, tracker: LoadTracker) -> None:
        self.store = store
        self.tracker = tracker

    def create(
        self,
        event: Event,
        block_limit: int | None = None,
        window: Interval | None = None,
    ) -> UpsertResult:
        """Upsert an event and refresh the touched weekly loads.

        ``block_limit`` and ``window`` are passed to EventStore.upsert.
        """
        result = self.store.upsert(event, block_limit=block_limit, window=window)
        if result.change is not None:
            self.tracker.refresh(change_week_keys(result.change))
        return result

    def create_blocks(
        self,
        title: str,
        day: date,
        block: int,
        block_count: int = 1,
        module_id: str | None = None,
        teacher_id: str | None = None,
        room_id: str | None = None,
        tz: tzinfo = timezone.utc,
    ) -> UpsertResult:
        """Create an event covering consecutive blocks on a local day."""
        if block_count < 1:
            raise ValidationError("block count must be at least 1", field="block_count")
        interval = block_interval(day, block, tz, block_count)
        return self.create(
            Event(
                title=title,
                start=interval.start,
                end=interval.end,
                module_id=module_id,
                teacher_id=teacher_id,
                room_id=room_id,
            )
        )

    def update(self, event_id: str, **changes: Any) -> EventChange:
        """Update an event and refresh both old and new weekly loads."""
        change = self.store.update(event_id, **changes)
        self.tracker.refresh(change_week_keys(change))
        return change

    def move(
        self,
        event_id: str,
        day: date,
        block: int,
        tz: tzinfo = timezone.utc,
        teacher_id: str | None = None,
        room_id: str | None = None,
    ) -> EventChange:
        """Move an event to another day/block, keeping its length.

        Teacher and room are replaced only when given.
        """
        current = self.store.get(event_id)
        if current is None:
            raise EventNotFoundError(event_id)
        block_count = max(1, round(current.duration_minutes / BLOCK_MINUTES))
        interval = block_interval(day, block, tz, block_count)
        changes: dict[str, Any] = {"start": interval.start, "end": interval.end}
        if teacher_id is not None:
            changes["teacher_id"] = teacher_id
        if room_id is not None:
            changes["room_id"] = room_id
        return self.update(event_id, **changes)

    def delete(self, event_id: str) -> EventChange:
        """Delete an event and refresh its weekly load."""
        change = self.store.delete(event_id)
        self.tracker.refresh(change_week_keys(change))
        return change
