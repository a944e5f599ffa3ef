"""SQLite storage schema for events and derived weekly load.

Overlap exclusion is enforced by the database itself: ``BEFORE INSERT`` and
``BEFORE UPDATE`` triggers abort any write that would give a teacher or a room
two intersecting ``[start_at, end_at)`` intervals. Application-side conflict
checks are only a pre-filter in front of these triggers.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from ..exceptions import StorageUnavailableError
from .utils import ensure_utc

logger = logging.getLogger(__name__)

# Marker texts raised by the exclusion triggers
TEACHER_EXCLUSION = "exclusion:teacher"
ROOM_EXCLUSION = "exclusion:room"

# Milliseconds a writer waits on a locked database
BUSY_TIMEOUT_MS = 30000

metadata = MetaData()

events_table = Table(
    "events",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("start_at", DateTime, nullable=False),
    Column("end_at", DateTime, nullable=False),
    Column("module_id", String(64)),
    Column("teacher_id", String(64)),
    Column("room_id", String(64)),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    UniqueConstraint("title", "start_at", "end_at", name="uq_events_natural_key"),
)

Index("ix_events_teacher_start", events_table.c.teacher_id, events_table.c.start_at)
Index("ix_events_room_start", events_table.c.room_id, events_table.c.start_at)
Index("ix_events_module", events_table.c.module_id)

weekly_load_table = Table(
    "weekly_load",
    metadata,
    Column("teacher_id", String(64), primary_key=True),
    Column("iso_year", Integer, primary_key=True),
    Column("iso_week", Integer, primary_key=True),
    Column("minutes_used", Integer, nullable=False),
)


def _exclusion_trigger(name: str, operation: str, column: str, marker: str) -> str:
    """Build a trigger that aborts overlapping writes for one resource column."""
    same_row = "AND e.id <> NEW.id" if operation == "UPDATE" else ""
    return f"""
CREATE TRIGGER IF NOT EXISTS {name}
BEFORE {operation} ON events
WHEN NEW.{column} IS NOT NULL AND EXISTS (
    SELECT 1 FROM events e
     WHERE e.{column} = NEW.{column}
       AND e.start_at < NEW.end_at
       AND e.end_at > NEW.start_at
       {same_row}
)
BEGIN
    SELECT RAISE(ABORT, '{marker}');
END
"""


EXCLUSION_TRIGGERS = [
    _exclusion_trigger("events_teacher_overlap_insert", "INSERT", "teacher_id", TEACHER_EXCLUSION),
    _exclusion_trigger("events_teacher_overlap_update", "UPDATE", "teacher_id", TEACHER_EXCLUSION),
    _exclusion_trigger("events_room_overlap_insert", "INSERT", "room_id", ROOM_EXCLUSION),
    _exclusion_trigger("events_room_overlap_update", "UPDATE", "room_id", ROOM_EXCLUSION),
]


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def create_store_engine(url: str) -> Engine:
    """Create an engine for the event store.

    In-memory databases share one connection so every caller sees the same
    data. SQLite connections open every transaction with ``BEGIN IMMEDIATE``
    so concurrent writers queue on the busy timeout instead of failing on a
    lock upgrade.

    Args:
        url: SQLAlchemy database URL (SQLite only)

    Returns:
        Configured Engine
    """
    if not url.startswith("sqlite"):
        raise ValueError(f"Unsupported database URL '{url}': only SQLite is supported")

    if _is_memory_url(url):
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(url)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        # Hand transaction control to the "begin" hook below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_schema(engine: Engine) -> None:
    """Create tables, indexes and exclusion triggers if missing."""
    try:
        metadata.create_all(engine)
        with engine.begin() as conn:
            for ddl in EXCLUSION_TRIGGERS:
                conn.exec_driver_sql(ddl)
    except OperationalError as exc:
        raise StorageUnavailableError(str(exc.orig)) from exc
    logger.info(f"Event store schema ready at {engine.url}")


@contextmanager
def transaction(engine: Engine) -> Iterator[Connection]:
    """Run a block in one transaction, mapping lock/IO failures.

    Raises:
        StorageUnavailableError: If the database cannot be opened or stays locked
    """
    try:
        with engine.begin() as conn:
            yield conn
    except OperationalError as exc:
        raise StorageUnavailableError(str(exc.orig)) from exc


def to_db(value: datetime) -> datetime:
    """Normalize a timestamp to naive UTC for storage."""
    return ensure_utc(value).replace(tzinfo=None)


def from_db(value: datetime) -> datetime:
    """Attach UTC to a stored naive timestamp."""
    return ensure_utc(value)
