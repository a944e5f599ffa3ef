"""Test fixtures for block scheduler tests."""

from datetime import date, datetime, timezone

import pytest

from block_scheduler.scheduler.algorithm import BlockScheduler
from block_scheduler.scheduler.catalog import Catalog, CatalogRepository
from block_scheduler.scheduler.clock import FixedClock
from block_scheduler.scheduler.events import EventService, EventStore
from block_scheduler.scheduler.load import LoadTracker
from block_scheduler.scheduler.models import Module, Program, ProgramLink, Room, Teacher
from block_scheduler.scheduler.storage import create_store_engine, init_schema

# Monday of ISO week 2025-W10
MONDAY = date(2025, 3, 3)


@pytest.fixture
def monday():
    return MONDAY


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 3, 7, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine():
    """In-memory event store with schema and triggers."""
    engine = create_store_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return EventStore(engine)


@pytest.fixture
def tracker(engine):
    return LoadTracker(engine)


@pytest.fixture
def service(store, tracker):
    return EventService(store, tracker)


@pytest.fixture
def sample_catalog():
    """One program, one 2-block module, one teacher and one room."""
    return Catalog(
        programs=[Program(id="P1", name="Informatics")],
        modules=[Module(id="M1", name="Databases", program_id="P1", weekly_minutes=70)],
        teachers=[Teacher(id="T1", name="Ana Rojas", weekly_hours_cap=10)],
        links=[ProgramLink(teacher_id="T1", program_id="P1", priority=1)],
        rooms=[Room(id="R1", name="Lab 101", capacity=30)],
    )


@pytest.fixture
def make_scheduler(store, service, clock):
    """Build a scheduler over the shared in-memory store for a catalog."""

    def _make(catalog: Catalog, **kwargs) -> BlockScheduler:
        return BlockScheduler(CatalogRepository(catalog, store), service, clock=clock, **kwargs)

    return _make


@pytest.fixture
def reference_dir(tmp_path):
    """Reference directory with a small but complete catalog."""
    ref = tmp_path / "reference"
    ref.mkdir()
    (ref / "programs.csv").write_text(
        "id,name,preferred_rooms\n"
        "P1,Informatics,R2\n"
        "P2,Nursing,\n",
        encoding="utf-8",
    )
    (ref / "modules.csv").write_text(
        "id,name,program_id,weekly_minutes,subject_code,preferred_rooms\n"
        "M1,Databases,P1,70,INF-210,\n"
        "M2,Networks,P1,35,INF-220,R1\n"
        "M3,Anatomy,P2,105,ENF-101,\n",
        encoding="utf-8",
    )
    (ref / "teachers.csv").write_text(
        "id,name,weekly_hours_cap,active,national_id\n"
        "T1,Ana Rojas,10,true,12.345.678-5\n"
        "T2,Luis Soto,4.5,yes,9.876.543-K\n"
        "T3,Marta Vidal,8,false,\n",
        encoding="utf-8",
    )
    (ref / "program-teachers.csv").write_text(
        "teacher_id,program_id,priority,active\n"
        "T1,P1,1,true\n"
        "T2,P1,2,true\n"
        "T3,P1,1,true\n"
        "T2,P2,,true\n",
        encoding="utf-8",
    )
    (ref / "rooms.csv").write_text(
        "id,name,capacity,programs\n"
        "R1,Lab 101,30,P1\n"
        "R2,Room 202,45,\n",
        encoding="utf-8",
    )
    (ref / "teacher-availability.json").write_text(
        '[{"teacher_id": "T2", "rules": ['
        '{"weekday": "monday", "mode": "deny", "blocks": [1, 2]},'
        '{"weekday": 4, "mode": "deny"}'
        "]}]",
        encoding="utf-8",
    )
    return ref
