"""Data models for the weekly block scheduler."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from .constants import DEFAULT_PRIORITY, WEEKDAY_NAMES, Shift, blocks_needed


class RuleMode(str, Enum):
    """Whether an availability rule permits or forbids teaching."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass
class Program:
    """A study program that owns modules."""

    id: str
    name: str
    preferred_room_ids: list[str] = field(default_factory=list)


@dataclass
class Module:
    """A course module with a weekly teaching requirement."""

    id: str
    name: str
    program_id: str
    weekly_minutes: int
    subject_code: str = ""
    preferred_room_ids: list[str] = field(default_factory=list)

    @property
    def required_blocks(self) -> int:
        """Blocks per week needed to cover the weekly minutes."""
        return blocks_needed(self.weekly_minutes)


@dataclass
class ProgramLink:
    """Links a teacher to a program with a selection priority."""

    teacher_id: str
    program_id: str
    priority: int = DEFAULT_PRIORITY
    active: bool = True


@dataclass
class Teacher:
    """A teacher with a contracted weekly cap.

    ``priority`` is the rank within the program the teacher was listed for;
    it is filled in by the catalog repository from the matching ProgramLink.
    """

    id: str
    name: str
    weekly_hours_cap: float
    active: bool = True
    national_id: str = ""
    priority: int = DEFAULT_PRIORITY

    @property
    def cap_minutes(self) -> int:
        return int(round(self.weekly_hours_cap * 60))


@dataclass
class AvailabilityRule:
    """Explicit allow/deny rule for a teacher on a weekday."""

    teacher_id: str
    weekday: int
    mode: RuleMode = RuleMode.DENY
    blocks: frozenset[int] = frozenset()
    valid_from: date | None = None
    valid_until: date | None = None

    def applies_on(self, on: date) -> bool:
        """Check whether the rule is in force on a date."""
        if self.valid_from and on < self.valid_from:
            return False
        if self.valid_until and on > self.valid_until:
            return False
        return True

    def matches(self, weekday: int, block: int, on: date) -> bool:
        """Check whether the rule covers a (weekday, block) on a date."""
        if weekday != self.weekday or not self.applies_on(on):
            return False
        return not self.blocks or block in self.blocks


@dataclass
class Room:
    """A physical room."""

    id: str
    name: str
    capacity: int
    program_ids: list[str] = field(default_factory=list)

    def is_usable_by(self, program_id: str) -> bool:
        """Rooms without a restriction list are open to every program."""
        return not self.program_ids or program_id in self.program_ids


@dataclass(frozen=True)
class Interval:
    """Half-open time interval [start, end)."""

    start: datetime
    end: datetime

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and self.end > other.start

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass
class Event:
    """A concrete scheduled event with typed links."""

    title: str
    start: datetime
    end: datetime
    module_id: str | None = None
    teacher_id: str | None = None
    room_id: str | None = None
    id: str | None = None

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)

    @property
    def natural_key(self) -> tuple[str, datetime, datetime]:
        return (self.title, self.start, self.end)

    @property
    def duration_minutes(self) -> int:
        return self.interval.minutes

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "module_id": self.module_id,
            "teacher_id": self.teacher_id,
            "room_id": self.room_id,
        }


@dataclass(frozen=True)
class WeekKey:
    """Identifies one teacher's ISO week."""

    teacher_id: str
    iso_year: int
    iso_week: int


@dataclass
class WeeklyLoad:
    """Derived minutes a teacher is scheduled in one ISO week."""

    teacher_id: str
    iso_year: int
    iso_week: int
    minutes_used: int

    @property
    def key(self) -> WeekKey:
        return WeekKey(self.teacher_id, self.iso_year, self.iso_week)


@dataclass
class EventChange:
    """Previous and current state of an event after a write."""

    previous: Event | None
    current: Event | None


@dataclass
class UpsertResult:
    """Outcome of an event upsert.

    ``change`` is None when the call was deduplicated and nothing was written.
    """

    id: str
    dedup: bool
    change: EventChange | None = None


@dataclass
class PendingModule:
    """A module together with the blocks already committed in the horizon."""

    module: Module
    satisfied: int

    @property
    def required(self) -> int:
        return self.module.required_blocks

    @property
    def remaining(self) -> int:
        return max(0, self.required - self.satisfied)


@dataclass
class ScheduleRequest:
    """Input of a scheduling run."""

    program_id: str
    num_weeks: int = 1
    start_date: date | None = None
    shift: Shift = Shift.DAY

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleRequest":
        """Create a request from a JSON-like dictionary."""
        start = data.get("start_date")
        if isinstance(start, str) and start:
            start = date.fromisoformat(start[:10])
        return cls(
            program_id=str(data.get("program_id") or "").strip(),
            num_weeks=data.get("num_weeks", 1),
            start_date=start or None,
            shift=Shift(data.get("shift", Shift.DAY.value)),
        )


@dataclass
class Candidate:
    """A (teacher, room, slot) option evaluated by the scorer."""

    teacher: Teacher
    room: Room
    interval: Interval
    minutes_used: int
    preferred_room_ids: frozenset[str] = frozenset()
    adjacent: bool = False
    # Rank of the teacher's priority among the eligible teachers (0 = best)
    priority_rank: int = 0
    priority_levels: int = 1


@dataclass
class Assignment:
    """A block committed by the scheduler."""

    event_id: str
    module_id: str
    teacher_id: str
    room_id: str
    start: datetime
    end: datetime
    weekday: int
    block: int
    score: int

    def to_dict(self) -> dict[str, Any]:
        """Convert assignment to dictionary."""
        return {
            "event_id": self.event_id,
            "module_id": self.module_id,
            "teacher_id": self.teacher_id,
            "room_id": self.room_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "weekday": WEEKDAY_NAMES[self.weekday],
            "block": self.block,
            "score": self.score,
        }


@dataclass
class UnmetModule:
    """A module whose requirement could not be fully met."""

    module_id: str
    required: int
    satisfied: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_id": self.module_id,
            "required": self.required,
            "satisfied": self.satisfied,
        }


@dataclass
class ScheduleStatistics:
    """Statistics about a scheduling run."""

    pending_modules: int = 0
    positions_visited: int = 0
    lost_races: int = 0
    by_weekday: dict[str, int] = field(default_factory=dict)
    by_teacher: dict[str, int] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "pending_modules": self.pending_modules,
            "positions_visited": self.positions_visited,
            "lost_races": self.lost_races,
            "by_weekday": self.by_weekday,
            "by_teacher": self.by_teacher,
            "elapsed_seconds": self.elapsed_seconds,
        }


@dataclass
class ScheduleResult:
    """Result of a scheduling run."""

    program_id: str
    shift: Shift = Shift.DAY
    assignments: list[Assignment] = field(default_factory=list)
    unmet_modules: list[UnmetModule] = field(default_factory=list)
    statistics: ScheduleStatistics = field(default_factory=ScheduleStatistics)
    cancelled: bool = False
    generation_date: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def assigned_count(self) -> int:
        """Total number of committed blocks."""
        return len(self.assignments)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "generation_date": self.generation_date,
            "program_id": self.program_id,
            "shift": self.shift.value,
            "assigned_count": self.assigned_count,
            "assignments": [a.to_dict() for a in self.assignments],
            "unmet_modules": [u.to_dict() for u in self.unmet_modules],
            "cancelled": self.cancelled,
            "statistics": self.statistics.to_dict(),
        }
