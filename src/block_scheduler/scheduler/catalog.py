"""Read-only catalog of programs, modules, teachers and rooms."""

from collections import defaultdict
from dataclasses import dataclass, field, replace

from .events import EventStore
from .models import (
    AvailabilityRule,
    Interval,
    Module,
    PendingModule,
    Program,
    ProgramLink,
    Room,
    Teacher,
)


@dataclass
class Catalog:
    """Catalog records as owned by the external catalog."""

    programs: list[Program] = field(default_factory=list)
    modules: list[Module] = field(default_factory=list)
    teachers: list[Teacher] = field(default_factory=list)
    links: list[ProgramLink] = field(default_factory=list)
    rooms: list[Room] = field(default_factory=list)
    availability: list[AvailabilityRule] = field(default_factory=list)

    def get_program(self, program_id: str) -> Program | None:
        for program in self.programs:
            if program.id == program_id:
                return program
        return None

    def get_module(self, module_id: str) -> Module | None:
        for module in self.modules:
            if module.id == module_id:
                return module
        return None

    def get_teacher(self, teacher_id: str) -> Teacher | None:
        for teacher in self.teachers:
            if teacher.id == teacher_id:
                return teacher
        return None

    def get_room(self, room_id: str) -> Room | None:
        for room in self.rooms:
            if room.id == room_id:
                return room
        return None


class CatalogRepository:
    """Queries the scheduler needs from the catalog.

    Pending work is computed against the event store: a module is pending
    while the blocks committed for it inside the horizon stay below its
    weekly requirement.
    """

    def __init__(self, catalog: Catalog, store: EventStore) -> None:
        self.catalog = catalog
        self.store = store
        self._rules: dict[str, list[AvailabilityRule]] = defaultdict(list)
        for rule in catalog.availability:
            self._rules[rule.teacher_id].append(rule)

    def get_program(self, program_id: str) -> Program | None:
        return self.catalog.get_program(program_id)

    def list_modules(self, program_id: str) -> list[Module]:
        return [m for m in self.catalog.modules if m.program_id == program_id]

    def list_pending_modules(self, program_id: str, window: Interval | None = None) -> list[PendingModule]:
        """Modules of a program still short of their required blocks.

        Args:
            program_id: Owning program
            window: Horizon in which committed blocks are counted
                    (all time when None)

        Returns:
            PendingModule entries in catalog order
        """
        pending = []
        for module in self.list_modules(program_id):
            if module.required_blocks == 0:
                continue
            satisfied = self.store.count_module_blocks(module.id, window)
            if satisfied < module.required_blocks:
                pending.append(PendingModule(module=module, satisfied=satisfied))
        return pending

    def list_eligible_teachers(self, program_id: str) -> list[Teacher]:
        """Active teachers with an active link to the program.

        Each returned teacher carries the link's priority; the list is sorted
        by (priority, name).
        """
        by_id: dict[str, Teacher] = {}
        for link in self.catalog.links:
            if link.program_id != program_id or not link.active:
                continue
            teacher = self.catalog.get_teacher(link.teacher_id)
            if teacher is None or not teacher.active:
                continue
            # Duplicate links keep the best priority
            known = by_id.get(teacher.id)
            if known is None or link.priority < known.priority:
                by_id[teacher.id] = replace(teacher, priority=link.priority)
        return sorted(by_id.values(), key=lambda t: (t.priority, t.name))

    def list_usable_rooms(self, program_id: str) -> list[Room]:
        """Rooms open to the program, sorted by (capacity desc, name asc)."""
        rooms = [r for r in self.catalog.rooms if r.is_usable_by(program_id)]
        return sorted(rooms, key=lambda r: (-r.capacity, r.name))

    def availability_rules(self, teacher_id: str) -> list[AvailabilityRule]:
        return self._rules.get(teacher_id, [])
