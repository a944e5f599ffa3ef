"""Conflict and availability checks for candidate slots."""

import logging
from datetime import date
from typing import TYPE_CHECKING

from .events import EventStore
from .models import AvailabilityRule, Interval, RuleMode

if TYPE_CHECKING:
    from .catalog import CatalogRepository

logger = logging.getLogger(__name__)


class ConflictChecker:
    """Answers whether a teacher or room can take a time interval.

    Every check reads the event store directly, so an event committed a
    moment ago (by this run or by another writer) is seen by the next check.
    The overlap test mirrors the storage exclusion triggers:
    ``existing.start < interval.end and existing.end > interval.start``.
    """

    def __init__(self, store: EventStore, catalog: "CatalogRepository | None" = None) -> None:
        self.store = store
        self.catalog = catalog

    def is_teacher_free(self, teacher_id: str, interval: Interval) -> bool:
        """Check that no committed event of the teacher overlaps the interval."""
        conflicts = self.store.find_overlapping(interval, teacher_id=teacher_id)
        if conflicts:
            logger.debug(
                f"Teacher {teacher_id} busy at {interval.start.isoformat()} "
                f"({conflicts[0].title})"
            )
            return False
        return True

    def is_room_free(self, room_id: str, interval: Interval) -> bool:
        """Check that no committed event in the room overlaps the interval."""
        return not self.store.find_overlapping(interval, room_id=room_id)

    def _rules_for(self, teacher_id: str) -> list[AvailabilityRule]:
        if self.catalog is None:
            return []
        return self.catalog.availability_rules(teacher_id)

    def is_teacher_available_by_policy(
        self, teacher_id: str, weekday: int, block: int, on: date
    ) -> bool:
        """Check explicit availability rules for a weekday/block.

        Deny rules always win. When the teacher has allow rules in force on
        that date, the slot must be covered by one of them. Without rules the
        teacher is available.

        Args:
            teacher_id: Teacher to check
            weekday: 0 = Monday .. 4 = Friday
            block: Block index
            on: Calendar date of the slot

        Returns:
            True if policy permits teaching at that slot
        """
        rules = [r for r in self._rules_for(teacher_id) if r.applies_on(on)]
        if not rules:
            return True

        if any(r.mode == RuleMode.DENY and r.matches(weekday, block, on) for r in rules):
            return False

        allow_rules = [r for r in rules if r.mode == RuleMode.ALLOW]
        if not allow_rules:
            return True
        return any(r.matches(weekday, block, on) for r in allow_rules)

    def has_adjacent_assignment(self, module_id: str, teacher_id: str, interval: Interval) -> bool:
        """Check for an event of the same module and teacher right before or after."""
        return bool(self.store.find_adjacent(module_id, teacher_id, interval))

    def is_slot_available(
        self,
        teacher_id: str,
        room_id: str,
        interval: Interval,
        weekday: int,
        block: int,
        on: date,
    ) -> bool:
        """Combined policy, teacher and room check for one candidate."""
        return (
            self.is_teacher_available_by_policy(teacher_id, weekday, block, on)
            and self.is_teacher_free(teacher_id, interval)
            and self.is_room_free(room_id, interval)
        )
