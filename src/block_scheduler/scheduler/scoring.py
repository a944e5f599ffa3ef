"""Slot scoring for (teacher, room, slot) candidates.

Terms, in strict dominance order:
- priority: lower program priority number scores higher
- load balance: fewer minutes used relative to the weekly cap scores higher
- preferred room: room listed by the module or its program
- contiguity: slot touches an existing block of the same module and teacher

Each term's smallest step is larger than the largest possible sum of all the
terms below it, so a lower term can only break ties of the terms above.

The priority term works on ranks, not raw priority numbers: the best distinct
priority among the eligible teachers gets the highest level, the next one a
level lower, and so on. Any priority value therefore keeps its order.
"""

from collections.abc import Iterable

from .constants import SCORE_WEIGHTS
from .models import Candidate


def rank_priorities(priorities: Iterable[int]) -> dict[int, int]:
    """Map each distinct priority to its rank (0 = best, i.e. lowest number).

    Example:
        rank_priorities([5, 1, 1500, 5]) -> {1: 0, 5: 1, 1500: 2}
    """
    return {priority: rank for rank, priority in enumerate(sorted(set(priorities)))}


class SlotScorer:
    """Deterministic integer scorer. A score of 0 or less means infeasible."""

    def __init__(self, weights: dict[str, int] | None = None) -> None:
        self.weights = {**SCORE_WEIGHTS, **(weights or {})}
        self._check_dominance()

    def _check_dominance(self) -> None:
        w = self.weights
        bonus_max = w["preferred_room"] + w["contiguous"]
        load_max = w["load_step"] * w["load_steps"]
        if w["contiguous"] <= 0 or w["preferred_room"] <= w["contiguous"]:
            raise ValueError("preferred_room weight must exceed contiguous weight")
        if w["load_step"] <= bonus_max:
            raise ValueError("load_step must exceed the sum of the bonuses")
        if w["priority"] <= load_max + bonus_max:
            raise ValueError("priority weight must exceed every lower term combined")

    def priority_term(self, rank: int, levels: int) -> int:
        return max(0, levels - rank) * self.weights["priority"]

    def load_term(self, minutes_used: int, cap_minutes: int) -> int:
        steps = self.weights["load_steps"]
        remaining = max(0, cap_minutes - minutes_used)
        return (remaining * steps // cap_minutes) * self.weights["load_step"]

    def breakdown(self, candidate: Candidate) -> dict[str, int]:
        """Score terms for a candidate (all zero when the teacher has no cap)."""
        cap = candidate.teacher.cap_minutes
        if cap <= 0:
            return {"priority": 0, "load": 0, "preferred_room": 0, "contiguous": 0}
        return {
            "priority": self.priority_term(candidate.priority_rank, candidate.priority_levels),
            "load": self.load_term(candidate.minutes_used, cap),
            "preferred_room": (
                self.weights["preferred_room"]
                if candidate.room.id in candidate.preferred_room_ids
                else 0
            ),
            "contiguous": self.weights["contiguous"] if candidate.adjacent else 0,
        }

    def score(self, candidate: Candidate) -> int:
        """Total score; the same candidate always yields the same value."""
        terms = self.breakdown(candidate)
        if terms["priority"] <= 0:
            return 0
        return sum(terms.values())
