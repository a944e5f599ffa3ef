"""Tests for SlotScorer."""

from datetime import datetime, timedelta, timezone

import pytest

from block_scheduler.scheduler.models import Candidate, Interval, Room, Teacher
from block_scheduler.scheduler.scoring import SlotScorer, rank_priorities

START = datetime(2025, 3, 3, 8, 30, tzinfo=timezone.utc)
INTERVAL = Interval(START, START + timedelta(minutes=35))


def candidate(priority=1, rank=0, levels=2, cap_hours=10, used=0, room="R1", preferred=(), adjacent=False):
    return Candidate(
        teacher=Teacher(id="T", name="T", weekly_hours_cap=cap_hours, priority=priority),
        room=Room(id=room, name=room, capacity=30),
        interval=INTERVAL,
        minutes_used=used,
        preferred_room_ids=frozenset(preferred),
        adjacent=adjacent,
        priority_rank=rank,
        priority_levels=levels,
    )


class TestRankPriorities:
    """Tests for mapping priority numbers to ranks."""

    def test_distinct_values_ranked_ascending(self):
        assert rank_priorities([5, 1, 1500, 5]) == {1: 0, 5: 1, 1500: 2}

    def test_large_numbers_keep_order(self):
        assert rank_priorities([1500, 1000]) == {1000: 0, 1500: 1}

    def test_empty(self):
        assert rank_priorities([]) == {}


class TestSlotScorer:
    """Tests for the dominance order of score terms."""

    def test_score_is_deterministic(self):
        scorer = SlotScorer()
        c = candidate(used=140, preferred=("R1",), adjacent=True)
        assert scorer.score(c) == scorer.score(c)

    def test_lower_priority_number_wins_regardless_of_load(self):
        scorer = SlotScorer()
        nearly_full = candidate(priority=1, rank=0, used=565)
        idle = candidate(priority=2, rank=1, used=0, preferred=("R1",), adjacent=True)
        assert scorer.score(nearly_full) > scorer.score(idle)

    def test_priorities_above_one_thousand_stay_ordered(self):
        scorer = SlotScorer()
        ranks = rank_priorities([1000, 1500])
        busy = candidate(priority=1000, rank=ranks[1000], levels=len(ranks), used=35)
        idle = candidate(priority=1500, rank=ranks[1500], levels=len(ranks), used=0)
        assert scorer.score(busy) > scorer.score(idle) > 0

    def test_lighter_load_wins_over_bonuses(self):
        scorer = SlotScorer()
        idle = candidate(used=0)
        busier = candidate(used=60, preferred=("R1",), adjacent=True)
        assert scorer.score(idle) > scorer.score(busier)

    def test_preferred_room_wins_over_contiguity(self):
        scorer = SlotScorer()
        preferred = candidate(preferred=("R1",))
        adjacent = candidate(adjacent=True)
        assert scorer.score(preferred) > scorer.score(adjacent)

    def test_contiguity_breaks_remaining_ties(self):
        scorer = SlotScorer()
        assert scorer.score(candidate(adjacent=True)) > scorer.score(candidate())

    def test_worst_rank_still_feasible(self):
        scorer = SlotScorer()
        assert scorer.score(candidate(priority=999, rank=4, levels=5, used=600)) > 0

    def test_zero_cap_scores_zero(self):
        scorer = SlotScorer()
        assert scorer.score(candidate(cap_hours=0, preferred=("R1",))) == 0

    def test_rank_outside_levels_scores_zero(self):
        scorer = SlotScorer()
        assert scorer.score(candidate(rank=2, levels=2, adjacent=True)) == 0

    def test_breakdown_terms(self):
        scorer = SlotScorer()
        terms = scorer.breakdown(candidate(rank=0, levels=1, used=0, preferred=("R1",)))
        assert terms == {"priority": 10_000, "load": 1000, "preferred_room": 4, "contiguous": 0}

    def test_weights_breaking_dominance_rejected(self):
        with pytest.raises(ValueError):
            SlotScorer({"preferred_room": 2, "contiguous": 3})
        with pytest.raises(ValueError):
            SlotScorer({"load_step": 5})
        with pytest.raises(ValueError):
            SlotScorer({"priority": 500})
