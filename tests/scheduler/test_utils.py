"""Tests for block and week utility functions."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from block_scheduler.scheduler.constants import (
    Shift,
    blocks_needed,
    get_block_start_time,
    get_block_time_range,
    get_blocks_for_shift,
)
from block_scheduler.scheduler.models import Event, EventChange, Module, Teacher, WeekKey
from block_scheduler.scheduler.utils import (
    block_interval,
    block_position,
    change_week_keys,
    horizon_window,
    iso_week_bounds,
    iso_week_of,
    parse_bool,
    parse_date,
    split_ids,
    weekday_index,
)


class TestBlocksNeeded:
    """Tests for blocks_needed function."""

    def test_exact_multiple(self):
        assert blocks_needed(70) == 2

    def test_rounds_up(self):
        assert blocks_needed(36) == 2

    def test_zero_and_negative(self):
        assert blocks_needed(0) == 0
        assert blocks_needed(-35) == 0

    def test_module_required_blocks(self):
        assert Module(id="M", name="M", program_id="P", weekly_minutes=100).required_blocks == 3

    def test_teacher_cap_minutes(self):
        assert Teacher(id="T", name="T", weekly_hours_cap=1.75).cap_minutes == 105


class TestBlockGrid:
    """Tests for block times and shifts."""

    def test_day_shift_blocks(self):
        assert get_blocks_for_shift(Shift.DAY) == list(range(1, 12))

    def test_evening_shift_blocks(self):
        assert get_blocks_for_shift(Shift.EVENING) == [18, 19, 20, 21, 22]

    def test_block_start_times(self):
        assert get_block_start_time(1) == "08:30"
        assert get_block_start_time(2) == "09:05"
        assert get_block_start_time(0) == ""

    def test_block_time_range(self):
        assert get_block_time_range(1) == "08:30-09:05"

    def test_block_interval_utc(self):
        interval = block_interval(date(2025, 3, 3), 1)
        assert interval.start == datetime(2025, 3, 3, 8, 30, tzinfo=timezone.utc)
        assert interval.minutes == 35

    def test_block_interval_multi_block(self):
        interval = block_interval(date(2025, 3, 3), 2, block_count=3)
        assert interval.start == datetime(2025, 3, 3, 9, 5, tzinfo=timezone.utc)
        assert interval.minutes == 105

    def test_block_interval_local_timezone(self):
        santiago = ZoneInfo("America/Santiago")
        interval = block_interval(date(2025, 7, 7), 1, santiago)
        # Santiago is UTC-4 in July
        assert interval.start == datetime(2025, 7, 7, 12, 30, tzinfo=timezone.utc)

    def test_block_position_round_trip(self):
        interval = block_interval(date(2025, 3, 5), 7)
        assert block_position(interval.start) == (date(2025, 3, 5), 7)

    def test_block_position_off_grid(self):
        assert block_position(datetime(2025, 3, 5, 8, 40, tzinfo=timezone.utc)) is None
        assert block_position(datetime(2025, 3, 5, 7, 0, tzinfo=timezone.utc)) is None


class TestIsoWeeks:
    """Tests for ISO week helpers."""

    def test_iso_week_of_monday(self):
        assert iso_week_of(datetime(2025, 3, 3, 8, 30, tzinfo=timezone.utc)) == (2025, 10)

    def test_iso_week_uses_utc_day(self):
        # 2025-03-10 01:00 in UTC+3 is still Sunday 2025-03-09 22:00 UTC
        moment = datetime(2025, 3, 10, 1, 0, tzinfo=timezone(timedelta(hours=3)))
        assert iso_week_of(moment) == (2025, 10)

    def test_week_53(self):
        assert iso_week_of(datetime(2020, 12, 31, 9, 0, tzinfo=timezone.utc)) == (2020, 53)

    def test_year_boundary(self):
        # 2024-12-30 belongs to 2025-W01
        assert iso_week_of(datetime(2024, 12, 30, 9, 0, tzinfo=timezone.utc)) == (2025, 1)

    def test_iso_week_bounds(self):
        bounds = iso_week_bounds(2025, 10)
        assert bounds.start == datetime(2025, 3, 3, tzinfo=timezone.utc)
        assert bounds.end == datetime(2025, 3, 10, tzinfo=timezone.utc)

    def test_horizon_window_starts_on_monday(self):
        window = horizon_window(date(2025, 3, 5), 2)
        assert window.start == datetime(2025, 3, 3, tzinfo=timezone.utc)
        assert window.end == datetime(2025, 3, 17, tzinfo=timezone.utc)

    def test_change_week_keys_old_and_new(self):
        old = Event(title="A", start=datetime(2025, 3, 3, 8, 30, tzinfo=timezone.utc),
                    end=datetime(2025, 3, 3, 9, 5, tzinfo=timezone.utc), teacher_id="T1")
        new = Event(title="A", start=datetime(2025, 3, 10, 8, 30, tzinfo=timezone.utc),
                    end=datetime(2025, 3, 10, 9, 5, tzinfo=timezone.utc), teacher_id="T2")
        keys = change_week_keys(EventChange(previous=old, current=new))
        assert keys == [WeekKey("T1", 2025, 10), WeekKey("T2", 2025, 11)]

    def test_change_week_keys_skips_unassigned(self):
        event = Event(title="A", start=datetime(2025, 3, 3, 8, 30, tzinfo=timezone.utc),
                      end=datetime(2025, 3, 3, 9, 5, tzinfo=timezone.utc))
        assert change_week_keys(EventChange(previous=None, current=event)) == []


class TestParsing:
    """Tests for reference-file cell parsing."""

    def test_parse_date(self):
        assert parse_date("2025-03-03") == date(2025, 3, 3)
        assert parse_date("2025-03-03T10:00:00") == date(2025, 3, 3)
        assert parse_date("") is None

    def test_parse_date_invalid(self):
        with pytest.raises(ValueError):
            parse_date("03/03/2025")

    def test_split_ids(self):
        assert split_ids("R1; R2;;") == ["R1", "R2"]
        assert split_ids(None) == []

    def test_parse_bool(self):
        assert parse_bool("yes")
        assert parse_bool("TRUE")
        assert not parse_bool("false")
        assert parse_bool("", default=True)
        assert not parse_bool(None, default=False)

    def test_weekday_index(self):
        assert weekday_index("monday") == 0
        assert weekday_index("Fri") == 4
        assert weekday_index("3") == 3
        assert weekday_index(2) == 2
        assert weekday_index("someday") is None
