"""Tests for the weekly timetable workbook generator."""

from datetime import datetime, timedelta, timezone

from openpyxl import load_workbook

from block_scheduler.scheduler.catalog import Catalog
from block_scheduler.scheduler.constants import Shift
from block_scheduler.scheduler.excel_generator import TimetableExcelGenerator, generate_timetable_excel
from block_scheduler.scheduler.models import Event, Module, Program, Room, Teacher
from block_scheduler.scheduler.utils import block_interval

CATALOG = Catalog(
    programs=[Program(id="P1", name="Informatics"), Program(id="P2", name="Nursing")],
    modules=[
        Module(id="M1", name="Databases", program_id="P1", weekly_minutes=70),
        Module(id="M3", name="Anatomy", program_id="P2", weekly_minutes=35),
    ],
    teachers=[Teacher(id="T1", name="Ana Rojas", weekly_hours_cap=10)],
    rooms=[Room(id="R1", name="Lab 101", capacity=30)],
)


def make_event(day, block, module_id="M1", title="Databases", count=1, teacher_id="T1", room_id="R1"):
    interval = block_interval(day, block, block_count=count)
    return Event(
        title=title,
        start=interval.start,
        end=interval.end,
        module_id=module_id,
        teacher_id=teacher_id,
        room_id=room_id,
    )


class TestTimetableExcelGenerator:
    """Tests for placing and formatting events."""

    def test_multi_block_event_placed_per_block(self, monday):
        generator = TimetableExcelGenerator(CATALOG)
        placed = generator.place_events([make_event(monday, 3, count=2)])
        assert [(p.day, p.block) for p in placed] == [(monday, 3), (monday, 4)]

    def test_off_grid_event_skipped(self):
        start = datetime(2025, 3, 3, 8, 40, tzinfo=timezone.utc)
        event = Event(title="Odd", start=start, end=start + timedelta(minutes=35), module_id="M1")
        assert TimetableExcelGenerator(CATALOG).place_events([event]) == []

    def test_grouped_by_program_and_week(self, monday):
        generator = TimetableExcelGenerator(CATALOG)
        placed = generator.place_events(
            [
                make_event(monday, 1),
                make_event(monday + timedelta(days=7), 1),
                make_event(monday, 2, module_id="M3", title="Anatomy"),
                make_event(monday, 4, module_id=None, title="Meeting"),
            ]
        )
        groups = generator.group_by_program_week(placed)
        assert sorted(groups) == [("P1", 2025, 10), ("P1", 2025, 11), ("P2", 2025, 10)]

    def test_cell_content_uses_names(self, monday):
        content = TimetableExcelGenerator(CATALOG).format_cell_content(make_event(monday, 1))
        assert content == "Databases\nAna Rojas\nLab 101"

    def test_cell_content_falls_back_to_ids(self, monday):
        event = make_event(monday, 1, module_id=None, title="Exam", teacher_id="T9", room_id=None)
        assert TimetableExcelGenerator(CATALOG).format_cell_content(event) == "Exam\nT9"


class TestGenerateTimetableExcel:
    """Tests for workbook files on disk."""

    def test_one_file_per_program_week(self, tmp_path, monday):
        events = [make_event(monday, 1), make_event(monday, 2, module_id="M3", title="Anatomy")]
        files = generate_timetable_excel(events, CATALOG, tmp_path)
        assert [f.name for f in files] == ["timetable_P1_2025W10.xlsx", "timetable_P2_2025W10.xlsx"]
        assert all(f.exists() for f in files)

    def test_program_filter(self, tmp_path, monday):
        events = [make_event(monday, 1), make_event(monday, 2, module_id="M3", title="Anatomy")]
        files = generate_timetable_excel(events, CATALOG, tmp_path, program_id="P2")
        assert [f.name for f in files] == ["timetable_P2_2025W10.xlsx"]

    def test_workbook_layout(self, tmp_path, monday):
        events = [make_event(monday + timedelta(days=2), 2)]
        (path,) = generate_timetable_excel(events, CATALOG, tmp_path, shift=Shift.DAY)

        ws = load_workbook(path).active
        assert ws.title == "2025-W10"
        assert ws["A1"].value == "Informatics"
        assert ws["A2"].value == "Week 10, 2025-03-03 to 2025-03-07"
        assert [ws[f"{c}4"].value for c in "ABCDEFG"] == [
            "#", "Time", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday",
        ]
        # Day shift shows blocks 1..11 starting at row 5
        assert ws["A5"].value == 1
        assert ws["B5"].value == "08:30-09:05"
        assert ws["A15"].value == 11
        assert ws["E6"].value == "Databases\nAna Rojas\nLab 101"
        assert ws["E5"].value is None

    def test_without_shift_only_occupied_blocks(self, tmp_path, monday):
        events = [make_event(monday, 7), make_event(monday, 3)]
        (path,) = generate_timetable_excel(events, CATALOG, tmp_path)
        ws = load_workbook(path).active
        assert [ws["A5"].value, ws["A6"].value, ws["A7"].value] == [3, 7, None]
