"""Weekly timetable workbooks generated from stored events."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta, timezone, tzinfo
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from .catalog import Catalog
from .constants import (
    BLOCK_MINUTES,
    TEACHING_WEEKDAYS,
    WEEKDAY_NAMES,
    Shift,
    get_block_time_range,
    get_blocks_for_shift,
)
from .models import Event
from .utils import block_position

logger = logging.getLogger(__name__)

# Column widths
COLUMN_WIDTHS = {
    "A": 6.0,
    "B": 13.0,
    "C": 28.0,
    "D": 28.0,
    "E": 28.0,
    "F": 28.0,
    "G": 28.0,
}

DAY_COLUMNS = ["C", "D", "E", "F", "G"]

HEADER_ROW = 4
FIRST_DATA_ROW = 5

# Fonts
FONT_TITLE = Font(name="Calibri", size=14, bold=True)
FONT_SUBTITLE = Font(name="Calibri", size=11, italic=True)
FONT_HEADER = Font(name="Calibri", size=11, bold=True)
FONT_TIME = Font(name="Calibri", size=10)
FONT_CELL = Font(name="Calibri", size=10)

# Alignments
ALIGN_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)

# Borders
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

FILL_HEADER = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
FILL_BUSY = PatternFill(start_color="E2EFDA", end_color="E2EFDA", fill_type="solid")


@dataclass
class PlacedEvent:
    """An event positioned on the local block grid."""

    event: Event
    day: date
    block: int


class TimetableExcelGenerator:
    """Builds one workbook per program and ISO week."""

    def __init__(self, catalog: Catalog, tz: tzinfo = timezone.utc):
        self.catalog = catalog
        self.tz = tz

    def place_events(self, events: list[Event]) -> list[PlacedEvent]:
        """Expand events into one entry per covered block.

        Events that do not start on the block grid are skipped.
        """
        placed = []
        for event in events:
            position = block_position(event.start, self.tz)
            if position is None:
                logger.warning(f"Event '{event.title}' starts off the block grid; skipped")
                continue
            day, block = position
            count = max(1, round(event.duration_minutes / BLOCK_MINUTES))
            placed.extend(PlacedEvent(event, day, block + i) for i in range(count))
        return placed

    def group_by_program_week(
        self, placed: list[PlacedEvent]
    ) -> dict[tuple[str, int, int], list[PlacedEvent]]:
        """Group placed events by (program id, ISO year, ISO week)."""
        groups: dict[tuple[str, int, int], list[PlacedEvent]] = defaultdict(list)
        for item in placed:
            module = self.catalog.get_module(item.event.module_id) if item.event.module_id else None
            if module is None:
                continue
            iso = item.day.isocalendar()
            groups[(module.program_id, iso[0], iso[1])].append(item)
        return groups

    def format_cell_content(self, event: Event) -> str:
        """Format an event as module / teacher / room lines."""
        module = self.catalog.get_module(event.module_id) if event.module_id else None
        teacher = self.catalog.get_teacher(event.teacher_id) if event.teacher_id else None
        room = self.catalog.get_room(event.room_id) if event.room_id else None
        lines = [module.name if module else event.title]
        lines.append(teacher.name if teacher else (event.teacher_id or ""))
        lines.append(room.name if room else (event.room_id or ""))
        return "\n".join(line for line in lines if line)

    def blocks_to_display(self, placed: list[PlacedEvent], shift: Shift | None) -> list[int]:
        """Blocks of the shift, or every occupied block when no shift is given."""
        if shift is not None:
            return get_blocks_for_shift(shift)
        return sorted({item.block for item in placed})

    def create_workbook(
        self,
        program_id: str,
        iso_year: int,
        iso_week: int,
        placed: list[PlacedEvent],
        shift: Shift | None = None,
    ) -> Workbook:
        """Create a timetable workbook for one program week."""
        wb = Workbook()
        ws = wb.active
        ws.title = f"{iso_year}-W{iso_week:02d}"

        for col, width in COLUMN_WIDTHS.items():
            ws.column_dimensions[col].width = width

        program = self.catalog.get_program(program_id)
        monday = date.fromisocalendar(iso_year, iso_week, 1)
        friday = monday + timedelta(days=4)

        ws.merge_cells("A1:G1")
        ws["A1"] = program.name if program else program_id
        ws["A1"].font = FONT_TITLE
        ws["A1"].alignment = ALIGN_CENTER
        ws.merge_cells("A2:G2")
        ws["A2"] = f"Week {iso_week}, {monday.isoformat()} to {friday.isoformat()}"
        ws["A2"].font = FONT_SUBTITLE
        ws["A2"].alignment = ALIGN_CENTER

        headers = ["#", "Time"] + [WEEKDAY_NAMES[d].capitalize() for d in TEACHING_WEEKDAYS]
        for col, header in zip(["A", "B"] + DAY_COLUMNS, headers):
            cell = ws[f"{col}{HEADER_ROW}"]
            cell.value = header
            cell.font = FONT_HEADER
            cell.alignment = ALIGN_CENTER
            cell.border = THIN_BORDER
            cell.fill = FILL_HEADER

        cells: dict[tuple[int, int], list[str]] = defaultdict(list)
        for item in placed:
            cells[(item.day.weekday(), item.block)].append(self.format_cell_content(item.event))

        for offset, block in enumerate(self.blocks_to_display(placed, shift)):
            row = FIRST_DATA_ROW + offset
            ws.row_dimensions[row].height = 48.0
            ws[f"A{row}"] = block
            ws[f"B{row}"] = get_block_time_range(block)
            for col in ("A", "B"):
                ws[f"{col}{row}"].font = FONT_TIME
                ws[f"{col}{row}"].alignment = ALIGN_CENTER
                ws[f"{col}{row}"].border = THIN_BORDER

            for weekday, col in zip(TEACHING_WEEKDAYS, DAY_COLUMNS):
                cell = ws[f"{col}{row}"]
                cell.font = FONT_CELL
                cell.alignment = ALIGN_CENTER
                cell.border = THIN_BORDER
                entries = cells.get((weekday, block))
                if entries:
                    cell.value = "\n\n".join(entries)
                    cell.fill = FILL_BUSY

        return wb

    def save(self, wb: Workbook, output_path: Path) -> None:
        """Save workbook to file."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)


def generate_timetable_excel(
    events: list[Event],
    catalog: Catalog,
    output_dir: Path,
    program_id: str | None = None,
    shift: Shift | None = None,
    tz: tzinfo = timezone.utc,
) -> list[Path]:
    """Generate weekly timetable workbooks from events.

    Args:
        events: Events to lay out
        catalog: Catalog used to resolve names and owning programs
        output_dir: Output directory for Excel files
        program_id: Only this program, or None for all
        shift: Rows to show; None shows only occupied blocks
        tz: Local timezone of the block grid

    Returns:
        List of generated file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    generator = TimetableExcelGenerator(catalog, tz)
    groups = generator.group_by_program_week(generator.place_events(events))

    generated_files: list[Path] = []
    for (program, iso_year, iso_week), placed in sorted(groups.items()):
        if program_id and program != program_id:
            continue
        wb = generator.create_workbook(program, iso_year, iso_week, placed, shift)
        output_file = output_dir / f"timetable_{program}_{iso_year}W{iso_week:02d}.xlsx"
        generator.save(wb, output_file)
        generated_files.append(output_file)

    logger.info(f"Generated {len(generated_files)} timetable workbooks in {output_dir}")
    return generated_files
