"""CLI entry point for the block scheduler."""

import logging
from datetime import date
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .exceptions import SchedulerError
from .linking import LegacyLinker, import_legacy_events
from .scheduler import (
    BlockScheduler,
    ScheduleRequest,
    Shift,
    create_scheduler,
    export_schedule_json,
    generate_timetable_excel,
)
from .scheduler.constants import WEEKDAY_NAMES, get_block_time_range
from .scheduler.utils import block_position, horizon_window
from .settings import Settings

app = typer.Typer(
    name="block-scheduler",
    help="Assign weekly 35-minute teaching blocks to teachers and rooms",
    add_completion=False,
)
console = Console()

# Settings resolved by the app callback for the running command
_state: dict[str, Settings] = {}


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


def _settings() -> Settings:
    return _state.get("settings") or Settings.from_env()


def _open_scheduler(init_db: bool = True) -> BlockScheduler:
    settings = _settings()
    settings.ensure_database_dir()
    return create_scheduler(
        settings.database_url,
        settings.reference_dir,
        tz=settings.tzinfo,
        time_limit=settings.time_limit,
        init_db=init_db,
    )


@app.callback()
def main(
    database_url: Annotated[
        Optional[str],
        typer.Option("--database-url", help="SQLite URL of the event store"),
    ] = None,
    reference_dir: Annotated[
        Optional[Path],
        typer.Option("--reference-dir", help="Directory with catalog reference files"),
    ] = None,
    timezone_name: Annotated[
        Optional[str],
        typer.Option("--timezone", help="IANA timezone of the block grid"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Configure storage, catalog and logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    try:
        settings = Settings.from_env()
        if database_url:
            settings.database_url = database_url
        if reference_dir:
            settings.reference_dir = reference_dir
        if timezone_name:
            settings = Settings(
                database_url=settings.database_url,
                reference_dir=settings.reference_dir,
                timezone=timezone_name,
                time_limit=settings.time_limit,
            )
    except SchedulerError as e:
        _fail(str(e))
    _state["settings"] = settings


@app.command("init-db")
def init_db() -> None:
    """Create the event store tables and overlap triggers."""
    try:
        scheduler = _open_scheduler()
        rebuilt = scheduler.tracker.rebuild()
    except SchedulerError as e:
        _fail(str(e))
    console.print(f"[bold green]✓[/bold green] Event store ready at {_settings().database_url}")
    console.print(f"  Weekly load rows: {rebuilt}")


@app.command()
def schedule(
    program_id: Annotated[
        str,
        typer.Argument(help="Program to schedule"),
    ],
    weeks: Annotated[
        int,
        typer.Option("-w", "--weeks", help="Number of weeks in the horizon"),
    ] = 1,
    start: Annotated[
        Optional[str],
        typer.Option("--start", help="First date of the horizon (YYYY-MM-DD, default today)"),
    ] = None,
    shift: Annotated[
        Shift,
        typer.Option("--shift", help="Daily block window"),
    ] = Shift.DAY,
    time_limit: Annotated[
        Optional[float],
        typer.Option("--time-limit", help="Stop after this many seconds"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output JSON file path"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Assign pending module blocks for a program."""
    try:
        scheduler = _open_scheduler()
        if time_limit is not None:
            scheduler.time_limit = time_limit
        request = ScheduleRequest.from_dict(
            {"program_id": program_id, "num_weeks": weeks, "start_date": start, "shift": shift.value}
        )
        with console.status("[bold green]Assigning blocks..."):
            result = scheduler.schedule(request)
    except ValueError as e:
        _fail(str(e))
    except SchedulerError as e:
        _fail(str(e))

    console.print(f"\n[bold]Schedule Results for:[/bold] {result.program_id}")
    console.print(f"  Pending modules: {result.statistics.pending_modules}")
    console.print(f"  Assigned blocks: {result.assigned_count}")
    console.print(f"  Unmet modules: {len(result.unmet_modules)}")
    if result.cancelled:
        console.print("  [yellow]Stopped early; result is partial[/yellow]")

    if result.statistics.by_weekday:
        console.print("\n[bold]Distribution by weekday:[/bold]")
        for day in WEEKDAY_NAMES:
            if day in result.statistics.by_weekday:
                console.print(f"  {day.capitalize()}: {result.statistics.by_weekday[day]}")

    if verbose and result.statistics.by_teacher:
        console.print("\n[bold]Blocks by teacher:[/bold]")
        for teacher_id, count in sorted(result.statistics.by_teacher.items(), key=lambda x: -x[1]):
            console.print(f"  {teacher_id}: {count}")

    if result.unmet_modules:
        console.print(f"\n[bold yellow]Unmet modules ({len(result.unmet_modules)}):[/bold yellow]")
        for unmet in result.unmet_modules:
            console.print(f"  [yellow]- {unmet.module_id}: {unmet.satisfied}/{unmet.required} blocks[/yellow]")

    if output:
        output_path = output if output.suffix == ".json" else output.with_suffix(".json")
        export_schedule_json(result, output_path)
        console.print(f"\n[bold green]✓[/bold green] Schedule exported to: {output_path}")


@app.command("list-events")
def list_events(
    program_id: Annotated[
        Optional[str],
        typer.Option("--program", help="Only events of this program's modules"),
    ] = None,
    teacher_id: Annotated[
        Optional[str],
        typer.Option("--teacher", help="Only events of this teacher"),
    ] = None,
    room_id: Annotated[
        Optional[str],
        typer.Option("--room", help="Only events in this room"),
    ] = None,
    start: Annotated[
        Optional[str],
        typer.Option("--start", help="Week containing this date (YYYY-MM-DD)"),
    ] = None,
    weeks: Annotated[
        int,
        typer.Option("-w", "--weeks", help="Number of weeks to list"),
    ] = 1,
) -> None:
    """List stored events."""
    settings = _settings()
    try:
        scheduler = _open_scheduler()
        window = None
        if start:
            window = horizon_window(date.fromisoformat(start), weeks, settings.tzinfo)
        module_ids = None
        if program_id:
            module_ids = [m.id for m in scheduler.catalog.list_modules(program_id)]
        events = scheduler.events.store.list_events(
            window=window, module_ids=module_ids, teacher_id=teacher_id, room_id=room_id
        )
    except ValueError as e:
        _fail(str(e))
    except SchedulerError as e:
        _fail(str(e))

    table = Table(title=f"Events ({len(events)})")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Date")
    table.add_column("Block", justify="right")
    table.add_column("Time")
    table.add_column("Teacher")
    table.add_column("Room")

    for event in events:
        position = block_position(event.start, settings.tzinfo)
        local = event.start.astimezone(settings.tzinfo)
        table.add_row(
            event.id[:8],
            event.title,
            local.date().isoformat(),
            str(position[1]) if position else "-",
            get_block_time_range(position[1]) if position else local.strftime("%H:%M"),
            event.teacher_id or "",
            event.room_id or "",
        )
    console.print(table)


@app.command("add-event")
def add_event(
    module_id: Annotated[
        str,
        typer.Option("--module", help="Module id"),
    ],
    on: Annotated[
        str,
        typer.Option("--date", help="Local date (YYYY-MM-DD)"),
    ],
    block: Annotated[
        int,
        typer.Option("--block", help="First block index"),
    ],
    teacher_id: Annotated[
        Optional[str],
        typer.Option("--teacher", help="Teacher id"),
    ] = None,
    room_id: Annotated[
        Optional[str],
        typer.Option("--room", help="Room id"),
    ] = None,
    block_count: Annotated[
        int,
        typer.Option("--blocks", help="Number of consecutive blocks"),
    ] = 1,
    title: Annotated[
        Optional[str],
        typer.Option("--title", help="Event title (default: module name)"),
    ] = None,
) -> None:
    """Create an event on the block grid."""
    settings = _settings()
    try:
        scheduler = _open_scheduler()
        module = scheduler.catalog.catalog.get_module(module_id)
        if module is None and not title:
            _fail(f"Unknown module '{module_id}'")
        outcome = scheduler.events.create_blocks(
            title or module.name,
            date.fromisoformat(on),
            block,
            block_count=block_count,
            module_id=module_id,
            teacher_id=teacher_id,
            room_id=room_id,
            tz=settings.tzinfo,
        )
    except ValueError as e:
        _fail(str(e))
    except SchedulerError as e:
        _fail(str(e))

    if outcome.dedup:
        console.print(f"[bold yellow]Already exists:[/bold yellow] {outcome.id}")
    else:
        console.print(f"[bold green]✓[/bold green] Created event {outcome.id}")


@app.command("move-event")
def move_event(
    event_id: Annotated[
        str,
        typer.Argument(help="Event id"),
    ],
    on: Annotated[
        str,
        typer.Option("--date", help="New local date (YYYY-MM-DD)"),
    ],
    block: Annotated[
        int,
        typer.Option("--block", help="New first block index"),
    ],
    teacher_id: Annotated[
        Optional[str],
        typer.Option("--teacher", help="New teacher id"),
    ] = None,
    room_id: Annotated[
        Optional[str],
        typer.Option("--room", help="New room id"),
    ] = None,
) -> None:
    """Move an event to another day and block."""
    settings = _settings()
    try:
        scheduler = _open_scheduler()
        change = scheduler.events.move(
            event_id,
            date.fromisoformat(on),
            block,
            tz=settings.tzinfo,
            teacher_id=teacher_id,
            room_id=room_id,
        )
    except ValueError as e:
        _fail(str(e))
    except SchedulerError as e:
        _fail(str(e))

    console.print(
        f"[bold green]✓[/bold green] Moved {event_id} to "
        f"{change.current.start.astimezone(settings.tzinfo).isoformat()}"
    )


@app.command("delete-event")
def delete_event(
    event_id: Annotated[
        str,
        typer.Argument(help="Event id"),
    ],
) -> None:
    """Delete an event."""
    try:
        scheduler = _open_scheduler()
        change = scheduler.events.delete(event_id)
    except SchedulerError as e:
        _fail(str(e))
    console.print(f"[bold green]✓[/bold green] Deleted '{change.previous.title}'")


@app.command("weekly-load")
def weekly_load(
    teacher_id: Annotated[
        Optional[str],
        typer.Option("--teacher", help="Only this teacher"),
    ] = None,
    rebuild: Annotated[
        bool,
        typer.Option("--rebuild", help="Recompute every aggregate from events first"),
    ] = False,
) -> None:
    """Show minutes used per teacher and ISO week."""
    try:
        scheduler = _open_scheduler()
        if rebuild:
            with console.status("[bold green]Rebuilding weekly load..."):
                scheduler.tracker.rebuild()
        loads = scheduler.tracker.list_loads(teacher_id)
    except SchedulerError as e:
        _fail(str(e))

    catalog = scheduler.catalog.catalog
    table = Table(title="Weekly load")
    table.add_column("Teacher")
    table.add_column("Week")
    table.add_column("Minutes", justify="right")
    table.add_column("Cap", justify="right")

    for load in loads:
        teacher = catalog.get_teacher(load.teacher_id)
        cap = teacher.cap_minutes if teacher else None
        style = "red" if cap is not None and load.minutes_used > cap else None
        table.add_row(
            teacher.name if teacher else load.teacher_id,
            f"{load.iso_year}-W{load.iso_week:02d}",
            str(load.minutes_used),
            str(cap) if cap is not None else "-",
            style=style,
        )
    console.print(table)


@app.command("import-legacy")
def import_legacy(
    input_file: Annotated[
        Path,
        typer.Argument(help="Legacy export (CSV, Excel or JSON)"),
    ],
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Import legacy events, resolving module, teacher and room links."""
    if not input_file.exists():
        _fail(f"File not found: {input_file}")

    try:
        scheduler = _open_scheduler()
        linker = LegacyLinker(scheduler.catalog.catalog)
        with console.status("[bold green]Importing events..."):
            report = import_legacy_events(input_file, linker, scheduler.events, tz=_settings().tzinfo)
    except SchedulerError as e:
        _fail(str(e))

    console.print(f"\n[bold]Legacy import:[/bold] {input_file.name}")
    console.print(f"  Imported: {report.imported}")
    console.print(f"  Duplicates: {report.deduplicated}")
    console.print(f"  Conflicts: {len(report.conflicts)}")
    console.print(f"  Unlinked: {len(report.unlinked)}")
    console.print(f"  Invalid: {len(report.invalid)}")

    if verbose:
        for label, entries in (("Conflicts", report.conflicts), ("Unlinked", report.unlinked), ("Invalid", report.invalid)):
            if entries:
                console.print(f"\n[bold yellow]{label}:[/bold yellow]")
                for entry in entries:
                    console.print(f"  [yellow]- {entry}[/yellow]")


@app.command("generate-excel")
def generate_excel(
    output_dir: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output directory for Excel files"),
    ] = None,
    program_id: Annotated[
        Optional[str],
        typer.Option("--program", help="Only this program"),
    ] = None,
    shift: Annotated[
        Optional[Shift],
        typer.Option("--shift", help="Show every block of this shift"),
    ] = None,
    start: Annotated[
        Optional[str],
        typer.Option("--start", help="Week containing this date (YYYY-MM-DD)"),
    ] = None,
    weeks: Annotated[
        int,
        typer.Option("-w", "--weeks", help="Number of weeks"),
    ] = 1,
) -> None:
    """Generate weekly timetable workbooks from stored events."""
    settings = _settings()
    output_path = output_dir or Path("output/excel")

    try:
        scheduler = _open_scheduler()
        window = horizon_window(date.fromisoformat(start), weeks, settings.tzinfo) if start else None
        events = scheduler.events.store.list_events(window=window)
        with console.status("[bold green]Generating Excel files..."):
            generated_files = generate_timetable_excel(
                events,
                scheduler.catalog.catalog,
                output_path,
                program_id=program_id,
                shift=shift,
                tz=settings.tzinfo,
            )
    except ValueError as e:
        _fail(str(e))
    except SchedulerError as e:
        _fail(str(e))

    if not generated_files:
        console.print("[bold yellow]Warning:[/bold yellow] No files generated. No events matched the criteria.")
        raise typer.Exit(1)

    console.print(f"\n[bold green]✓[/bold green] Generated {len(generated_files)} file(s):")
    for file_path in generated_files:
        console.print(f"  - {file_path}")


if __name__ == "__main__":
    app()
