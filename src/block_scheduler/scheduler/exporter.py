"""Export functions for schedule results."""

import json
from pathlib import Path

from .models import Event, ScheduleResult


def export_schedule_json(result: ScheduleResult, output_path: Path | str) -> None:
    """Export schedule result to JSON file.

    Args:
        result: ScheduleResult to export
        output_path: Path to output JSON file
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)


def export_events_json(events: list[Event], output_path: Path | str) -> None:
    """Export stored events to a JSON file."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", encoding="utf-8") as f:
        json.dump({"events": [e.to_dict() for e in events]}, f, ensure_ascii=False, indent=2)


def load_schedule_json(input_path: Path | str) -> dict:
    """Load an exported schedule result.

    Args:
        input_path: Path to schedule JSON file

    Returns:
        Dictionary with schedule data
    """
    with open(input_path, encoding="utf-8") as f:
        return json.load(f)
