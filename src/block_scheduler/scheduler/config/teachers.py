"""Teacher configuration loader."""

import csv
import json
from pathlib import Path
from typing import Any

from ...exceptions import CatalogError
from ..constants import DEFAULT_PRIORITY
from ..models import AvailabilityRule, ProgramLink, RuleMode, Teacher
from ..utils import parse_bool, parse_date, weekday_index


class TeacherConfig:
    """Loader for teachers, program links and availability rules."""

    def __init__(
        self,
        teachers_path: Path | None = None,
        links_path: Path | None = None,
        availability_path: Path | None = None,
    ):
        self.teachers: list[Teacher] = []
        self.links: list[ProgramLink] = []
        self.availability: list[AvailabilityRule] = []

        if teachers_path and teachers_path.exists():
            self._load_teachers(teachers_path)
        if links_path and links_path.exists():
            self._load_links(links_path)
        if availability_path and availability_path.exists():
            self._load_availability(availability_path)

    def _load_teachers(self, path: Path) -> None:
        """Load teachers from CSV (id, name, weekly_hours_cap, active, national_id)."""
        with open(path, encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for line, row in enumerate(reader, start=2):
                try:
                    teacher = Teacher(
                        id=row["id"].strip(),
                        name=row["name"].strip(),
                        weekly_hours_cap=float(row.get("weekly_hours_cap") or 0),
                        active=parse_bool(row.get("active")),
                        national_id=(row.get("national_id") or "").strip(),
                    )
                except KeyError as e:
                    raise CatalogError(f"missing column {e}", source=path.name, row=line) from e
                except ValueError as e:
                    raise CatalogError(str(e), source=path.name, row=line) from e
                if not teacher.id:
                    raise CatalogError("teacher id is empty", source=path.name, row=line)
                if teacher.weekly_hours_cap < 0:
                    raise CatalogError("weekly_hours_cap must not be negative", source=path.name, row=line)
                self.teachers.append(teacher)

    def _load_links(self, path: Path) -> None:
        """Load teacher-program links from CSV (teacher_id, program_id, priority, active)."""
        with open(path, encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for line, row in enumerate(reader, start=2):
                try:
                    priority = row.get("priority") or ""
                    link = ProgramLink(
                        teacher_id=row["teacher_id"].strip(),
                        program_id=row["program_id"].strip(),
                        priority=int(priority) if priority.strip() else DEFAULT_PRIORITY,
                        active=parse_bool(row.get("active")),
                    )
                except KeyError as e:
                    raise CatalogError(f"missing column {e}", source=path.name, row=line) from e
                except ValueError as e:
                    raise CatalogError(str(e), source=path.name, row=line) from e
                self.links.append(link)

    def _parse_rule(self, teacher_id: str, entry: dict[str, Any]) -> AvailabilityRule:
        weekday = weekday_index(entry["weekday"])
        if weekday is None:
            raise ValueError(f"unknown weekday '{entry['weekday']}'")
        return AvailabilityRule(
            teacher_id=teacher_id,
            weekday=weekday,
            mode=RuleMode(entry.get("mode", RuleMode.DENY.value)),
            blocks=frozenset(int(b) for b in entry.get("blocks", [])),
            valid_from=parse_date(entry.get("valid_from")),
            valid_until=parse_date(entry.get("valid_until")),
        )

    def _load_availability(self, path: Path) -> None:
        """Load availability rules from JSON.

        Format::

            [{"teacher_id": "T1",
              "rules": [{"weekday": "monday", "mode": "deny", "blocks": [1, 2]}]}]

        An empty ``blocks`` list covers the whole day.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        for index, entry in enumerate(data):
            teacher_id = str(entry.get("teacher_id", "")).strip()
            if not teacher_id:
                raise CatalogError("teacher_id is required", source=path.name, row=index)
            for rule in entry.get("rules", []):
                try:
                    self.availability.append(self._parse_rule(teacher_id, rule))
                except (KeyError, TypeError, ValueError) as e:
                    raise CatalogError(str(e), source=path.name, row=index) from e
