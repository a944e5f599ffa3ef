"""Program and module configuration loader."""

import csv
from pathlib import Path

from ...exceptions import CatalogError
from ..models import Module, Program
from ..utils import split_ids


class ProgramConfig:
    """Loader for programs.csv and modules.csv."""

    def __init__(
        self,
        programs_path: Path | None = None,
        modules_path: Path | None = None,
    ):
        self.programs: list[Program] = []
        self.modules: list[Module] = []

        if programs_path and programs_path.exists():
            self._load_programs(programs_path)
        if modules_path and modules_path.exists():
            self._load_modules(modules_path)

    def _load_programs(self, path: Path) -> None:
        """Load programs from CSV (id, name, preferred_rooms)."""
        with open(path, encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for line, row in enumerate(reader, start=2):
                try:
                    program_id = row["id"].strip()
                except KeyError as e:
                    raise CatalogError(f"missing column {e}", source=path.name, row=line) from e
                if not program_id:
                    raise CatalogError("program id is empty", source=path.name, row=line)
                self.programs.append(
                    Program(
                        id=program_id,
                        name=(row.get("name") or program_id).strip(),
                        preferred_room_ids=split_ids(row.get("preferred_rooms")),
                    )
                )

    def _load_modules(self, path: Path) -> None:
        """Load modules from CSV.

        Columns: id, name, program_id, weekly_minutes, and optional
        subject_code and preferred_rooms.
        """
        with open(path, encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for line, row in enumerate(reader, start=2):
                try:
                    module = Module(
                        id=row["id"].strip(),
                        name=row["name"].strip(),
                        program_id=row["program_id"].strip(),
                        weekly_minutes=int(row["weekly_minutes"] or 0),
                        subject_code=(row.get("subject_code") or "").strip(),
                        preferred_room_ids=split_ids(row.get("preferred_rooms")),
                    )
                except KeyError as e:
                    raise CatalogError(f"missing column {e}", source=path.name, row=line) from e
                except ValueError as e:
                    raise CatalogError(str(e), source=path.name, row=line) from e
                if not module.id or not module.program_id:
                    raise CatalogError("module id and program_id are required", source=path.name, row=line)
                if module.weekly_minutes < 0:
                    raise CatalogError("weekly_minutes must not be negative", source=path.name, row=line)
                self.modules.append(module)
