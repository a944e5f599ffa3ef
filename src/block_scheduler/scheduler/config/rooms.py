"""Room configuration loader."""

import csv
from pathlib import Path

from ...exceptions import CatalogError
from ..models import Room
from ..utils import split_ids


class RoomConfig:
    """Loader for room configuration from rooms.csv.

    Columns: ``id``, ``name``, ``capacity`` and an optional ``programs``
    column with semicolon-separated program ids. An empty ``programs`` cell
    opens the room to every program.
    """

    def __init__(self, rooms_path: Path | None = None):
        self.rooms: list[Room] = []

        if rooms_path and rooms_path.exists():
            self._load(rooms_path)

    def _load(self, path: Path) -> None:
        """Load rooms from CSV file."""
        with open(path, encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for line, row in enumerate(reader, start=2):
                try:
                    room = Room(
                        id=row["id"].strip(),
                        name=(row.get("name") or row["id"]).strip(),
                        capacity=int(row.get("capacity") or 0),
                        program_ids=split_ids(row.get("programs")),
                    )
                except (KeyError, ValueError) as e:
                    raise CatalogError(str(e), source=path.name, row=line) from e
                if not room.id:
                    raise CatalogError("room id is empty", source=path.name, row=line)
                self.rooms.append(room)
