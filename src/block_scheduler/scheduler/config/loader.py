"""Unified configuration loader."""

import logging
from pathlib import Path

from ..catalog import Catalog
from .programs import ProgramConfig
from .rooms import RoomConfig
from .teachers import TeacherConfig

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Unified loader for all catalog reference files."""

    def __init__(self, config_dir: Path | None = None):
        """
        Initialize configuration loader.

        Args:
            config_dir: Path to directory containing reference files.
                       Expected files:
                       - programs.csv
                       - modules.csv
                       - teachers.csv
                       - program-teachers.csv
                       - rooms.csv
                       - teacher-availability.json
                       Missing files load as empty.
        """
        if config_dir is None:
            config_dir = Path("data/reference")

        self.config_dir = Path(config_dir)

        self.programs = ProgramConfig(
            programs_path=self._get_path("programs.csv"),
            modules_path=self._get_path("modules.csv"),
        )
        self.teachers = TeacherConfig(
            teachers_path=self._get_path("teachers.csv"),
            links_path=self._get_path("program-teachers.csv"),
            availability_path=self._get_path("teacher-availability.json"),
        )
        self.rooms = RoomConfig(self._get_path("rooms.csv"))

    def _get_path(self, filename: str) -> Path | None:
        """Get path to config file if it exists."""
        path = self.config_dir / filename
        return path if path.exists() else None

    def build_catalog(self) -> Catalog:
        """Assemble the loaded records into a Catalog."""
        catalog = Catalog(
            programs=self.programs.programs,
            modules=self.programs.modules,
            teachers=self.teachers.teachers,
            links=self.teachers.links,
            rooms=self.rooms.rooms,
            availability=self.teachers.availability,
        )
        logger.info(
            f"Loaded catalog from {self.config_dir}: {len(catalog.programs)} programs, "
            f"{len(catalog.modules)} modules, {len(catalog.teachers)} teachers, "
            f"{len(catalog.rooms)} rooms"
        )
        return catalog
