"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ValidationError

ENV_PREFIX = "BLOCK_SCHEDULER_"

DEFAULT_DATABASE_URL = "sqlite:///data/block_scheduler.db"
DEFAULT_REFERENCE_DIR = Path("data/reference")
DEFAULT_TIMEZONE = "UTC"


def load_zone(name: str) -> tzinfo:
    """Resolve an IANA timezone name.

    Raises:
        ValidationError: If the zone is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"unknown timezone '{name}'", field="timezone") from e


@dataclass
class Settings:
    """Database, reference data and timezone for one process."""

    database_url: str = DEFAULT_DATABASE_URL
    reference_dir: Path = DEFAULT_REFERENCE_DIR
    timezone: str = DEFAULT_TIMEZONE
    time_limit: float | None = None

    def __post_init__(self) -> None:
        self.reference_dir = Path(self.reference_dir)
        self.tzinfo = load_zone(self.timezone)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from ``BLOCK_SCHEDULER_*`` variables.

        Raises:
            ValidationError: If a variable holds an unusable value
        """
        env = os.environ if environ is None else environ
        time_limit = env.get(f"{ENV_PREFIX}TIME_LIMIT", "").strip()
        try:
            limit = float(time_limit) if time_limit else None
        except ValueError as e:
            raise ValidationError(f"not a number: '{time_limit}'", field=f"{ENV_PREFIX}TIME_LIMIT") from e

        return cls(
            database_url=env.get(f"{ENV_PREFIX}DATABASE_URL", DEFAULT_DATABASE_URL),
            reference_dir=Path(env.get(f"{ENV_PREFIX}REFERENCE_DIR", str(DEFAULT_REFERENCE_DIR))),
            timezone=env.get(f"{ENV_PREFIX}TIMEZONE", DEFAULT_TIMEZONE),
            time_limit=limit,
        )

    def ensure_database_dir(self) -> None:
        """Create the parent directory of a file-backed SQLite database."""
        prefix = "sqlite:///"
        if self.database_url.startswith(prefix) and self.database_url != prefix + ":memory:":
            Path(self.database_url[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)
