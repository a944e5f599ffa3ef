"""Tests for runtime settings."""

from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from block_scheduler.exceptions import ValidationError
from block_scheduler.settings import DEFAULT_DATABASE_URL, Settings, load_zone


class TestSettings:
    """Tests for Settings construction."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.reference_dir == Path("data/reference")
        assert settings.timezone == "UTC"
        assert settings.time_limit is None

    def test_from_env(self, tmp_path):
        settings = Settings.from_env(
            {
                "BLOCK_SCHEDULER_DATABASE_URL": "sqlite://",
                "BLOCK_SCHEDULER_REFERENCE_DIR": str(tmp_path),
                "BLOCK_SCHEDULER_TIMEZONE": "America/Santiago",
                "BLOCK_SCHEDULER_TIME_LIMIT": "12.5",
            }
        )
        assert settings.database_url == "sqlite://"
        assert settings.reference_dir == tmp_path
        assert settings.tzinfo == ZoneInfo("America/Santiago")
        assert settings.time_limit == 12.5

    def test_bad_time_limit(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings.from_env({"BLOCK_SCHEDULER_TIME_LIMIT": "soon"})
        assert exc_info.value.field == "BLOCK_SCHEDULER_TIME_LIMIT"

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            Settings(timezone="Mars/Olympus")

    def test_load_zone(self):
        assert load_zone("Europe/Madrid") == ZoneInfo("Europe/Madrid")

    def test_ensure_database_dir(self, tmp_path):
        settings = Settings(database_url=f"sqlite:///{tmp_path / 'nested' / 'events.db'}")
        settings.ensure_database_dir()
        assert (tmp_path / "nested").is_dir()
