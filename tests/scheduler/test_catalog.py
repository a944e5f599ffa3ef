"""Tests for reference loading and catalog queries."""

import pytest

from block_scheduler.exceptions import CatalogError
from block_scheduler.scheduler.catalog import Catalog, CatalogRepository
from block_scheduler.scheduler.config import ConfigLoader
from block_scheduler.scheduler.constants import DEFAULT_PRIORITY
from block_scheduler.scheduler.models import Module, ProgramLink, RuleMode, Teacher
from block_scheduler.scheduler.utils import horizon_window


class TestConfigLoader:
    """Tests for loading the reference directory."""

    def test_loads_all_files(self, reference_dir):
        catalog = ConfigLoader(reference_dir).build_catalog()
        assert [p.id for p in catalog.programs] == ["P1", "P2"]
        assert [m.id for m in catalog.modules] == ["M1", "M2", "M3"]
        assert len(catalog.teachers) == 3
        assert len(catalog.links) == 4
        assert [r.id for r in catalog.rooms] == ["R1", "R2"]
        assert len(catalog.availability) == 2

    def test_parses_typed_fields(self, reference_dir):
        catalog = ConfigLoader(reference_dir).build_catalog()
        assert catalog.get_program("P1").preferred_room_ids == ["R2"]
        assert catalog.get_module("M2").preferred_room_ids == ["R1"]
        assert catalog.get_module("M1").subject_code == "INF-210"
        assert catalog.get_teacher("T2").cap_minutes == 270
        assert catalog.get_teacher("T3").active is False
        assert catalog.get_room("R1").program_ids == ["P1"]
        assert catalog.get_room("R2").program_ids == []

    def test_blank_priority_uses_default(self, reference_dir):
        catalog = ConfigLoader(reference_dir).build_catalog()
        link = [link for link in catalog.links if link.program_id == "P2"][0]
        assert link.priority == DEFAULT_PRIORITY

    def test_availability_rules(self, reference_dir):
        catalog = ConfigLoader(reference_dir).build_catalog()
        monday_rule, friday_rule = catalog.availability
        assert monday_rule.weekday == 0
        assert monday_rule.mode == RuleMode.DENY
        assert monday_rule.blocks == frozenset({1, 2})
        assert friday_rule.weekday == 4
        assert friday_rule.blocks == frozenset()

    def test_missing_directory_loads_empty(self, tmp_path):
        catalog = ConfigLoader(tmp_path / "nothing").build_catalog()
        assert catalog.programs == []
        assert catalog.rooms == []

    def test_malformed_minutes_raise_catalog_error(self, reference_dir):
        (reference_dir / "modules.csv").write_text(
            "id,name,program_id,weekly_minutes\nM1,Databases,P1,seventy\n", encoding="utf-8"
        )
        with pytest.raises(CatalogError) as exc_info:
            ConfigLoader(reference_dir)
        assert exc_info.value.source == "modules.csv"
        assert exc_info.value.row == 2

    def test_missing_column_raises_catalog_error(self, reference_dir):
        (reference_dir / "rooms.csv").write_text("name,capacity\nLab,20\n", encoding="utf-8")
        with pytest.raises(CatalogError):
            ConfigLoader(reference_dir)

    def test_unknown_weekday_raises_catalog_error(self, reference_dir):
        (reference_dir / "teacher-availability.json").write_text(
            '[{"teacher_id": "T1", "rules": [{"weekday": "someday"}]}]', encoding="utf-8"
        )
        with pytest.raises(CatalogError):
            ConfigLoader(reference_dir)


class TestCatalogRepository:
    """Tests for scheduler-facing catalog queries."""

    def test_eligible_teachers_active_and_linked(self, reference_dir, store):
        repo = CatalogRepository(ConfigLoader(reference_dir).build_catalog(), store)
        teachers = repo.list_eligible_teachers("P1")
        assert [t.id for t in teachers] == ["T1", "T2"]
        assert [t.priority for t in teachers] == [1, 2]

    def test_inactive_link_excluded(self, store):
        catalog = Catalog(
            teachers=[Teacher(id="T1", name="Ana", weekly_hours_cap=10)],
            links=[ProgramLink("T1", "P1", priority=1, active=False)],
        )
        assert CatalogRepository(catalog, store).list_eligible_teachers("P1") == []

    def test_duplicate_links_keep_best_priority(self, store):
        catalog = Catalog(
            teachers=[Teacher(id="T1", name="Ana", weekly_hours_cap=10)],
            links=[ProgramLink("T1", "P1", priority=5), ProgramLink("T1", "P1", priority=2)],
        )
        teachers = CatalogRepository(catalog, store).list_eligible_teachers("P1")
        assert len(teachers) == 1
        assert teachers[0].priority == 2

    def test_link_priority_does_not_leak_between_programs(self, reference_dir, store):
        repo = CatalogRepository(ConfigLoader(reference_dir).build_catalog(), store)
        assert repo.list_eligible_teachers("P2")[0].priority == DEFAULT_PRIORITY
        assert repo.list_eligible_teachers("P1")[1].priority == 2

    def test_usable_rooms_sorted_by_capacity(self, reference_dir, store):
        repo = CatalogRepository(ConfigLoader(reference_dir).build_catalog(), store)
        assert [r.id for r in repo.list_usable_rooms("P1")] == ["R2", "R1"]
        assert [r.id for r in repo.list_usable_rooms("P2")] == ["R2"]

    def test_room_restrictions_applied_from_reference_files(self, reference_dir, store):
        catalog = ConfigLoader(reference_dir).build_catalog()
        assert {r.id: r.program_ids for r in catalog.rooms} == {"R1": ["P1"], "R2": []}
        repo = CatalogRepository(catalog, store)
        assert "R1" not in {r.id for r in repo.list_usable_rooms("P2")}

    def test_pending_modules_account_for_committed_blocks(self, service, store, monday):
        catalog = Catalog(
            modules=[
                Module(id="M1", name="Databases", program_id="P1", weekly_minutes=70),
                Module(id="M2", name="Networks", program_id="P1", weekly_minutes=35),
                Module(id="M3", name="Seminar", program_id="P1", weekly_minutes=0),
            ]
        )
        service.create_blocks("Networks", monday, 1, module_id="M2", teacher_id="T1", room_id="R1")
        service.create_blocks("Databases", monday, 2, module_id="M1", teacher_id="T1", room_id="R1")

        repo = CatalogRepository(catalog, store)
        pending = repo.list_pending_modules("P1", horizon_window(monday, 1))
        assert [(p.module.id, p.satisfied, p.remaining) for p in pending] == [("M1", 1, 1)]

    def test_pending_modules_ignore_blocks_outside_window(self, service, store, monday):
        catalog = Catalog(modules=[Module(id="M2", name="Networks", program_id="P1", weekly_minutes=35)])
        service.create_blocks("Networks", monday, 1, module_id="M2", teacher_id="T1", room_id="R1")

        repo = CatalogRepository(catalog, store)
        next_week = horizon_window(monday.replace(day=10), 1)
        assert [p.module.id for p in repo.list_pending_modules("P1", next_week)] == ["M2"]
