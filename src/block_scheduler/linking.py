"""Resolution of legacy event payloads to typed catalog links.

Legacy exports carry their links in several places: explicit id fields, a
``__meta`` blob inside ``extendedProps`` (or a ``meta`` column), and the
title itself written as ``"<module> - <teacher>"``. The linker tries them in
that order and matches each hint by id, subject code, national id or
case-insensitive name.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any

import pandas as pd

from .exceptions import DuplicateEventError, SlotConflictError, ValidationError
from .normalization import clean_text, is_blank, normalize_key, normalize_rut, normalize_teacher_name
from .scheduler.catalog import Catalog
from .scheduler.events import EventService
from .scheduler.models import Event

logger = logging.getLogger(__name__)

# Hint keys, checked in order after the explicit fields
MODULE_META_KEYS = [
    "moduleId",
    "module_id",
    "module",
    "moduleCode",
    "subjectCode",
    "subject_code",
    "moduleName",
    # Spanish-keyed exports
    "moduloId",
    "modulo_id",
    "modulo",
    "codigoAsignatura",
    "codigo_asignatura",
    "moduloNombre",
]
TEACHER_META_KEYS = [
    "teacherId",
    "teacher_id",
    "teacher",
    "teacherRut",
    "teacherName",
    "docenteId",
    "docente_id",
    "docente",
    "docenteRut",
    "docenteRUT",
    "docenteName",
]
ROOM_META_KEYS = ["roomId", "room_id", "room", "roomName", "salaId", "sala_id", "sala", "salaName"]

# Hints this short are only matched by id
MIN_NAME_HINT_LENGTH = 3


@dataclass
class LinkResult:
    """Typed links resolved for one legacy payload."""

    module_id: str | None = None
    teacher_id: str | None = None
    room_id: str | None = None
    program_id: str | None = None

    @property
    def is_complete(self) -> bool:
        """Module and teacher are both known (room is optional)."""
        return bool(self.module_id and self.teacher_id)


def _collect_hints(*values: Any) -> list[str]:
    hints = []
    for value in values:
        text = clean_text(value)
        if text and text not in hints:
            hints.append(text)
    return hints


def _extract_meta(payload: dict[str, Any]) -> dict[str, Any]:
    """Find the ``__meta`` blob in a payload, decoding JSON text if needed."""
    props = payload.get("extendedProps") or payload.get("extended_props") or {}
    if isinstance(props, str):
        try:
            props = json.loads(props)
        except json.JSONDecodeError:
            logger.debug(f"Ignoring undecodable extendedProps: {props[:40]}")
            props = {}
    meta = props.get("__meta") if isinstance(props, dict) else None
    if meta is None:
        meta = payload.get("__meta") or payload.get("meta") or {}
    if isinstance(meta, str):
        try:
            meta = json.loads(meta)
        except json.JSONDecodeError:
            logger.debug(f"Ignoring undecodable meta: {meta[:40]}")
            meta = {}
    return meta if isinstance(meta, dict) else {}


class LegacyLinker:
    """Resolves module, teacher and room ids against a catalog."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog
        self._modules_by_id = {m.id: m for m in catalog.modules}
        self._modules_by_code = {normalize_key(m.subject_code): m for m in catalog.modules if m.subject_code}
        self._modules_by_name = {normalize_key(m.name): m for m in catalog.modules}
        self._teachers_by_id = {t.id: t for t in catalog.teachers}
        self._teachers_by_rut = {
            normalize_rut(t.national_id): t for t in catalog.teachers if normalize_rut(t.national_id)
        }
        self._teachers_by_name = {normalize_teacher_name(t.name): t for t in catalog.teachers}
        self._rooms_by_id = {r.id: r for r in catalog.rooms}
        self._rooms_by_name = {normalize_key(r.name): r for r in catalog.rooms}

    def find_module_id(self, hints: list[str]) -> str | None:
        for hint in hints:
            if hint in self._modules_by_id:
                return hint
            if len(hint) < MIN_NAME_HINT_LENGTH:
                continue
            key = normalize_key(hint)
            module = self._modules_by_code.get(key) or self._modules_by_name.get(key)
            if module is not None:
                return module.id
        return None

    def find_teacher_id(self, hints: list[str]) -> str | None:
        for hint in hints:
            if hint in self._teachers_by_id:
                return hint
            rut = normalize_rut(hint)
            if rut and rut in self._teachers_by_rut:
                return self._teachers_by_rut[rut].id
            teacher = self._teachers_by_name.get(normalize_teacher_name(hint))
            if teacher is not None:
                return teacher.id
        return None

    def find_room_id(self, hints: list[str]) -> str | None:
        for hint in hints:
            if hint in self._rooms_by_id:
                return hint
            room = self._rooms_by_name.get(normalize_key(hint))
            if room is not None:
                return room.id
        return None

    def resolve(self, payload: dict[str, Any]) -> LinkResult:
        """Resolve the typed links of one legacy payload.

        Args:
            payload: Legacy event fields (title, ids, extendedProps/meta)

        Returns:
            LinkResult; unresolved links stay None
        """
        meta = _extract_meta(payload)
        title = clean_text(payload.get("title"))
        title_parts = [part.strip() for part in title.split("-")] if title else []

        module_hints = _collect_hints(
            payload.get("module_id"),
            payload.get("moduleId"),
            *(meta.get(key) for key in MODULE_META_KEYS),
        )
        if title_parts and title_parts[0]:
            module_hints.append(title_parts[0])

        teacher_hints = _collect_hints(
            payload.get("teacher_id"),
            payload.get("teacherId"),
            *(meta.get(key) for key in TEACHER_META_KEYS),
        )
        if len(title_parts) > 1:
            rest = "-".join(title_parts[1:]).strip()
            if rest:
                teacher_hints.append(rest)

        room_hints = _collect_hints(
            payload.get("room_id"),
            payload.get("roomId"),
            *(meta.get(key) for key in ROOM_META_KEYS),
        )

        result = LinkResult(
            module_id=self.find_module_id(module_hints),
            teacher_id=self.find_teacher_id(teacher_hints),
            room_id=self.find_room_id(room_hints),
        )
        if result.module_id:
            result.program_id = self._modules_by_id[result.module_id].program_id
        return result


@dataclass
class LegacyImportReport:
    """Outcome of a legacy import."""

    imported: int = 0
    deduplicated: int = 0
    conflicts: list[str] = field(default_factory=list)
    unlinked: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return (
            self.imported
            + self.deduplicated
            + len(self.conflicts)
            + len(self.unlinked)
            + len(self.invalid)
        )


def read_legacy_rows(path: Path) -> list[dict[str, Any]]:
    """Read a legacy export (CSV, Excel or JSON) into row dictionaries."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    elif suffix in (".xlsx", ".xls"):
        df = pd.read_excel(path, dtype=str)
    elif suffix == ".json":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return list(data if isinstance(data, list) else data.get("events", []))
    else:
        raise ValidationError(f"unsupported file type '{suffix}'", field="path")
    return [
        {key: (None if is_blank(value) else value) for key, value in record.items()}
        for record in df.to_dict(orient="records")
    ]


def _to_datetime(value: Any, tz: tzinfo) -> datetime:
    """Parse a legacy timestamp; naive values are wall-clock time in ``tz``."""
    timestamp = pd.Timestamp(value)
    if pd.isna(timestamp):
        raise ValueError(f"missing timestamp '{value}'")
    moment = timestamp.to_pydatetime()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    return moment.astimezone(timezone.utc)


def import_legacy_events(
    path: Path,
    linker: LegacyLinker,
    service: EventService,
    tz: tzinfo = timezone.utc,
) -> LegacyImportReport:
    """Import a legacy event export through the event service.

    Rows whose module or teacher cannot be resolved are reported in
    ``unlinked`` and not written. Rows rejected by the overlap rules are
    reported in ``conflicts``.

    Args:
        path: CSV, Excel or JSON export
        linker: Linker bound to the current catalog
        service: Event write path
        tz: Timezone of naive timestamps in the export

    Returns:
        LegacyImportReport
    """
    report = LegacyImportReport()
    rows = read_legacy_rows(path)
    logger.info(f"Importing {len(rows)} legacy rows from {path}")

    for index, row in enumerate(rows, start=1):
        label = f"row {index}: {clean_text(row.get('title')) or '(untitled)'}"
        try:
            start = _to_datetime(row.get("start"), tz)
            end = _to_datetime(row.get("end"), tz)
        except (TypeError, ValueError) as e:
            report.invalid.append(f"{label} ({e})")
            continue

        links = linker.resolve(row)
        if not links.is_complete:
            missing = [name for name in ("module", "teacher") if not getattr(links, f"{name}_id")]
            report.unlinked.append(f"{label} (missing {', '.join(missing)})")
            continue

        module = linker.catalog.get_module(links.module_id)
        title = clean_text(row.get("title")) or module.name
        event = Event(
            title=title,
            start=start,
            end=end,
            module_id=links.module_id,
            teacher_id=links.teacher_id,
            room_id=links.room_id,
        )
        try:
            outcome = service.create(event)
        except (SlotConflictError, DuplicateEventError) as e:
            report.conflicts.append(f"{label} ({e})")
            continue
        except ValidationError as e:
            report.invalid.append(f"{label} ({e})")
            continue

        if outcome.dedup:
            report.deduplicated += 1
        else:
            report.imported += 1

    logger.info(
        f"Legacy import: {report.imported} imported, {report.deduplicated} duplicates, "
        f"{len(report.conflicts)} conflicts, {len(report.unlinked)} unlinked"
    )
    return report
