"""Weekly teacher load derived from committed events."""

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.engine import Connection, Engine

from .models import WeekKey, WeeklyLoad
from .storage import events_table, from_db, to_db, transaction, weekly_load_table
from .utils import iso_week_bounds, week_key_for

logger = logging.getLogger(__name__)


class LoadTracker:
    """Maintains minutes used per (teacher, ISO year, ISO week).

    Rows are only ever recomputed from the events table, never edited in
    place. An event belongs to the ISO week of its UTC start.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _sum_minutes(self, conn: Connection, key: WeekKey) -> int:
        bounds = iso_week_bounds(key.iso_year, key.iso_week)
        rows = conn.execute(
            select(events_table.c.start_at, events_table.c.end_at).where(
                events_table.c.teacher_id == key.teacher_id,
                events_table.c.start_at >= to_db(bounds.start),
                events_table.c.start_at < to_db(bounds.end),
            )
        ).all()
        total = 0
        for row in rows:
            total += int((from_db(row.end_at) - from_db(row.start_at)).total_seconds() // 60)
        return total

    def recompute(self, teacher_id: str, iso_year: int, iso_week: int) -> int:
        """Recompute and store one teacher-week aggregate.

        The row is deleted when the teacher has no minutes that week.

        Returns:
            Minutes used in that week
        """
        key = WeekKey(teacher_id, iso_year, iso_week)
        row_filter = (
            (weekly_load_table.c.teacher_id == teacher_id)
            & (weekly_load_table.c.iso_year == iso_year)
            & (weekly_load_table.c.iso_week == iso_week)
        )
        with transaction(self.engine) as conn:
            minutes = self._sum_minutes(conn, key)
            if minutes > 0:
                statement = insert(weekly_load_table).values(
                    teacher_id=teacher_id,
                    iso_year=iso_year,
                    iso_week=iso_week,
                    minutes_used=minutes,
                )
                conn.execute(
                    statement.on_conflict_do_update(
                        index_elements=["teacher_id", "iso_year", "iso_week"],
                        set_={"minutes_used": statement.excluded.minutes_used},
                    )
                )
            else:
                conn.execute(delete(weekly_load_table).where(row_filter))

        logger.debug(f"Load {teacher_id} {iso_year}-W{iso_week:02d}: {minutes} min")
        return minutes

    def refresh(self, keys: Iterable[WeekKey | None]) -> list[WeeklyLoad]:
        """Recompute each distinct key once, skipping empty entries."""
        seen: set[WeekKey] = set()
        loads: list[WeeklyLoad] = []
        for key in keys:
            if key is None or key in seen:
                continue
            seen.add(key)
            minutes = self.recompute(key.teacher_id, key.iso_year, key.iso_week)
            loads.append(WeeklyLoad(key.teacher_id, key.iso_year, key.iso_week, minutes))
        return loads

    def minutes_used(self, teacher_id: str, iso_year: int, iso_week: int) -> int:
        """Stored minutes for a teacher-week (0 when there is no row)."""
        with transaction(self.engine) as conn:
            value = conn.execute(
                select(weekly_load_table.c.minutes_used).where(
                    weekly_load_table.c.teacher_id == teacher_id,
                    weekly_load_table.c.iso_year == iso_year,
                    weekly_load_table.c.iso_week == iso_week,
                )
            ).scalar()
        return int(value or 0)

    def list_loads(self, teacher_id: str | None = None) -> list[WeeklyLoad]:
        """All stored aggregates, optionally for one teacher."""
        query = select(weekly_load_table)
        if teacher_id is not None:
            query = query.where(weekly_load_table.c.teacher_id == teacher_id)
        query = query.order_by(
            weekly_load_table.c.teacher_id,
            weekly_load_table.c.iso_year,
            weekly_load_table.c.iso_week,
        )
        with transaction(self.engine) as conn:
            rows = conn.execute(query).all()
        return [
            WeeklyLoad(row.teacher_id, row.iso_year, row.iso_week, row.minutes_used)
            for row in rows
        ]

    def verify(self, teacher_id: str, iso_year: int, iso_week: int) -> bool:
        """Check the stored aggregate against a fresh sum of events."""
        with transaction(self.engine) as conn:
            expected = self._sum_minutes(conn, WeekKey(teacher_id, iso_year, iso_week))
        return self.minutes_used(teacher_id, iso_year, iso_week) == expected

    def rebuild(self) -> int:
        """Recompute every teacher-week from scratch.

        Stale rows with no remaining events are removed.

        Returns:
            Number of aggregates written
        """
        with transaction(self.engine) as conn:
            rows = conn.execute(
                select(events_table.c.teacher_id, events_table.c.start_at).where(
                    events_table.c.teacher_id.is_not(None)
                )
            ).all()
            stale = conn.execute(select(weekly_load_table)).all()

        keys = [week_key_for(row.teacher_id, from_db(row.start_at)) for row in rows]
        keys.extend(WeekKey(row.teacher_id, row.iso_year, row.iso_week) for row in stale)
        loads = self.refresh(keys)
        written = sum(1 for load in loads if load.minutes_used > 0)
        logger.info(f"Rebuilt weekly load: {written} teacher-weeks")
        return written
