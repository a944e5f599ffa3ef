"""Utility functions for block and ISO-week arithmetic."""

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from .constants import BLOCK_MINUTES, WEEKDAY_NAMES, get_block_offset_minutes
from .models import EventChange, Interval, WeekKey


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive input is taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def block_interval(
    day: date, block: int, tz: tzinfo = timezone.utc, block_count: int = 1
) -> Interval:
    """Build the UTC interval covered by a run of blocks on a local day.

    Args:
        day: Local calendar date
        block: First block index (block 1 starts 08:30 local)
        tz: Local timezone of the block grid
        block_count: Number of consecutive blocks

    Returns:
        Interval in UTC
    """
    offset = get_block_offset_minutes(block)
    local_start = datetime.combine(day, time(offset // 60, offset % 60), tzinfo=tz)
    start = local_start.astimezone(timezone.utc)
    return Interval(start, start + timedelta(minutes=block_count * BLOCK_MINUTES))


def iso_week_of(value: datetime) -> tuple[int, int]:
    """ISO (year, week) of a timestamp, computed on its UTC calendar day."""
    iso = ensure_utc(value).date().isocalendar()
    return iso[0], iso[1]


def week_key_for(teacher_id: str | None, start: datetime | None) -> WeekKey | None:
    """Build the load key for an event start, or None without a teacher."""
    if not teacher_id or start is None:
        return None
    iso_year, iso_week = iso_week_of(start)
    return WeekKey(str(teacher_id).strip(), iso_year, iso_week)


def change_week_keys(change: EventChange) -> list[WeekKey]:
    """Load keys touched by a write, old state first, without duplicates."""
    keys: list[WeekKey] = []
    for state in (change.previous, change.current):
        if state is None:
            continue
        key = week_key_for(state.teacher_id, state.start)
        if key is not None and key not in keys:
            keys.append(key)
    return keys


def iso_week_bounds(iso_year: int, iso_week: int) -> Interval:
    """UTC [Monday 00:00, next Monday 00:00) of an ISO week."""
    monday = date.fromisocalendar(iso_year, iso_week, 1)
    start = datetime.combine(monday, time(0, 0), tzinfo=timezone.utc)
    return Interval(start, start + timedelta(days=7))


def monday_of(day: date) -> date:
    """Monday of the week containing a date."""
    return day - timedelta(days=day.weekday())


def horizon_window(start_date: date, num_weeks: int, tz: tzinfo = timezone.utc) -> Interval:
    """UTC interval spanning the scheduling horizon.

    The horizon starts on the Monday of the week containing ``start_date``
    (local midnight) and spans ``num_weeks`` full weeks.
    """
    first = datetime.combine(monday_of(start_date), time(0, 0), tzinfo=tz)
    last = datetime.combine(
        monday_of(start_date) + timedelta(weeks=num_weeks), time(0, 0), tzinfo=tz
    )
    return Interval(first.astimezone(timezone.utc), last.astimezone(timezone.utc))


def parse_date(value: str | date | datetime | None) -> date | None:
    """Parse a date from ISO text; returns None for empty input.

    Raises:
        ValueError: If the text is not an ISO date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def split_ids(value: str | None, separator: str = ";") -> list[str]:
    """Split a separated id list from a reference file cell."""
    if not value:
        return []
    return [part.strip() for part in str(value).split(separator) if part.strip()]


def parse_bool(value: str | bool | None, default: bool = True) -> bool:
    """Parse a yes/no cell; empty cells take the default."""
    if isinstance(value, bool):
        return value
    if value is None or str(value).strip() == "":
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "y", "si", "sí")


def weekday_index(value: str | int) -> int | None:
    """Map a weekday name or number (0 = Monday) to a weekday index."""
    if isinstance(value, int):
        return value if 0 <= value <= 6 else None
    text = str(value).strip().lower()
    if text.isdigit():
        return weekday_index(int(text))
    for index, name in enumerate(WEEKDAY_NAMES):
        if name.startswith(text[:3]) and len(text) >= 3:
            return index
    return None


def block_position(moment: datetime, tz: tzinfo = timezone.utc) -> tuple[date, int] | None:
    """Local (date, block) at which a timestamp starts a block.

    Returns:
        Tuple of (local date, block index), or None when the time is not on
        the block grid
    """
    local = ensure_utc(moment).astimezone(tz)
    minutes = local.hour * 60 + local.minute - get_block_offset_minutes(1)
    if minutes < 0 or minutes % BLOCK_MINUTES or local.second or local.microsecond:
        return None
    return local.date(), minutes // BLOCK_MINUTES + 1
