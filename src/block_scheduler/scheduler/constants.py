"""Constants for block scheduling."""

import math
from datetime import time
from enum import Enum


class Shift(str, Enum):
    """Daily teaching window."""

    DAY = "day"
    EVENING = "evening"


# Every block is a 35-minute teaching unit
BLOCK_MINUTES = 35

# Block 1 starts at 08:30 local time
FIRST_BLOCK_START = time(8, 30)

MIN_BLOCK = 1
MAX_BLOCK = 22

# Block ranges by shift (inclusive)
SHIFT_BLOCK_RANGES = {
    Shift.DAY: (1, 11),
    Shift.EVENING: (18, 22),
}

# Monday..Friday as date.weekday() values
TEACHING_WEEKDAYS = [0, 1, 2, 3, 4]

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

# Priority used when a program link carries none
DEFAULT_PRIORITY = 999

# Score weights. Each term's step is larger than the maximum of all
# lower terms combined: priority > load balance > room preference > contiguity.
SCORE_WEIGHTS = {
    "priority": 10_000,
    "load_step": 10,
    "load_steps": 100,
    "preferred_room": 4,
    "contiguous": 3,
}

# Default search time limit in seconds (None = unbounded)
DEFAULT_TIME_LIMIT: float | None = None


def get_blocks_for_shift(shift: Shift) -> list[int]:
    """Get block indices for a shift.

    Args:
        shift: The shift (DAY or EVENING)

    Returns:
        List of block indices in ascending order
    """
    first, last = SHIFT_BLOCK_RANGES[Shift(shift)]
    return list(range(first, last + 1))


def blocks_needed(minutes: int) -> int:
    """Number of 35-minute blocks that cover a number of minutes.

    Args:
        minutes: Required minutes

    Returns:
        ceil(minutes / 35), or 0 for non-positive input
    """
    if minutes <= 0:
        return 0
    return math.ceil(minutes / BLOCK_MINUTES)


def get_block_offset_minutes(block: int) -> int:
    """Minutes after midnight at which a block starts (block 1 → 510)."""
    return FIRST_BLOCK_START.hour * 60 + FIRST_BLOCK_START.minute + (block - 1) * BLOCK_MINUTES


def get_block_start_time(block: int) -> str:
    """Get start time for a block (e.g., block 1 → '08:30').

    Args:
        block: Block index (1-based)

    Returns:
        Start time string in HH:MM format, or empty string if out of range
    """
    if block < MIN_BLOCK or block > MAX_BLOCK:
        return ""
    minutes = get_block_offset_minutes(block)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def get_block_time_range(block: int) -> str:
    """Get time range string for a block (e.g., '08:30-09:05')."""
    start = get_block_start_time(block)
    if not start:
        return ""
    minutes = get_block_offset_minutes(block) + BLOCK_MINUTES
    return f"{start}-{minutes // 60:02d}:{minutes % 60:02d}"
