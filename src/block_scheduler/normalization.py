"""Normalization utilities for names and national ids used in catalog lookups."""

import re

import pandas as pd

# Academic prefixes stripped from teacher names before matching
TEACHER_PREFIX_PATTERNS = [
    r"^prof\.?\s+",  # prof / prof.
    r"^profesora?\s+",  # profesor / profesora
    r"^dra?\.\s*",  # dr. / dra.
    r"^mg\.\s*",  # mg. (magíster)
    r"^ing\.\s*",  # ing. (ingeniero)
    r"^sr(a|ta)?\.\s*",  # sr. / sra. / srta.
]


def is_blank(value) -> bool:
    """Check for None, NaN/NaT or whitespace-only values."""
    if value is None:
        return True
    if not isinstance(value, (str, list, dict)) and pd.isna(value):
        return True
    return isinstance(value, str) and not value.strip()


def clean_text(value) -> str:
    """Return trimmed text, or an empty string for blank cells."""
    if is_blank(value):
        return ""
    return " ".join(str(value).split())


def normalize_teacher_name(name: str) -> str:
    """Normalize a teacher name by removing titles and extra whitespace.

    "Prof. Ana  Pérez" and "ana pérez" both normalize to "ana pérez".

    Args:
        name: Raw teacher name with potential prefixes

    Returns:
        Lower-cased name without prefixes and with normalized whitespace
    """
    cleaned = clean_text(name)
    if not cleaned:
        return ""

    for prefix_pattern in TEACHER_PREFIX_PATTERNS:
        cleaned = re.sub(prefix_pattern, "", cleaned, flags=re.IGNORECASE)

    return " ".join(cleaned.split()).casefold()


def normalize_key(value) -> str:
    """Case- and whitespace-insensitive lookup key."""
    return clean_text(value).casefold()


def normalize_rut(value) -> str:
    """Normalize a Chilean RUT to digits plus check character.

    "12.345.678-k" becomes "12345678K".

    Returns:
        Normalized RUT, or an empty string when no digits remain
    """
    text = clean_text(value)
    if not text:
        return ""
    normalized = re.sub(r"[^0-9kK]", "", text).upper()
    return normalized if any(ch.isdigit() for ch in normalized) else ""
