"""Interval catalog: named offsets before a deadline.

Canonical keys are ISO-8601-like durations. Months are 30 days and weeks
are 7 days; offsets are fixed second counts, not calendar arithmetic.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

DAY_SECONDS = 24 * 60 * 60
WEEK_SECONDS = 7 * DAY_SECONDS
MONTH_SECONDS = 30 * DAY_SECONDS


class IntervalKey(StrEnum):
    """Recognized reminder offsets, longest first."""

    THREE_MONTHS = "P3M"
    ONE_MONTH = "P1M"
    THREE_WEEKS = "P3W"
    TWO_WEEKS = "P2W"
    ONE_WEEK = "P1W"
    THREE_DAYS = "P3D"
    ONE_DAY = "P1D"


INTERVAL_SECONDS: dict[str, int] = {
    IntervalKey.THREE_MONTHS: 3 * MONTH_SECONDS,
    IntervalKey.ONE_MONTH: 1 * MONTH_SECONDS,
    IntervalKey.THREE_WEEKS: 3 * WEEK_SECONDS,
    IntervalKey.TWO_WEEKS: 2 * WEEK_SECONDS,
    IntervalKey.ONE_WEEK: 1 * WEEK_SECONDS,
    IntervalKey.THREE_DAYS: 3 * DAY_SECONDS,
    IntervalKey.ONE_DAY: 1 * DAY_SECONDS,
}

INTERVAL_LABELS: dict[str, str] = {
    IntervalKey.THREE_MONTHS: "3 months before deadline",
    IntervalKey.ONE_MONTH: "1 month before deadline",
    IntervalKey.THREE_WEEKS: "3 weeks before deadline",
    IntervalKey.TWO_WEEKS: "2 weeks before deadline",
    IntervalKey.ONE_WEEK: "1 week before deadline",
    IntervalKey.THREE_DAYS: "3 days before deadline",
    IntervalKey.ONE_DAY: "1 day before deadline",
}

DEFAULT_INTERVALS: tuple[str, ...] = tuple(key.value for key in IntervalKey)

# Keys from the older "7d/1d/1h" scheme. "1h" has no catalog equivalent.
LEGACY_INTERVAL_KEYS: dict[str, str | None] = {
    "7d": IntervalKey.ONE_WEEK.value,
    "1d": IntervalKey.ONE_DAY.value,
    "1h": None,
}

GENERIC_LABEL = "Reminder"


def duration_of(key: str) -> int | None:
    """Return the offset in seconds for ``key``, or None if unrecognized."""
    return INTERVAL_SECONDS.get(key)


def interval_label(key: str | None) -> str:
    """Human label used in reminder messages.

    >>> interval_label("P1W")
    '1 week before deadline'
    >>> interval_label("P5D")
    'P5D before deadline'
    >>> interval_label(None)
    'Reminder'
    """
    if not key:
        return GENERIC_LABEL
    return INTERVAL_LABELS.get(key, f"{key} before deadline")


def normalize_interval_key(key: str) -> str | None:
    """Translate legacy keys to canonical ones.

    Canonical and unknown keys pass through unchanged so the scheduler can
    skip and report them; legacy keys without an equivalent become None.
    """
    cleaned = key.strip()
    if cleaned in LEGACY_INTERVAL_KEYS:
        return LEGACY_INTERVAL_KEYS[cleaned]
    return cleaned


def normalize_interval_keys(keys: Iterable[str]) -> list[str]:
    """Normalize ``keys``, dropping untranslatable ones and duplicates."""
    normalized: list[str] = []
    for key in keys:
        value = normalize_interval_key(key)
        if value and value not in normalized:
            normalized.append(value)
    return normalized


def resolve_intervals(
    requested: Iterable[str] | None,
    enabled: Iterable[str] | None,
) -> list[str]:
    """Pick the interval keys a task should be scheduled with.

    Requested keys are normalized and restricted to the user's enabled set.
    With no request, or nothing left after normalization, the enabled set
    is used as-is.
    """
    enabled_keys = normalize_interval_keys(enabled if enabled is not None else DEFAULT_INTERVALS)
    requested_keys = normalize_interval_keys(requested or ())
    if not requested_keys:
        return enabled_keys
    return [key for key in requested_keys if key in enabled_keys]


__all__ = [
    "DEFAULT_INTERVALS",
    "GENERIC_LABEL",
    "INTERVAL_LABELS",
    "INTERVAL_SECONDS",
    "IntervalKey",
    "LEGACY_INTERVAL_KEYS",
    "duration_of",
    "interval_label",
    "normalize_interval_key",
    "normalize_interval_keys",
    "resolve_intervals",
]
