"""
Time and date helpers shared by the analytics engines.

Every function that depends on "now" accepts an explicit reference date so
results are reproducible in tests; callers default to ``utcnow()``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

MONTH_LABELS: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def property_age(year_built: Optional[int], as_of: Optional[date] = None) -> Optional[int]:
    """Return a property's age in whole years, or ``None`` if unknown.

    Args:
        year_built: Construction year, or ``None``.
        as_of:      Reference date (defaults to today, UTC).

    Returns:
        ``as_of.year - year_built``, or ``None`` when ``year_built`` is unset.
    """
    if year_built is None:
        return None
    ref = as_of or utcnow().date()
    return ref.year - year_built


def trailing_month_labels(as_of: Optional[date] = None, count: int = 12) -> list[str]:
    """Return ``count`` month names ending with the month of ``as_of``.

    Example: ``as_of`` in March with ``count=3`` -> ``["Jan", "Feb", "Mar"]``.
    """
    ref = as_of or utcnow().date()
    current = ref.month - 1
    return [MONTH_LABELS[(current - count + 1 + i) % 12] for i in range(count)]


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Return the UTC datetime ``days`` days before ``now``."""
    ref = ensure_utc(now) if now is not None else utcnow()
    return ref - timedelta(days=days)
