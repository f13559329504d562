"""UTC datetime utilities and the injectable clock."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    This function should be used instead of datetime.now() or datetime.utcnow()
    to ensure all timestamps are timezone-aware and stored in UTC.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach UTC to a naive datetime read back from the store.

    Some backends (SQLite) drop tzinfo on round-trip even for timezone-aware columns;
    every timestamp this package writes is UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return utc_now()

    def today(self) -> date:
        return utc_now().date()
