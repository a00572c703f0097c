from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

LEGACY_DAY_FORMAT = "%a %b %d %Y"


def day_key(now: datetime | date | None = None) -> str:
    """Return the calendar-day key for ``now``, anchored to UTC."""

    if now is None:
        now = datetime.now(timezone.utc)
    if isinstance(now, datetime):
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc).date().isoformat()
    return now.isoformat()


def normalize_day_key(value: Any) -> Any:
    """Convert legacy day strings and datetimes to ISO day keys.

    Browser clients stored keys like ``"Sat Oct 17 2026"``; those and ISO
    timestamps are rewritten, anything unparseable is returned unchanged.
    """

    if value is None or isinstance(value, (date, datetime)):
        return None if value is None else day_key(value)
    if not isinstance(value, str):
        return value

    candidate = value.strip()
    if not candidate:
        return None
    try:
        return date.fromisoformat(candidate).isoformat()
    except ValueError:
        pass
    try:
        return datetime.strptime(candidate, LEGACY_DAY_FORMAT).date().isoformat()
    except ValueError:
        pass
    try:
        return day_key(datetime.fromisoformat(candidate.replace("Z", "+00:00")))
    except ValueError:
        return value


def previous_day_key(key: str) -> str:
    return (date.fromisoformat(key) - timedelta(days=1)).isoformat()


__all__ = ["LEGACY_DAY_FORMAT", "day_key", "normalize_day_key", "previous_day_key"]
