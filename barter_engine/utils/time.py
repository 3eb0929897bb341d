"""Time utilities (UTC now, deadline arithmetic)."""
from __future__ import annotations
from datetime import datetime, timezone, timedelta

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def ensure_aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def add_days(start: datetime, days: int) -> datetime:
    return ensure_aware(start) + timedelta(days=days)  # type: ignore[operator]

__all__ = ["utc_now", "ensure_aware", "add_days"]
