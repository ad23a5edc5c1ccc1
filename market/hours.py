"""Calendar rules for bot trading: weekly maintenance halt and boosted day."""

from __future__ import annotations

from datetime import datetime, timezone

from models.config import MaintenanceWindow


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def is_maintenance_window(now: datetime, window: MaintenanceWindow | None) -> bool:
    """True while *now* falls inside the weekly UTC maintenance window.

    Naive datetimes are taken to be UTC.
    """
    if window is None:
        return False
    now = _as_utc(now)
    if now.weekday() != window.weekday:
        return False
    minutes = now.hour * 60 + now.minute
    return window.start_minute <= minutes < window.end_minute


def is_boosted_day(now: datetime, boosted_weekday: int | None) -> bool:
    """True on the weekly content-release day, when bots trade more."""
    if boosted_weekday is None:
        return False
    return _as_utc(now).weekday() == boosted_weekday


def now_ms(now: datetime | None = None) -> int:
    """Epoch milliseconds for *now* (defaults to the current time)."""
    if now is None:
        now = datetime.now(timezone.utc)
    return int(_as_utc(now).timestamp() * 1000)
