from __future__ import annotations

from datetime import date, datetime, time


def parse_iso_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def parse_hhmm(value: str) -> time | None:
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        return None


def format_hhmm(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def minutes_of(t: time) -> int:
    return t.hour * 60 + t.minute


def hhmm_from_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def format_date_for_display(value: date | str) -> str:
    """2025-03-10 -> 'Monday, March 10, 2025'."""
    d = value if isinstance(value, date) else date.fromisoformat(value)
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


def format_time_for_display(value: time | str) -> str:
    """'09:00' -> '9:00 AM', '13:30' -> '1:30 PM'."""
    t = value if isinstance(value, time) else datetime.strptime(value, "%H:%M").time()
    suffix = "PM" if t.hour >= 12 else "AM"
    hour = t.hour % 12 or 12
    return f"{hour}:{t.minute:02d} {suffix}"
