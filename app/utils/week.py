from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta

WORKWEEK_DAYS = 5


def monday_of_week(d: date) -> date:
    """Retorna a segunda-feira da semana de d (a mais recente, ou o próprio d)."""
    return d - timedelta(days=d.weekday())  # Monday=0 .. Sunday=6


def is_weekday(d: date) -> bool:
    return d.weekday() < WORKWEEK_DAYS


def workweek(anchor: date) -> list[date]:
    """Segunda a sexta da semana que começa em anchor."""
    start = monday_of_week(anchor)
    return [start + timedelta(days=i) for i in range(WORKWEEK_DAYS)]


def weekdays_ahead(today: date, days: int) -> Iterator[date]:
    """Dias úteis em (today, today + days], pulando sábado e domingo."""
    for offset in range(1, days + 1):
        d = today + timedelta(days=offset)
        if is_weekday(d):
            yield d
