from __future__ import annotations

from datetime import date, timedelta

from app.utils.week import monday_of_week, workweek
from app.wizard.slot_index import SlotIndex


class DateNavigator:
    """Janela de 5 dias úteis a partir de `anchor` (sempre uma segunda-feira)."""

    def __init__(self, today: date) -> None:
        self.today = today
        self.anchor = monday_of_week(today)

    def visible_dates(self) -> list[date]:
        return workweek(self.anchor)

    def next_week(self) -> None:
        self.anchor += timedelta(days=7)

    def previous_week(self) -> None:
        self.anchor -= timedelta(days=7)

    def is_selectable(self, day: date, index: SlotIndex) -> bool:
        if day < self.today:
            return False
        return index.has_slots(day.isoformat())
