from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from app.schemas.counselling import TimeSlotOut


class SlotIndex:
    """Slots disponíveis agrupados por data ISO, cada grupo ordenado por startTime."""

    def __init__(self, slots: Iterable[TimeSlotOut] = ()) -> None:
        grouped: dict[str, list[TimeSlotOut]] = defaultdict(list)
        for slot in slots:
            if slot.is_available:
                grouped[slot.date].append(slot)
        # "HH:MM" ordena lexicograficamente
        self._by_date = {
            d: sorted(items, key=lambda s: s.start_time) for d, items in grouped.items()
        }

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_date.values())

    def dates(self) -> list[str]:
        return sorted(self._by_date)

    def times_for(self, date_str: str) -> list[str]:
        return [s.start_time for s in self._by_date.get(date_str, [])]

    def has_slots(self, date_str: str) -> bool:
        return bool(self._by_date.get(date_str))
