from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import date, time, timedelta

from sqlalchemy import and_
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.counselling_booking import ACTIVE_STATUSES, CounsellingBooking
from app.models.counsellor import Counsellor
from app.schemas.counselling import TimeSlotOut
from app.utils.time import hhmm_from_minutes, minutes_of
from app.utils.week import is_weekday, weekdays_ahead

Interval = tuple[int, int]  # minutos desde 00:00, [start, end)


def _overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # intervalo [start, end), fim exclusivo
    return not (a_end <= b_start or a_start >= b_end)


def _busy_intervals(
    db: Session,
    counsellor_ids: Sequence[str],
    first_day: date,
    last_day: date,
    exclude_booking_id: int | None = None,
) -> dict[tuple[str, date], list[Interval]]:
    if not counsellor_ids:
        return {}
    q = db.query(CounsellingBooking).filter(
        and_(
            CounsellingBooking.counsellor_id.in_(counsellor_ids),
            CounsellingBooking.status.in_(ACTIVE_STATUSES),
            CounsellingBooking.preferred_date >= first_day,
            CounsellingBooking.preferred_date <= last_day,
        )
    )
    if exclude_booking_id is not None:
        q = q.filter(CounsellingBooking.id != exclude_booking_id)

    busy: dict[tuple[str, date], list[Interval]] = defaultdict(list)
    for b in q.all():
        start = minutes_of(b.preferred_time)
        busy[(b.counsellor_id, b.preferred_date)].append(
            (start, start + b.session_duration)
        )
    return busy


def _windows_for(counsellor: Counsellor, weekday: int) -> list[Interval]:
    return [
        (minutes_of(a.starts_at), minutes_of(a.ends_at))
        for a in counsellor.availability
        if a.weekday == weekday
    ]


def generate_slots(
    db: Session,
    counsellors: Sequence[Counsellor],
    today: date,
    horizon_days: int | None = None,
    slot_minutes: int | None = None,
    session_minutes: int | None = None,
) -> list[TimeSlotOut]:
    """
    Slots dos próximos `horizon_days` dias úteis (a partir de amanhã), em passos
    de `slot_minutes` dentro das janelas semanais de cada counsellor.

    Um slot só fica isAvailable=true se uma sessão de `session_minutes`
    começando nele cabe na janela e não colide com reserva ativa (mesma regra
    de `validate_slot`). Sem `session_minutes`, vale a duração do passo.
    """
    horizon = horizon_days or settings.COUNSELLING_HORIZON_DAYS
    step = slot_minutes or settings.COUNSELLING_SLOT_MINUTES
    length = session_minutes or step

    busy = _busy_intervals(
        db,
        [c.id for c in counsellors],
        today + timedelta(days=1),
        today + timedelta(days=horizon),
    )

    slots: list[TimeSlotOut] = []
    for day in weekdays_ahead(today, horizon):
        date_str = day.isoformat()
        for counsellor in counsellors:
            taken = busy.get((counsellor.id, day), [])
            for w_start, w_end in _windows_for(counsellor, day.weekday()):
                cur = w_start
                while cur + step <= w_end:
                    start_str = hhmm_from_minutes(cur)
                    slots.append(
                        TimeSlotOut(
                            id=f"{counsellor.id}-{date_str}-{start_str}",
                            counsellor_id=counsellor.id,
                            date=date_str,
                            start_time=start_str,
                            end_time=hhmm_from_minutes(cur + step),
                            is_available=cur + length <= w_end
                            and not any(
                                _overlaps(cur, cur + length, b0, b1) for b0, b1 in taken
                            ),
                        )
                    )
                    cur += step
    return slots


def validate_slot(
    db: Session,
    counsellor: Counsellor,
    booking_type: str,
    day: date,
    start: time,
    duration_minutes: int,
    today: date,
    exclude_booking_id: int | None = None,
) -> tuple[bool, str | None]:
    """
    True se a sessão [start, start + duration) cabe numa janela do counsellor,
    alinhada aos slots, dentro do horizonte, e não colide com reservas ativas.
    """
    if not counsellor.offers(booking_type):
        label = "online" if booking_type == "online" else "in-person"
        return False, f"Counsellor does not offer {label} sessions"

    horizon = settings.COUNSELLING_HORIZON_DAYS
    if day <= today or day > today + timedelta(days=horizon):
        return False, "Selected date is outside the booking window"
    if not is_weekday(day):
        return False, "Counselling sessions are only available on weekdays"

    windows = _windows_for(counsellor, day.weekday())
    if not windows:
        return False, "Counsellor is not available on the selected date"

    step = settings.COUNSELLING_SLOT_MINUTES
    s = minutes_of(start)
    e = s + duration_minutes
    fits = any(
        s >= w0 and e <= w1 and (s - w0) % step == 0 for (w0, w1) in windows
    )
    if not fits:
        return False, "Counsellor is not available at the selected time"

    busy = _busy_intervals(db, [counsellor.id], day, day, exclude_booking_id)
    if any(_overlaps(s, e, b0, b1) for b0, b1 in busy.get((counsellor.id, day), [])):
        return False, "Slot no longer available"
    return True, None


def has_active_booking_at(db: Session, counsellor_id: str, day: date, start: time) -> bool:
    """Existe reserva ativa começando exatamente neste counsellor/data/hora?"""
    return (
        db.query(CounsellingBooking.id)
        .filter(
            CounsellingBooking.counsellor_id == counsellor_id,
            CounsellingBooking.preferred_date == day,
            CounsellingBooking.preferred_time == start,
            CounsellingBooking.status.in_(ACTIVE_STATUSES),
        )
        .first()
        is not None
    )
