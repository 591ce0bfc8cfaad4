from __future__ import annotations

from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

from app.core.settings import settings


def centre_tz() -> ZoneInfo:
    return ZoneInfo(settings.COUNSELLING_TZ)


def today_local(tz: ZoneInfo | None = None) -> date:
    """Data de hoje no fuso do centro (slots e reservas usam hora local)."""
    return datetime.now(tz or centre_tz()).date()


def combine_local_to_utc(d: date, t: time, tz: ZoneInfo | None = None) -> datetime:
    """
    Combina uma data+hora interpretadas na TZ local e retorna em UTC (aware).
    """
    tz = tz or centre_tz()
    local_dt = datetime.combine(d, time(t.hour, t.minute)).replace(tzinfo=tz)
    return local_dt.astimezone(UTC)


def iso_utc(dt: datetime) -> str:
    """
    Serializa em ISO 8601 sempre em UTC com sufixo 'Z'.
    """
    if dt.tzinfo is None:
        raise ValueError("Datetime naive recebido. Sempre use datetimes timezone-aware.")
    return dt.astimezone(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
