from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import configure_mappers, sessionmaker

import app.models  # noqa: F401
from app.core.logging import configure_logging, get_logger
from app.core.settings import settings
from app.db.session import SessionLocal
from app.models.counselling_booking import ACTIVE_STATUSES, CounsellingBooking
from app.services.booking_notify import send_booking_notifications_bg

configure_mappers()

log = get_logger(__name__)


def pending_notification_ids(db, now: datetime) -> list[int]:
    """
    Reservas ativas com algum e-mail ainda não enviado, criadas há mais que o
    período de tolerância (a background task da própria request pode estar
    rodando). Reservas que esgotaram NOTIFICATION_MAX_ATTEMPTS ficam de fora
    (ex.: counsellor sem e-mail).
    """
    cutoff = now - timedelta(minutes=settings.NOTIFICATION_RETRY_GRACE_MINUTES)
    rows = (
        db.query(CounsellingBooking.id)
        .filter(
            CounsellingBooking.status.in_(ACTIVE_STATUSES),
            or_(
                CounsellingBooking.client_notified_at.is_(None),
                CounsellingBooking.counsellor_notified_at.is_(None),
            ),
            CounsellingBooking.created_at <= cutoff,
            CounsellingBooking.notification_attempts < settings.NOTIFICATION_MAX_ATTEMPTS,
        )
        .order_by(CounsellingBooking.id)
        .all()
    )
    return [r.id for r in rows]


def main(now: datetime | None = None, session_factory: sessionmaker = SessionLocal) -> int:
    now = now or datetime.now(UTC)
    with session_factory() as db:
        ids = pending_notification_ids(db, now)

    for booking_id in ids:
        send_booking_notifications_bg(booking_id, session_factory=session_factory)

    # evidência em log
    log.info("notify.retry_done", now=now.isoformat(), retried=len(ids))
    return len(ids)


if __name__ == "__main__":
    configure_logging(json=settings.LOG_JSON, level=settings.LOG_LEVEL)
    main()
