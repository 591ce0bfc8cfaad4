from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.logging import get_logger
from app.core.settings import settings
from app.db.session import SessionLocal
from app.email.render import render
from app.models.counselling_booking import BookingType, CounsellingBooking
from app.services.mailer import Attachment, send_email
from app.services.meetings import build_calendar_invite, meeting_from_booking

log = get_logger(__name__)


def _context(booking: CounsellingBooking) -> dict:
    counsellor = booking.counsellor
    return {
        "booking": booking,
        "counsellor_name": counsellor.name if counsellor else "Counsellor",
        "is_online": booking.booking_type == BookingType.ONLINE,
        "meeting_url": booking.meeting_url,
        "centre_name": settings.COUNSELLING_CENTRE_NAME,
        "centre_address": settings.COUNSELLING_CENTRE_ADDRESS,
        "contact_email": settings.COUNSELLING_CONTACT_EMAIL,
        "contact_phone": settings.COUNSELLING_CONTACT_PHONE,
        "year": datetime.now(UTC).year,
    }


def send_booking_confirmation(booking: CounsellingBooking) -> None:
    html = render("booking_confirmation.html").render(_context(booking))
    subject = f"Counselling Session Confirmed - {booking.confirmation_number}"

    attachments: list[Attachment] = []
    meeting = meeting_from_booking(booking)
    if booking.booking_type == BookingType.ONLINE and meeting:
        attachments.append(
            Attachment(
                filename="counselling-session.ics",
                content=build_calendar_invite(booking, meeting),
                content_type="text/calendar",
            )
        )
    send_email(subject, [booking.email], html, attachments=attachments)


def send_counsellor_notification(booking: CounsellingBooking) -> None:
    counsellor = booking.counsellor
    if not counsellor or not counsellor.email:
        raise ValueError(f"counsellor {booking.counsellor_id} has no email")
    html = render("counsellor_notification.html").render(_context(booking))
    subject = f"New Counselling Booking - {booking.confirmation_number}"
    send_email(subject, [counsellor.email], html)


def send_cancellation_email(booking: CounsellingBooking) -> None:
    html = render("booking_cancelled.html").render(_context(booking))
    subject = f"Counselling Session Cancelled - {booking.confirmation_number}"
    send_email(subject, [booking.email], html)


def _commit(db: Session, booking_id: int) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("notify.commit_failed", booking_id=booking_id)


def send_booking_notifications_bg(
    booking_id: int, session_factory: sessionmaker = SessionLocal
) -> None:
    """
    Fase 2 da reserva: e-mails para cliente e counsellor. Cada envio é
    independente; falhas ficam no log e o timestamp continua nulo para o
    job de retry (app.jobs.retry_notifications). Cada chamada conta uma
    tentativa; o job desiste após NOTIFICATION_MAX_ATTEMPTS.
    """
    with session_factory() as db:
        booking = db.get(CounsellingBooking, booking_id)
        if not booking:
            log.warning("notify.booking_missing", booking_id=booking_id)
            return

        booking.notification_attempts = (booking.notification_attempts or 0) + 1

        if booking.client_notified_at is None:
            try:
                send_booking_confirmation(booking)
                booking.client_notified_at = datetime.now(UTC)
            except Exception:
                log.exception(
                    "email.client_confirmation_failed",
                    booking_id=booking_id,
                    confirmation_number=booking.confirmation_number,
                )

        if booking.counsellor_notified_at is None:
            try:
                send_counsellor_notification(booking)
                booking.counsellor_notified_at = datetime.now(UTC)
            except Exception:
                log.exception(
                    "email.counsellor_notification_failed",
                    booking_id=booking_id,
                    counsellor_id=booking.counsellor_id,
                )

        pending = booking.client_notified_at is None or booking.counsellor_notified_at is None
        if pending and booking.notification_attempts >= settings.NOTIFICATION_MAX_ATTEMPTS:
            log.warning(
                "notify.gave_up",
                booking_id=booking_id,
                attempts=booking.notification_attempts,
            )

        _commit(db, booking_id)


def send_cancellation_email_bg(
    booking_id: int, session_factory: sessionmaker = SessionLocal
) -> None:
    with session_factory() as db:
        booking = db.get(CounsellingBooking, booking_id)
        if not booking:
            log.warning("notify.booking_missing", booking_id=booking_id)
            return
        try:
            send_cancellation_email(booking)
        except Exception:
            log.exception(
                "email.cancellation_failed",
                booking_id=booking_id,
                confirmation_number=booking.confirmation_number,
            )
