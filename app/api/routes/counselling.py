from __future__ import annotations

import hashlib
import json

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.api.errors import ApiError
from app.api.routes.counsellors import counsellor_to_out
from app.core.logging import get_logger
from app.db import get_db, get_session_factory
from app.models.counselling_booking import (
    BookingStatus,
    BookingType,
    CounsellingBooking,
)
from app.models.counsellor import Counsellor
from app.schemas.counselling import (
    SESSION_DURATIONS,
    BookingFormData,
    BookingResponse,
    BookingResult,
    BookingSnapshot,
    BookingTypeValue,
    CancelResponse,
    CounsellorSummary,
    SlotsData,
    SlotsResponse,
)
from app.services.booking_notify import (
    send_booking_notifications_bg,
    send_cancellation_email_bg,
)
from app.services.booking_validator import validate_form_data
from app.services.meetings import create_meeting_for_booking
from app.services.slot_generator import (
    generate_slots,
    has_active_booking_at,
    validate_slot,
)
from app.utils.codes import generate_confirmation_number
from app.utils.time import format_hhmm, parse_hhmm, parse_iso_date
from app.utils.tz import today_local

router = APIRouter(prefix="/counselling", tags=["counselling"])

SLOT_TAKEN = "Slot no longer available"
KEY_REUSED = "Idempotency key already used for a different booking"


def _active_counsellor(db: Session, counsellor_id: str) -> Counsellor:
    c = db.get(Counsellor, counsellor_id)
    if not c or not c.is_active:
        raise ApiError(404, "Counsellor not found")
    return c


def _booking_result(b: CounsellingBooking) -> BookingResult:
    snapshot = BookingSnapshot(
        id=b.id,
        confirmation_number=b.confirmation_number,
        status=b.status.value,
        preferred_date=b.preferred_date.isoformat(),
        preferred_time=format_hhmm(b.preferred_time),
        session_duration=b.session_duration,
        booking_type=b.booking_type.value,
        topic=b.topic,
        meeting_url=b.meeting_url,
        counsellor=CounsellorSummary(name=b.counsellor.name, title=b.counsellor.title),
    )
    return BookingResult(
        confirmation_number=b.confirmation_number,
        booking=snapshot,
        meeting_url=b.meeting_url,
    )


def _find_by_key(db: Session, key: str) -> CounsellingBooking | None:
    return (
        db.query(CounsellingBooking)
        .filter(CounsellingBooking.idempotency_key == key)
        .first()
    )


def payload_fingerprint(payload: BookingFormData) -> str:
    canonical = json.dumps(payload.model_dump(mode="json"), sort_keys=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _replay(
    existing: CounsellingBooking, fingerprint: str, response: Response, log, **extra
) -> BookingResponse:
    # mesma chave com outro formulário não pode devolver a reserva antiga
    if existing.idempotency_fingerprint and existing.idempotency_fingerprint != fingerprint:
        log.info("booking.rejected", reason="idempotency_key_reused", booking_id=existing.id)
        raise ApiError(409, KEY_REUSED)
    log.info("booking.replayed", booking_id=existing.id, **extra)
    response.status_code = 200
    return BookingResponse(data=_booking_result(existing))


# ------- Slots -------
@router.get("", response_model=SlotsResponse)
def get_available_slots(
    counsellor_id: str | None = Query(None, alias="counsellorId"),
    booking_type: BookingTypeValue | None = Query(None, alias="bookingType"),
    session_duration: int | None = Query(None, alias="sessionDuration"),
    db: Session = Depends(get_db),
):
    if session_duration is not None and session_duration not in SESSION_DURATIONS:
        raise ApiError(400, "Session duration must be 30, 45 or 60 minutes")

    if counsellor_id:
        counsellors = [_active_counsellor(db, counsellor_id)]
    else:
        counsellors = (
            db.query(Counsellor)
            .filter(Counsellor.is_active == True)  # noqa: E712
            .order_by(Counsellor.name.asc())
            .all()
        )
    if booking_type:
        counsellors = [c for c in counsellors if c.offers(booking_type)]

    slots = generate_slots(
        db, counsellors, today_local(), session_minutes=session_duration
    )
    return SlotsResponse(
        data=SlotsData(
            counsellors=[counsellor_to_out(c) for c in counsellors],
            available_slots=slots,
        )
    )


# ------- Criar reserva -------
@router.post("", response_model=BookingResponse, status_code=201)
def create_booking(
    payload: BookingFormData,
    response: Response,
    background_tasks: BackgroundTasks,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key", max_length=64),
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    log = get_logger().bind(
        counsellor_id=payload.counsellor_id, idempotency_key=idempotency_key
    )

    fingerprint = payload_fingerprint(payload)
    if idempotency_key:
        existing = _find_by_key(db, idempotency_key)
        if existing:
            return _replay(existing, fingerprint, response, log)

    errors = validate_form_data(payload)
    day = parse_iso_date(payload.preferred_date)
    start = parse_hhmm(payload.preferred_time)
    if payload.preferred_date.strip() and day is None:
        errors.append("Preferred date must be in YYYY-MM-DD format")
    if payload.preferred_time.strip() and start is None:
        errors.append("Preferred time must be in HH:MM format")
    if errors:
        log.info("booking.rejected", reason="validation", errors=errors)
        raise ApiError(400, errors=errors)

    counsellor = _active_counsellor(db, payload.counsellor_id)

    # valida antes de criar (pode ainda ocorrer corrida; o índice único cobre)
    ok, reason = validate_slot(
        db,
        counsellor,
        payload.booking_type,
        day,
        start,
        payload.session_duration,
        today_local(),
    )
    if not ok:
        log.info("booking.rejected", reason=reason)
        raise ApiError(409, reason or SLOT_TAKEN)

    booking = CounsellingBooking(
        confirmation_number=generate_confirmation_number(),
        idempotency_key=idempotency_key,
        idempotency_fingerprint=fingerprint if idempotency_key else None,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=payload.email.strip(),
        phone=payload.phone.strip(),
        country=payload.country.strip().upper(),
        city=payload.city.strip() or None,
        counsellor_id=counsellor.id,
        booking_type=BookingType(payload.booking_type),
        preferred_date=day,
        preferred_time=start,
        session_duration=payload.session_duration,
        topic=payload.topic.strip(),
        notes=payload.notes.strip() or None,
        status=BookingStatus.PENDING,
    )
    db.add(booking)

    # fase 1: a reserva é a fonte da verdade
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # a mensagem do driver varia; consulta o que de fato colidiu
        if idempotency_key:
            existing = _find_by_key(db, idempotency_key)
            if existing:
                return _replay(existing, fingerprint, response, log, race=True)
        if has_active_booking_at(db, counsellor.id, day, start):
            log.info("booking.rejected", reason=SLOT_TAKEN, race=True)
            raise ApiError(409, SLOT_TAKEN) from e
        raise

    db.refresh(booking)
    log = log.bind(booking_id=booking.id, confirmation_number=booking.confirmation_number)
    log.info("booking.created", booking_type=booking.booking_type.value)

    # fase 2: melhor esforço, nunca desfaz a reserva
    if booking.booking_type == BookingType.ONLINE:
        try:
            meeting = create_meeting_for_booking(booking)
        except Exception:
            log.exception("booking.meeting_failed")
            meeting = None
        if meeting is not None:
            booking.meeting_id = meeting.id
            booking.meeting_url = meeting.join_url
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                log.exception("booking.meeting_save_failed")
            db.refresh(booking)

    background_tasks.add_task(send_booking_notifications_bg, booking.id, session_factory)
    return BookingResponse(data=_booking_result(booking))


# ------- Cancelar reserva -------
@router.delete("", response_model=CancelResponse)
def cancel_booking(
    background_tasks: BackgroundTasks,
    confirmation_number: str | None = Query(None, alias="confirmationNumber"),
    email: str | None = Query(None),
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    if not confirmation_number or not email:
        raise ApiError(400, "Confirmation number and email are required")

    booking = (
        db.query(CounsellingBooking)
        .filter(CounsellingBooking.confirmation_number == confirmation_number)
        .first()
    )
    if not booking:
        raise ApiError(404, "Booking not found")
    if booking.email.strip().lower() != email.strip().lower():
        raise ApiError(403, "Email does not match booking")
    if booking.status == BookingStatus.CANCELLED:
        return CancelResponse(message="Booking already cancelled")
    if booking.status == BookingStatus.COMPLETED:
        raise ApiError(409, "Completed bookings cannot be cancelled")

    booking.status = BookingStatus.CANCELLED
    db.commit()
    get_logger().info(
        "booking.cancelled",
        booking_id=booking.id,
        confirmation_number=booking.confirmation_number,
    )

    background_tasks.add_task(send_cancellation_email_bg, booking.id, session_factory)
    return CancelResponse(message="Booking cancelled successfully")
