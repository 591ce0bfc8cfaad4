from datetime import UTC, datetime, time, timedelta

from app.jobs import retry_notifications
from app.models.counselling_booking import BookingStatus, BookingType, CounsellingBooking
from app.services.booking_notify import send_booking_notifications_bg
from app.utils.time import format_date_for_display


def test_confirmation_and_counsellor_emails(
    client, db_session, test_counsellor, booking_payload, booking_day, sent_emails
):
    response = client.post("/api/counselling", json=booking_payload(notes="First visit"))
    number = response.json()["data"]["confirmationNumber"]

    assert len(sent_emails) == 2
    client_mail, counsellor_mail = sent_emails

    assert client_mail["to"] == ["ama@example.com"]
    assert client_mail["subject"] == f"Counselling Session Confirmed - {number}"
    assert format_date_for_display(booking_day) in client_mail["html"]
    assert "10:00 AM" in client_mail["html"]
    assert client_mail["attachments"] == []  # in-person: sem convite .ics

    assert counsellor_mail["to"] == ["john@example.com"]
    assert counsellor_mail["subject"] == f"New Counselling Booking - {number}"
    assert "First visit" in counsellor_mail["html"]

    db_session.expire_all()
    stored = db_session.query(CounsellingBooking).one()
    assert stored.client_notified_at is not None
    assert stored.counsellor_notified_at is not None


def test_online_confirmation_carries_calendar_invite(
    client, test_counsellor, booking_payload, sent_emails
):
    response = client.post("/api/counselling", json=booking_payload(bookingType="online"))
    meeting_url = response.json()["data"]["meetingUrl"]

    client_mail = sent_emails[0]
    assert meeting_url in client_mail["html"]
    (invite,) = client_mail["attachments"]
    assert invite.filename == "counselling-session.ics"
    assert invite.content_type == "text/calendar"
    assert "BEGIN:VEVENT" in invite.content
    assert meeting_url in invite.content


def _stale_booking(db, booking_day, **fields):
    booking = CounsellingBooking(
        confirmation_number=fields.pop("confirmation_number", "CNSL-STALE-0001"),
        first_name="Esi",
        last_name="Owusu",
        email="esi@example.com",
        phone="+233 20 111 1111",
        country="GH",
        counsellor_id="counsellor-1",
        booking_type=BookingType.IN_PERSON,
        preferred_date=booking_day,
        preferred_time=fields.pop("preferred_time", time(9, 0)),
        session_duration=30,
        topic="Depression",
        created_at=datetime.now(UTC) - timedelta(hours=1),
        **fields,
    )
    db.add(booking)
    db.commit()
    return booking


def test_retry_job_sends_pending_notifications(
    db_session, TestingSessionLocal, test_counsellor, booking_day, sent_emails
):
    pending = _stale_booking(db_session, booking_day)
    _stale_booking(
        db_session,
        booking_day,
        confirmation_number="CNSL-STALE-0002",
        preferred_time=time(11, 0),
        status=BookingStatus.CANCELLED,
    )

    retried = retry_notifications.main(session_factory=TestingSessionLocal)

    assert retried == 1
    assert {tuple(m["to"]) for m in sent_emails} == {("esi@example.com",), ("john@example.com",)}
    db_session.expire_all()
    assert db_session.get(CounsellingBooking, pending.id).client_notified_at is not None

    # segunda execução: nada pendente
    assert retry_notifications.main(session_factory=TestingSessionLocal) == 0


def test_retry_job_skips_recent_bookings(
    db_session, TestingSessionLocal, test_counsellor, booking_day, sent_emails
):
    booking = _stale_booking(db_session, booking_day)
    booking.created_at = datetime.now(UTC)
    db_session.commit()

    assert retry_notifications.main(session_factory=TestingSessionLocal) == 0
    assert sent_emails == []


def test_notifications_only_resend_missing(
    db_session, TestingSessionLocal, test_counsellor, booking_day, sent_emails
):
    booking = _stale_booking(
        db_session, booking_day, client_notified_at=datetime.now(UTC) - timedelta(minutes=50)
    )

    send_booking_notifications_bg(booking.id, session_factory=TestingSessionLocal)

    assert [m["to"] for m in sent_emails] == [["john@example.com"]]


def test_retry_job_gives_up_after_max_attempts(
    db_session, TestingSessionLocal, monkeypatch, test_counsellor, booking_day, sent_emails
):
    monkeypatch.setattr("app.core.settings.settings.NOTIFICATION_MAX_ATTEMPTS", 2)
    # counsellor sem e-mail: a notificação dele nunca sai
    test_counsellor.email = ""
    db_session.commit()
    booking = _stale_booking(db_session, booking_day)

    assert retry_notifications.main(session_factory=TestingSessionLocal) == 1
    assert retry_notifications.main(session_factory=TestingSessionLocal) == 1
    assert retry_notifications.main(session_factory=TestingSessionLocal) == 0

    db_session.expire_all()
    stored = db_session.get(CounsellingBooking, booking.id)
    assert stored.notification_attempts == 2
    assert stored.client_notified_at is not None
    assert stored.counsellor_notified_at is None
    # cliente recebeu uma vez só
    assert [m["to"] for m in sent_emails] == [["esi@example.com"]]
