import re

from fastapi import status

from app.models.counselling_booking import BookingStatus, CounsellingBooking

CONFIRMATION_RE = re.compile(r"^CNSL-[0-9A-Z]+-[0-9A-Z]{4}$")


def test_create_in_person_booking(client, db_session, test_counsellor, booking_payload, sent_emails):
    response = client.post("/api/counselling", json=booking_payload())

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["success"] is True
    result = body["data"]
    assert CONFIRMATION_RE.match(result["confirmationNumber"])
    assert result["meetingUrl"] is None
    assert result["booking"]["status"] == "pending"
    assert result["booking"]["preferredTime"] == "10:00"
    assert result["booking"]["bookingType"] == "in-person"
    assert result["booking"]["counsellor"] == {
        "name": "Pastor John Smith",
        "title": "Senior Pastoral Counsellor",
    }

    db_session.expire_all()
    stored = db_session.query(CounsellingBooking).one()
    assert stored.confirmation_number == result["confirmationNumber"]
    assert stored.status == BookingStatus.PENDING
    assert stored.meeting_url is None
    assert stored.city == "Accra"
    assert stored.notes is None


def test_create_online_booking_gets_placeholder_meeting(
    client, test_counsellor, booking_payload, sent_emails
):
    response = client.post("/api/counselling", json=booking_payload(bookingType="online"))

    assert response.status_code == status.HTTP_201_CREATED
    result = response.json()["data"]
    assert result["meetingUrl"].startswith("https://teams.microsoft.com/l/meetup-join/meeting-")
    assert result["booking"]["meetingUrl"] == result["meetingUrl"]


def test_booked_slot_disappears_from_availability(
    client, test_counsellor, booking_payload, booking_day, sent_emails
):
    client.post("/api/counselling", json=booking_payload(preferredTime="14:00", sessionDuration=30))

    slots = client.get(
        "/api/counselling", params={"counsellorId": "counsellor-1"}
    ).json()["data"]["availableSlots"]
    slot = next(
        s for s in slots if s["date"] == booking_day.isoformat() and s["startTime"] == "14:00"
    )
    assert slot["isAvailable"] is False


def test_create_booking_missing_fields(client, test_counsellor, booking_payload):
    response = client.post(
        "/api/counselling",
        json=booking_payload(firstName="", email="not-an-email", topic="  "),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert "First name is required" in body["errors"]
    assert "Please enter a valid email address" in body["errors"]
    assert "Please specify a topic" in body["errors"]


def test_create_booking_bad_date_format(client, test_counsellor, booking_payload):
    response = client.post(
        "/api/counselling", json=booking_payload(preferredDate="10/03/2025", preferredTime="9am")
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    errors = response.json()["errors"]
    assert "Preferred date must be in YYYY-MM-DD format" in errors
    assert "Preferred time must be in HH:MM format" in errors


def test_create_booking_invalid_duration(client, test_counsellor, booking_payload):
    response = client.post("/api/counselling", json=booking_payload(sessionDuration=90))
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_create_booking_unknown_counsellor(client, test_counsellor, booking_payload):
    response = client.post("/api/counselling", json=booking_payload(counsellorId="nobody"))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "Counsellor not found"


def test_create_booking_outside_hours(client, test_counsellor, booking_payload):
    response = client.post("/api/counselling", json=booking_payload(preferredTime="16:30"))
    # 16:30 + 60min passa das 17:00
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "Counsellor is not available at the selected time"


def test_create_booking_modality_not_offered(
    client, online_only_counsellor, booking_payload
):
    response = client.post(
        "/api/counselling",
        json=booking_payload(counsellorId="counsellor-2", preferredTime="10:00"),
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "Counsellor does not offer in-person sessions"


def test_double_booking_same_slot(client, test_counsellor, booking_payload, sent_emails):
    first = client.post("/api/counselling", json=booking_payload())
    assert first.status_code == status.HTTP_201_CREATED

    second = client.post(
        "/api/counselling", json=booking_payload(email="other@example.com", firstName="Yaw")
    )
    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json() == {"success": False, "error": "Slot no longer available"}


def test_overlapping_booking_rejected(client, test_counsellor, booking_payload, sent_emails):
    client.post("/api/counselling", json=booking_payload(preferredTime="10:00", sessionDuration=60))

    response = client.post(
        "/api/counselling", json=booking_payload(preferredTime="10:30", sessionDuration=30)
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_idempotent_replay(client, db_session, test_counsellor, booking_payload, sent_emails):
    headers = {"Idempotency-Key": "wizard-session-1"}
    first = client.post("/api/counselling", json=booking_payload(), headers=headers)
    second = client.post("/api/counselling", json=booking_payload(), headers=headers)

    assert first.status_code == status.HTTP_201_CREATED
    assert second.status_code == status.HTTP_200_OK
    assert (
        second.json()["data"]["confirmationNumber"]
        == first.json()["data"]["confirmationNumber"]
    )
    assert db_session.query(CounsellingBooking).count() == 1
    # só a primeira request dispara e-mails
    assert len(sent_emails) == 2


def test_booking_succeeds_when_email_fails(
    client, db_session, monkeypatch, test_counsellor, booking_payload
):
    def _boom(*args, **kwargs):
        raise OSError("smtp down")

    monkeypatch.setattr("app.services.booking_notify.send_email", _boom)

    response = client.post("/api/counselling", json=booking_payload())

    assert response.status_code == status.HTTP_201_CREATED
    db_session.expire_all()
    stored = db_session.query(CounsellingBooking).one()
    assert stored.client_notified_at is None
    assert stored.counsellor_notified_at is None


def test_country_other_is_accepted(client, db_session, test_counsellor, booking_payload, sent_emails):
    response = client.post("/api/counselling", json=booking_payload(country="Other"))

    assert response.status_code == status.HTTP_201_CREATED
    db_session.expire_all()
    assert db_session.query(CounsellingBooking).one().country == "OTHER"


def test_idempotency_key_reused_with_different_payload(
    client, db_session, test_counsellor, booking_payload, sent_emails
):
    headers = {"Idempotency-Key": "wizard-session-2"}
    first = client.post("/api/counselling", json=booking_payload(), headers=headers)
    assert first.status_code == status.HTTP_201_CREATED

    second = client.post(
        "/api/counselling",
        json=booking_payload(preferredTime="14:00", topic="Other"),
        headers=headers,
    )

    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json() == {
        "success": False,
        "error": "Idempotency key already used for a different booking",
    }
    db_session.expire_all()
    assert db_session.query(CounsellingBooking).count() == 1


def test_concurrent_insert_on_same_slot_is_conflict(
    client, monkeypatch, test_counsellor, booking_payload, sent_emails
):
    first = client.post("/api/counselling", json=booking_payload())
    assert first.status_code == status.HTTP_201_CREATED

    # simula a corrida: a checagem prévia não vê a outra reserva
    monkeypatch.setattr(
        "app.api.routes.counselling.validate_slot", lambda *a, **kw: (True, None)
    )
    second = client.post(
        "/api/counselling", json=booking_payload(email="other@example.com")
    )

    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json() == {"success": False, "error": "Slot no longer available"}


def test_concurrent_replay_returns_existing_booking(
    client, db_session, monkeypatch, test_counsellor, booking_payload, sent_emails
):
    import app.api.routes.counselling as routes

    headers = {"Idempotency-Key": "wizard-session-3"}
    first = client.post("/api/counselling", json=booking_payload(), headers=headers)
    assert first.status_code == status.HTTP_201_CREATED

    real_find = routes._find_by_key
    calls = []

    def _late_find(db, key):
        calls.append(key)
        # primeira busca perde a corrida
        return None if len(calls) == 1 else real_find(db, key)

    monkeypatch.setattr(routes, "_find_by_key", _late_find)
    monkeypatch.setattr(routes, "validate_slot", lambda *a, **kw: (True, None))

    second = client.post("/api/counselling", json=booking_payload(), headers=headers)

    assert second.status_code == status.HTTP_200_OK
    assert (
        second.json()["data"]["confirmationNumber"]
        == first.json()["data"]["confirmationNumber"]
    )
    assert len(calls) == 2
    db_session.expire_all()
    assert db_session.query(CounsellingBooking).count() == 1


def test_online_booking_survives_meeting_crash(
    client, db_session, monkeypatch, test_counsellor, booking_payload, sent_emails
):
    def _crash(booking):
        raise RuntimeError("unexpected provider payload")

    monkeypatch.setattr("app.api.routes.counselling.create_meeting_for_booking", _crash)

    response = client.post("/api/counselling", json=booking_payload(bookingType="online"))

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["data"]["meetingUrl"] is None
    db_session.expire_all()
    assert db_session.query(CounsellingBooking).one().status == BookingStatus.PENDING
