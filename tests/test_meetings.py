from datetime import UTC, date, datetime, time

import httpx
import pytest

from app.models.counselling_booking import BookingType, CounsellingBooking
from app.services.meetings import (
    GraphMeetingClient,
    MeetingProviderError,
    build_calendar_invite,
    create_meeting_for_booking,
    meeting_from_booking,
    placeholder_meeting,
)


@pytest.fixture
def booking():
    return CounsellingBooking(
        id=42,
        confirmation_number="CNSL-ABC123-WXYZ",
        first_name="Ama",
        last_name="Mensah",
        email="ama@example.com",
        phone="+233 24 000 0000",
        country="GH",
        counsellor_id="counsellor-1",
        booking_type=BookingType.ONLINE,
        preferred_date=date(2025, 3, 10),
        preferred_time=time(10, 0),
        session_duration=45,
        topic="Grief, Loss; and hope",
    )


def _graph_handler(requests, meeting_status=201):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.host == "login.microsoftonline.com":
            return httpx.Response(200, json={"access_token": "tok-123"})
        return httpx.Response(
            meeting_status,
            json={
                "id": "graph-meeting-1",
                "joinWebUrl": "https://teams.microsoft.com/l/meetup-join/real",
                "subject": "Counselling Session with Ama Mensah",
            },
        )
    return handler


def _graph_client(handler):
    return GraphMeetingClient(
        client_id="cid",
        client_secret="secret",
        tenant_id="tenant",
        user_id="organizer",
        http=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_placeholder_when_not_configured(booking):
    meeting = create_meeting_for_booking(booking)

    assert meeting.is_placeholder is True
    assert meeting.join_url.startswith("https://teams.microsoft.com/l/meetup-join/meeting-")
    assert meeting.id in meeting.join_url
    assert len(meeting.meeting_code) == 10
    assert meeting.starts_at == datetime(2025, 3, 10, 10, 0, tzinfo=UTC)
    assert meeting.ends_at == datetime(2025, 3, 10, 10, 45, tzinfo=UTC)


def test_graph_meeting_created(booking):
    requests = []
    meeting = create_meeting_for_booking(booking, client=_graph_client(_graph_handler(requests)))

    assert meeting.is_placeholder is False
    assert meeting.id == "graph-meeting-1"
    assert meeting.join_url == "https://teams.microsoft.com/l/meetup-join/real"

    token_req, meeting_req = requests
    assert token_req.url.path == "/tenant/oauth2/v2.0/token"
    assert meeting_req.url.path == "/v1.0/users/organizer/onlineMeetings"
    assert meeting_req.headers["Authorization"] == "Bearer tok-123"


def test_graph_failure_falls_back_to_placeholder(booking):
    requests = []
    meeting = create_meeting_for_booking(
        booking, client=_graph_client(_graph_handler(requests, meeting_status=403))
    )
    assert meeting.is_placeholder is True


def test_graph_transport_error_falls_back_to_placeholder(booking):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    meeting = create_meeting_for_booking(booking, client=_graph_client(handler))
    assert meeting.is_placeholder is True


def test_graph_client_requires_credentials(monkeypatch):
    monkeypatch.setattr("app.services.meetings.settings.AZURE_CLIENT_ID", "")
    with pytest.raises(MeetingProviderError):
        GraphMeetingClient(client_secret="s", tenant_id="t", http=httpx.Client())


def test_meeting_from_booking(booking):
    assert meeting_from_booking(booking) is None

    booking.meeting_url = "https://example.com/join/1"
    booking.meeting_id = "m-1"
    meeting = meeting_from_booking(booking)
    assert meeting.id == "m-1"
    assert meeting.join_url == "https://example.com/join/1"


def test_calendar_invite(booking):
    meeting = placeholder_meeting(
        "Counselling Session with Ama Mensah",
        datetime(2025, 3, 10, 10, 0, tzinfo=UTC),
        datetime(2025, 3, 10, 10, 45, tzinfo=UTC),
    )
    ics = build_calendar_invite(booking, meeting, now=datetime(2025, 3, 1, 8, 0, tzinfo=UTC))

    assert ics.startswith("BEGIN:VCALENDAR\r\n")
    assert ics.endswith("END:VCALENDAR\r\n")
    lines = ics.split("\r\n")
    assert "DTSTART:20250310T100000Z" in lines
    assert "DTEND:20250310T104500Z" in lines
    assert "DTSTAMP:20250301T080000Z" in lines
    assert f"UID:{meeting.id}-CNSL-ABC123-WXYZ" in lines
    assert "TRIGGER:-PT15M" in lines
    # vírgula e ponto e vírgula escapados no texto
    assert "Topic: Grief\\, Loss\\; and hope" in ics


def test_graph_non_object_body_falls_back_to_placeholder(booking):
    def handler(request):
        if request.url.host == "login.microsoftonline.com":
            return httpx.Response(200, json={"access_token": "tok-123"})
        return httpx.Response(201, json=[])

    meeting = create_meeting_for_booking(booking, client=_graph_client(handler))
    assert meeting.is_placeholder is True


def test_graph_non_object_token_body_falls_back_to_placeholder(booking):
    def handler(request):
        return httpx.Response(200, json=["not", "a", "token"])

    meeting = create_meeting_for_booking(booking, client=_graph_client(handler))
    assert meeting.is_placeholder is True
