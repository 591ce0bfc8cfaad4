from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import httpx

from app.core.logging import get_logger
from app.core.settings import settings
from app.models.counselling_booking import CounsellingBooking
from app.utils.tz import combine_local_to_utc, iso_utc

log = get_logger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


class MeetingProviderError(Exception):
    pass


@dataclass(frozen=True)
class Meeting:
    id: str
    join_url: str
    subject: str
    starts_at: datetime
    ends_at: datetime
    meeting_code: str | None = None
    is_placeholder: bool = False


class GraphMeetingClient:
    """Cria reuniões online via Microsoft Graph (client credentials)."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        tenant_id: str | None = None,
        user_id: str | None = None,
        http: httpx.Client | None = None,
    ) -> None:
        self._client_id = client_id or settings.AZURE_CLIENT_ID
        self._client_secret = client_secret or settings.AZURE_CLIENT_SECRET
        self._tenant_id = tenant_id or settings.AZURE_TENANT_ID
        self._user_id = user_id or settings.AZURE_USER_ID
        self._http = http or httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)

        if not (self._client_id and self._client_secret and self._tenant_id):
            raise MeetingProviderError("Azure client id, secret and tenant are required")

    def close(self) -> None:
        self._http.close()

    def _access_token(self) -> str:
        response = self._http.post(
            TOKEN_URL.format(tenant=self._tenant_id),
            data={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "scope": "https://graph.microsoft.com/.default",
                "grant_type": "client_credentials",
            },
        )
        if response.status_code != 200:
            raise MeetingProviderError(f"token request failed: {response.status_code}")
        token = response.json().get("access_token")
        if not token:
            raise MeetingProviderError("token response without access_token")
        return token

    def create_meeting(self, subject: str, start: datetime, end: datetime) -> Meeting:
        token = self._access_token()
        response = self._http.post(
            f"{GRAPH_BASE_URL}/users/{self._user_id}/onlineMeetings",
            headers={"Authorization": f"Bearer {token}"},
            json={
                "subject": subject,
                "startDateTime": iso_utc(start),
                "endDateTime": iso_utc(end),
                "lobbyBypassSettings": {
                    "scope": "organization",
                    "isDialInBypassEnabled": True,
                },
                "allowedPresenters": "organizer",
                "isEntryExitAnnounced": False,
                "allowMeetingChat": "enabled",
            },
        )
        if response.status_code not in (200, 201):
            raise MeetingProviderError(f"meeting request failed: {response.status_code}")

        data = response.json()
        if not isinstance(data, dict):
            raise MeetingProviderError("meeting response is not a JSON object")
        join_url = data.get("joinWebUrl") or data.get("joinUrl")
        if not data.get("id") or not join_url:
            raise MeetingProviderError("meeting response without id/joinWebUrl")
        return Meeting(
            id=data["id"],
            join_url=join_url,
            subject=data.get("subject") or subject,
            starts_at=start,
            ends_at=end,
            meeting_code=data.get("meetingCode"),
        )


def _meeting_code(length: int = 10) -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def placeholder_meeting(subject: str, start: datetime, end: datetime) -> Meeting:
    meeting_id = f"meeting-{uuid.uuid4().hex[:16]}"
    base = settings.MEETING_PLACEHOLDER_BASE_URL.rstrip("/")
    return Meeting(
        id=meeting_id,
        join_url=f"{base}/{meeting_id}",
        subject=subject,
        starts_at=start,
        ends_at=end,
        meeting_code=_meeting_code(),
        is_placeholder=True,
    )


def session_window_utc(booking: CounsellingBooking) -> tuple[datetime, datetime]:
    start = combine_local_to_utc(booking.preferred_date, booking.preferred_time)
    return start, start + timedelta(minutes=booking.session_duration)


def create_meeting_for_booking(
    booking: CounsellingBooking, client: GraphMeetingClient | None = None
) -> Meeting:
    """
    Nunca levanta: sem configuração Azure, ou com qualquer falha do Graph,
    devolve um link placeholder.
    """
    start, end = session_window_utc(booking)
    subject = f"Counselling Session with {booking.full_name}"

    if client is None and not settings.meetings_configured:
        log.info("meeting.placeholder", reason="not_configured", booking_id=booking.id)
        return placeholder_meeting(subject, start, end)

    owns_client = client is None
    try:
        client = client or GraphMeetingClient()
        meeting = client.create_meeting(subject, start, end)
        log.info("meeting.created", booking_id=booking.id, meeting_id=meeting.id)
        return meeting
    except (httpx.HTTPError, MeetingProviderError, ValueError) as exc:
        log.warning("meeting.failed", booking_id=booking.id, error=str(exc))
        return placeholder_meeting(subject, start, end)
    except Exception:
        log.exception("meeting.unexpected_error", booking_id=booking.id)
        return placeholder_meeting(subject, start, end)
    finally:
        if owns_client and client is not None:
            client.close()


def meeting_from_booking(booking: CounsellingBooking) -> Meeting | None:
    if not booking.meeting_url:
        return None
    start, end = session_window_utc(booking)
    return Meeting(
        id=booking.meeting_id or f"booking-{booking.id}",
        join_url=booking.meeting_url,
        subject=f"Counselling Session with {booking.full_name}",
        starts_at=start,
        ends_at=end,
    )


def _ics_stamp(dt: datetime) -> str:
    return dt.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def _ics_escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def build_calendar_invite(
    booking: CounsellingBooking, meeting: Meeting, now: datetime | None = None
) -> str:
    now = now or datetime.now(UTC)
    centre = settings.COUNSELLING_CENTRE_NAME
    description = (
        f"Your counselling session with {centre}.\n\n"
        f"Join the meeting: {meeting.join_url}\n\n"
        f"Confirmation Number: {booking.confirmation_number}\n\n"
        f"Topic: {booking.topic}"
    )
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{_ics_escape(centre)}//Counselling//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{meeting.id}-{booking.confirmation_number}",
        f"DTSTAMP:{_ics_stamp(now)}",
        f"DTSTART:{_ics_stamp(meeting.starts_at)}",
        f"DTEND:{_ics_stamp(meeting.ends_at)}",
        f"SUMMARY:{_ics_escape(meeting.subject)}",
        f"DESCRIPTION:{_ics_escape(description)}",
        "LOCATION:Online Meeting",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "BEGIN:VALARM",
        "TRIGGER:-PT15M",
        "ACTION:DISPLAY",
        "DESCRIPTION:Reminder: Your counselling session starts in 15 minutes",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"
