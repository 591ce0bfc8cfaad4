from __future__ import annotations

from typing import Literal

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.counsellors import CounsellorOut

BookingTypeValue = Literal["online", "in-person"]
SessionDuration = Literal[30, 45, 60]

SESSION_DURATIONS: tuple[int, ...] = (30, 45, 60)

TOPICS: tuple[str, ...] = (
    "Marriage & Family",
    "Pre-Marital",
    "Grief & Loss",
    "Anxiety & Stress",
    "Depression",
    "Faith & Spiritual",
    "Career Guidance",
    "Relationship Issues",
    "Addiction Recovery",
    "Child & Adolescent",
    "Other",
)


class TimeSlotOut(CamelModel):
    id: str
    counsellor_id: str
    date: str  # "YYYY-MM-DD"
    start_time: str  # "HH:MM"
    end_time: str
    is_available: bool


class SlotsData(CamelModel):
    counsellors: list[CounsellorOut]
    available_slots: list[TimeSlotOut]


class SlotsResponse(CamelModel):
    success: bool = True
    data: SlotsData


class BookingFormData(CamelModel):
    """
    Agregado do wizard. Campos começam vazios; a validação por etapa fica em
    app.services.booking_validator (o servidor reaplica as mesmas regras).
    """

    first_name: str = Field("", max_length=80)
    last_name: str = Field("", max_length=80)
    email: str = Field("", max_length=255)
    phone: str = Field("", max_length=40)
    country: str = Field("", max_length=64)
    city: str = Field("", max_length=120)
    counsellor_id: str = ""
    booking_type: BookingTypeValue = "online"
    preferred_date: str = ""  # "YYYY-MM-DD"
    preferred_time: str = ""  # "HH:MM"
    session_duration: SessionDuration = 60
    topic: str = Field("", max_length=120)
    notes: str = ""

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class CounsellorSummary(CamelModel):
    name: str
    title: str


class BookingSnapshot(CamelModel):
    id: int
    confirmation_number: str
    status: str
    preferred_date: str
    preferred_time: str
    session_duration: int
    booking_type: str
    topic: str
    meeting_url: str | None = None
    counsellor: CounsellorSummary


class BookingResult(CamelModel):
    confirmation_number: str
    booking: BookingSnapshot
    meeting_url: str | None = None


class BookingResponse(CamelModel):
    success: bool = True
    data: BookingResult


class CancelResponse(CamelModel):
    success: bool = True
    message: str
