from __future__ import annotations

from app.schemas.common import CamelModel


class AvailabilityWindowOut(CamelModel):
    weekday: int  # 0=Mon ... 6=Sun
    start_time: str  # "HH:MM"
    end_time: str


class CounsellorOut(CamelModel):
    id: str
    name: str
    title: str = ""
    specialization: list[str] = []
    bio: str = ""
    image_url: str = ""
    email: str = ""
    phone: str | None = None
    availability: list[AvailabilityWindowOut] = []
    is_online: bool = True
    is_in_person: bool = True
    years_of_experience: int = 0
    rating: float = 0.0
    review_count: int = 0
    is_active: bool = True


class CounsellorsData(CamelModel):
    counsellors: list[CounsellorOut]
    total: int


class CounsellorsResponse(CamelModel):
    success: bool = True
    data: CounsellorsData
