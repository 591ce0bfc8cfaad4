from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.counsellor import Counsellor
from app.schemas.counsellors import (
    AvailabilityWindowOut,
    CounsellorOut,
    CounsellorsData,
    CounsellorsResponse,
)
from app.utils.time import format_hhmm

router = APIRouter(prefix="/counsellors", tags=["counsellors"])


def counsellor_to_out(c: Counsellor) -> CounsellorOut:
    return CounsellorOut(
        id=c.id,
        name=c.name,
        title=c.title,
        specialization=list(c.specialization or []),
        bio=c.bio,
        image_url=c.image_url,
        email=c.email,
        phone=c.phone,
        availability=[
            AvailabilityWindowOut(
                weekday=a.weekday,
                start_time=format_hhmm(a.starts_at),
                end_time=format_hhmm(a.ends_at),
            )
            for a in c.availability
        ],
        is_online=c.is_online,
        is_in_person=c.is_in_person,
        years_of_experience=c.years_of_experience,
        rating=c.rating,
        review_count=c.review_count,
        is_active=c.is_active,
    )


@router.get("", response_model=CounsellorsResponse)
def list_counsellors(
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db),
):
    qs = db.query(Counsellor)
    if not include_inactive:
        qs = qs.filter(Counsellor.is_active == True)  # noqa: E712
    rows = qs.order_by(Counsellor.name.asc()).all()
    return CounsellorsResponse(
        data=CounsellorsData(
            counsellors=[counsellor_to_out(c) for c in rows], total=len(rows)
        )
    )
