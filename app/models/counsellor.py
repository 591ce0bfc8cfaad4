from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    PrimaryKeyConstraint,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


def _new_counsellor_id() -> str:
    return f"counsellor-{uuid.uuid4().hex[:12]}"


class Counsellor(Base):
    __tablename__ = "counsellors"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=_new_counsellor_id
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    title: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    specialization: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40))
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_in_person: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    years_of_experience: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: dt.datetime.now(tz=dt.UTC),
        nullable=False,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: dt.datetime.now(tz=dt.UTC),
        onupdate=lambda: dt.datetime.now(tz=dt.UTC),
        nullable=False,
    )

    availability: Mapped[list[CounsellorAvailability]] = relationship(
        back_populates="counsellor",
        cascade="all, delete-orphan",
        order_by=lambda: [
            CounsellorAvailability.weekday,
            CounsellorAvailability.starts_at,
        ],
        lazy="selectin",
    )

    def offers(self, booking_type: str) -> bool:
        if booking_type == "online":
            return self.is_online
        if booking_type == "in-person":
            return self.is_in_person
        return False


class CounsellorAvailability(Base):
    """
    Weekly recurring windows in the centre's local time.
    Composite PK avoids duplicates per (counsellor, weekday, start).
    """

    __tablename__ = "counsellor_availability"
    __table_args__ = (
        PrimaryKeyConstraint(
            "counsellor_id", "weekday", "starts_at", name="pk_counsellor_availability"
        ),
        CheckConstraint(
            "weekday >= 0 AND weekday <= 6", name="ck_counsellor_availability_weekday"
        ),
        CheckConstraint(
            "ends_at > starts_at", name="ck_counsellor_availability_time_order"
        ),
    )

    counsellor_id: Mapped[str] = mapped_column(
        ForeignKey("counsellors.id", ondelete="CASCADE"), nullable=False
    )
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Mon ... 6=Sun
    starts_at: Mapped[dt.time] = mapped_column(Time(), nullable=False)
    ends_at: Mapped[dt.time] = mapped_column(Time(), nullable=False)

    counsellor: Mapped[Counsellor] = relationship(back_populates="availability")
