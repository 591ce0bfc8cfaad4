from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingType(str, enum.Enum):
    ONLINE = "online"
    IN_PERSON = "in-person"


ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class CounsellingBooking(Base):
    __tablename__ = "counselling_bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    confirmation_number: Mapped[str] = mapped_column(
        String(40), nullable=False, unique=True
    )
    idempotency_key: Mapped[str | None] = mapped_column(String(64), unique=True)
    # sha256 do payload enviado com a chave
    idempotency_fingerprint: Mapped[str | None] = mapped_column(String(64))

    # dados pessoais
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(40), nullable=False)
    country: Mapped[str] = mapped_column(String(64), nullable=False)
    city: Mapped[str | None] = mapped_column(String(120))

    # sessão
    counsellor_id: Mapped[str] = mapped_column(
        ForeignKey("counsellors.id", ondelete="RESTRICT"), nullable=False
    )
    booking_type: Mapped[BookingType] = mapped_column(
        Enum(
            BookingType,
            name="booking_type_enum",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    preferred_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    preferred_time: Mapped[dt.time] = mapped_column(Time(), nullable=False)
    session_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    topic: Mapped[str] = mapped_column(String(120), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    status: Mapped[BookingStatus] = mapped_column(
        Enum(
            BookingStatus,
            name="booking_status_enum",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=BookingStatus.PENDING,
    )

    meeting_id: Mapped[str | None] = mapped_column(String(255))
    meeting_url: Mapped[str | None] = mapped_column(String(1000))

    client_notified_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    counsellor_notified_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    notification_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: dt.datetime.now(tz=dt.UTC),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: dt.datetime.now(tz=dt.UTC),
        onupdate=lambda: dt.datetime.now(tz=dt.UTC),
    )

    counsellor = relationship("Counsellor", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "session_duration IN (30, 45, 60)", name="ck_booking_session_duration"
        ),
        # um slot ativo por counsellor/data/hora; cancelados liberam o horário
        Index(
            "uq_booking_counsellor_slot",
            "counsellor_id",
            "preferred_date",
            "preferred_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index("ix_booking_email", "email"),
        Index("ix_booking_counsellor_id", "counsellor_id"),
        Index("ix_booking_status", "status"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
