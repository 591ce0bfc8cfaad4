"""create counselling tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-17 10:12:41.503118

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

booking_type_enum = sa.Enum("online", "in-person", name="booking_type_enum")
booking_status_enum = sa.Enum(
    "pending", "confirmed", "cancelled", "completed", name="booking_status_enum"
)


def upgrade() -> None:
    op.create_table(
        "counsellors",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("title", sa.String(length=160), nullable=False),
        sa.Column("specialization", sa.JSON(), nullable=False),
        sa.Column("bio", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(length=500), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("is_online", sa.Boolean(), nullable=False),
        sa.Column("is_in_person", sa.Boolean(), nullable=False),
        sa.Column("years_of_experience", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column("review_count", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "counsellor_availability",
        sa.Column("counsellor_id", sa.String(length=64), nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("starts_at", sa.Time(), nullable=False),
        sa.Column("ends_at", sa.Time(), nullable=False),
        sa.CheckConstraint(
            "weekday >= 0 AND weekday <= 6", name="ck_counsellor_availability_weekday"
        ),
        sa.CheckConstraint(
            "ends_at > starts_at", name="ck_counsellor_availability_time_order"
        ),
        sa.ForeignKeyConstraint(
            ["counsellor_id"], ["counsellors.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint(
            "counsellor_id", "weekday", "starts_at", name="pk_counsellor_availability"
        ),
    )

    op.create_table(
        "counselling_bookings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("confirmation_number", sa.String(length=40), nullable=False),
        sa.Column("idempotency_key", sa.String(length=64), nullable=True),
        sa.Column("idempotency_fingerprint", sa.String(length=64), nullable=True),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=False),
        sa.Column("country", sa.String(length=64), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("counsellor_id", sa.String(length=64), nullable=False),
        sa.Column("booking_type", booking_type_enum, nullable=False),
        sa.Column("preferred_date", sa.Date(), nullable=False),
        sa.Column("preferred_time", sa.Time(), nullable=False),
        sa.Column("session_duration", sa.Integer(), nullable=False),
        sa.Column("topic", sa.String(length=120), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("meeting_id", sa.String(length=255), nullable=True),
        sa.Column("meeting_url", sa.String(length=1000), nullable=True),
        sa.Column("client_notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("counsellor_notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "notification_attempts", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("is_paid", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "session_duration IN (30, 45, 60)", name="ck_booking_session_duration"
        ),
        sa.ForeignKeyConstraint(
            ["counsellor_id"], ["counsellors.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("confirmation_number"),
        sa.UniqueConstraint("idempotency_key"),
    )
    op.create_index("ix_booking_email", "counselling_bookings", ["email"])
    op.create_index("ix_booking_counsellor_id", "counselling_bookings", ["counsellor_id"])
    op.create_index("ix_booking_status", "counselling_bookings", ["status"])

    # ÍNDICE ÚNICO PARCIAL: reservas canceladas liberam o slot
    op.create_index(
        "uq_booking_counsellor_slot",
        "counselling_bookings",
        ["counsellor_id", "preferred_date", "preferred_time"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )


def downgrade() -> None:
    op.drop_index("uq_booking_counsellor_slot", table_name="counselling_bookings")
    op.drop_index("ix_booking_status", table_name="counselling_bookings")
    op.drop_index("ix_booking_counsellor_id", table_name="counselling_bookings")
    op.drop_index("ix_booking_email", table_name="counselling_bookings")
    op.drop_table("counselling_bookings")
    op.drop_table("counsellor_availability")
    op.drop_table("counsellors")
    booking_status_enum.drop(op.get_bind(), checkfirst=True)
    booking_type_enum.drop(op.get_bind(), checkfirst=True)
