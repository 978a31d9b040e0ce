"""Create users, schedules and bookings

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="specialist"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("photo_url", sa.String(length=512), nullable=True),
        sa.Column("telegram_chat_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "schedules",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "specialist_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("specialist_id", "day_of_week", name="uq_schedule_specialist_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_day_of_week"),
        sa.CheckConstraint("start_time < end_time", name="ck_schedule_window_order"),
    )
    op.create_index("ix_schedules_specialist_id", "schedules", ["specialist_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("specialist_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("client_contact", sa.String(length=255), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("active_start_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="confirmed"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("specialist_id", "active_start_time", name="uq_booking_active_slot"),
    )
    op.create_index("ix_bookings_specialist_id", "bookings", ["specialist_id"])
    op.create_index("ix_bookings_start_time", "bookings", ["start_time"])


def downgrade() -> None:
    op.drop_index("ix_bookings_start_time", table_name="bookings")
    op.drop_index("ix_bookings_specialist_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_schedules_specialist_id", table_name="schedules")
    op.drop_table("schedules")
    op.drop_table("users")
