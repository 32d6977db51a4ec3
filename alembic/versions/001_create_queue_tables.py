"""Create appointments, rooms and user_clinic_roles tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create queue tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "rooms",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("clinic_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.String(length=20),
            server_default=sa.text("'CLOSED'"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('OPEN', 'PAUSED', 'CLOSED')",
            name="rooms_status_check",
        ),
    )
    op.create_index("idx_rooms_clinic_id", "rooms", ["clinic_id"])

    op.create_table(
        "appointments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("clinic_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("patient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("room_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("appointment_number", sa.Integer(), nullable=True),
        sa.Column("appointment_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checkin_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            sa.String(length=20),
            server_default=sa.text("'SCHEDULED'"),
            nullable=False,
        ),
        sa.Column(
            "source",
            sa.String(length=20),
            server_default=sa.text("'WALK_IN'"),
            nullable=False,
        ),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["room_id"], ["rooms.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "status IN ('SCHEDULED', 'CHECKED_IN', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "source IN ('WALK_IN', 'PHONE', 'ONLINE', 'LINE', 'APP')",
            name="appointments_source_check",
        ),
    )
    op.create_index("idx_appointments_clinic_status", "appointments", ["clinic_id", "status"])
    op.create_index("idx_appointments_clinic_room", "appointments", ["clinic_id", "room_id"])
    op.create_index(
        "idx_appointments_clinic_time", "appointments", ["clinic_id", "appointment_time"]
    )

    op.create_table(
        "user_clinic_roles",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("clinic_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "role",
            sa.String(length=20),
            server_default=sa.text("'STAFF'"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("user_id", "clinic_id", name="user_clinic_roles_pkey"),
        sa.CheckConstraint(
            "role IN ('ADMIN', 'CLINIC_ADMIN', 'DOCTOR', 'NURSE', 'RECEPTIONIST', 'STAFF')",
            name="user_clinic_roles_role_check",
        ),
    )
    op.create_index("idx_user_clinic_roles_clinic_id", "user_clinic_roles", ["clinic_id"])
    op.create_index("idx_user_clinic_roles_role", "user_clinic_roles", ["role"])


def downgrade() -> None:
    """Drop queue tables."""
    op.drop_table("user_clinic_roles")
    op.drop_table("appointments")
    op.drop_table("rooms")
