"""Room model definition using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    func,
)

metadata = MetaData()

rooms = Table(
    "rooms",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("clinic_id", Uuid, nullable=False),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    # OPEN, PAUSED, CLOSED; reflects staff availability, not queue content
    Column("status", String(20), nullable=False, server_default="CLOSED"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "status IN ('OPEN', 'PAUSED', 'CLOSED')",
        name="rooms_status_check",
    ),
)

Index("idx_rooms_clinic_id", rooms.c.clinic_id)
