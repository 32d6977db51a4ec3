"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    func,
)

# Metadata for the appointments table
metadata = MetaData()

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True),
    # Tenant and references
    Column("clinic_id", Uuid, nullable=False),
    Column("patient_id", Uuid, nullable=False),
    Column("doctor_id", Uuid, nullable=True),
    Column("room_id", Uuid, nullable=True),
    # Display number, unique per clinic and service day
    Column("appointment_number", Integer, nullable=True),
    # Schedule and lifecycle timestamps
    Column("appointment_time", DateTime(timezone=True), nullable=True),
    Column("checkin_time", DateTime(timezone=True), nullable=True),
    Column("start_time", DateTime(timezone=True), nullable=True),
    Column("end_time", DateTime(timezone=True), nullable=True),
    # Status management
    Column("status", String(20), nullable=False, server_default="SCHEDULED"),
    Column("source", String(20), nullable=False, server_default="WALK_IN"),
    Column("note", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('SCHEDULED', 'CHECKED_IN', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "source IN ('WALK_IN', 'PHONE', 'ONLINE', 'LINE', 'APP')",
        name="appointments_source_check",
    ),
)

Index("idx_appointments_clinic_status", appointments.c.clinic_id, appointments.c.status)
Index("idx_appointments_clinic_room", appointments.c.clinic_id, appointments.c.room_id)
Index("idx_appointments_clinic_time", appointments.c.clinic_id, appointments.c.appointment_time)
