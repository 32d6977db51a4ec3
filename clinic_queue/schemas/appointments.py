"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "SCHEDULED"
    CHECKED_IN = "CHECKED_IN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class AppointmentSource(str, Enum):
    """How the appointment was booked."""

    WALK_IN = "WALK_IN"
    PHONE = "PHONE"
    ONLINE = "ONLINE"
    LINE = "LINE"
    APP = "APP"


# Statuses that place an appointment in a room queue
WAITING_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.SCHEDULED, AppointmentStatus.CHECKED_IN}
)


class AppointmentCreate(BaseModel):
    """Schema for creating a new appointment."""

    patient_id: UUID | None = None
    doctor_id: UUID | None = None
    room_id: UUID | None = None
    appointment_time: datetime | None = None
    source: AppointmentSource = AppointmentSource.WALK_IN
    note: str | None = Field(None, max_length=1000)


class AppointmentUpdate(BaseModel):
    """Schema for updating non-status appointment fields."""

    doctor_id: UUID | None = None
    room_id: UUID | None = None
    appointment_time: datetime | None = None
    note: str | None = Field(None, max_length=1000)

    # Status changes must go through the transition endpoint
    model_config = {"extra": "forbid"}


class AppointmentTransition(BaseModel):
    """Schema for moving an appointment to another status."""

    status: AppointmentStatus
    note: str | None = Field(None, max_length=1000)


class AppointmentCancel(BaseModel):
    """Schema for cancelling an appointment."""

    reason: str | None = Field(None, max_length=500)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    clinic_id: UUID
    patient_id: UUID
    doctor_id: UUID | None = None
    room_id: UUID | None = None
    appointment_number: int | None = None
    appointment_time: datetime | None = None
    checkin_time: datetime | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: AppointmentStatus
    source: AppointmentSource
    note: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response."""

    total: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    statuses: list[AppointmentStatus] | None = None
    service_date: date | None = None
    room_id: UUID | None = None
    doctor_id: UUID | None = None
    patient_id: UUID | None = None
