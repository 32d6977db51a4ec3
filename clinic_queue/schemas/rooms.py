"""Room and queue schemas."""

from datetime import date, datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from clinic_queue.schemas.appointments import AppointmentSource, AppointmentStatus


class RoomStatus(str, Enum):
    """Room availability status."""

    OPEN = "OPEN"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"


class RoomStatusUpdate(BaseModel):
    """Schema for changing a room's status."""

    status: RoomStatus


class RoomStatusUpdateResponse(BaseModel):
    """Result of a room status change."""

    room_id: UUID
    clinic_id: UUID
    previous_status: RoomStatus
    new_status: RoomStatus
    updated: bool


class QueueFilters(BaseModel):
    """Filters accepted by the queue composer."""

    room_id: UUID | None = None
    doctor_id: UUID | None = None
    appointment_status: AppointmentStatus | None = None
    service_date: date | None = None


class QueueAppointment(BaseModel):
    """An appointment as it appears in a room queue."""

    id: UUID
    appointment_number: int | None = None
    patient_id: UUID
    doctor_id: UUID | None = None
    room_id: UUID | None = None
    appointment_time: datetime | None = None
    checkin_time: datetime | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: AppointmentStatus
    source: AppointmentSource
    note: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NextAppointmentPreview(BaseModel):
    """Short preview of the appointment at the head of a queue."""

    id: UUID
    appointment_number: int | None = None
    patient_id: UUID
    appointment_time: datetime | None = None
    status: AppointmentStatus
    source: AppointmentSource


class RoomQueue(BaseModel):
    """A room with its ordered waiting list."""

    room_id: UUID
    name: str
    description: str | None = None
    status: RoomStatus
    queue_length: int
    queue: list[QueueAppointment] = Field(default_factory=list)
    next_appointment: NextAppointmentPreview | None = None


class QueueSnapshot(BaseModel):
    """Full queue state of a clinic at one point in time."""

    clinic_id: UUID
    service_date: date | None = None
    generated_at: datetime
    rooms: list[RoomQueue]


class QueueUpdateMessage(BaseModel):
    """Envelope published on the clinic queue topic."""

    type: Literal["queueUpdate"] = "queueUpdate"
    data: QueueSnapshot
