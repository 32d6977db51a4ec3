"""Room queue composition."""

from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog

from clinic_queue.core.results import ErrorKind, Result
from clinic_queue.repositories.appointment_repository import AppointmentRepository
from clinic_queue.repositories.room_repository import RoomRepository
from clinic_queue.schemas.appointments import WAITING_STATUSES, AppointmentFilters, AppointmentStatus
from clinic_queue.schemas.rooms import (
    NextAppointmentPreview,
    QueueAppointment,
    QueueFilters,
    QueueSnapshot,
    RoomQueue,
    RoomStatus,
)

logger = structlog.get_logger(__name__)


def appointment_order_key(appointment: dict[str, Any]) -> tuple:
    """
    Sort key for serving order.

    Scheduled times first (ascending), unscheduled after them; creation
    order, then display number, break ties.
    """
    appointment_time = appointment.get("appointment_time")
    return (
        appointment_time is None,
        appointment_time,
        appointment["created_at"],
        appointment.get("appointment_number") or 0,
    )


def waiting_statuses(appointment_status: AppointmentStatus | None) -> set[AppointmentStatus]:
    """Statuses that count as queued, narrowed by an optional status filter."""
    if appointment_status is None:
        return set(WAITING_STATUSES)
    return {appointment_status} & WAITING_STATUSES


def compose_room_queues(
    rooms: Iterable[dict[str, Any]],
    appointments: Iterable[dict[str, Any]],
    filters: QueueFilters | None = None,
) -> list[RoomQueue]:
    """
    Build ordered room queues from rooms and appointments.

    Args:
        rooms: Room rows of a single clinic
        appointments: Appointment rows of the same clinic
        filters: Optional room, doctor and status filters

    Returns:
        One RoomQueue per selected room, in the order rooms were given
    """
    filters = filters or QueueFilters()
    statuses = waiting_statuses(filters.appointment_status)

    grouped: dict[UUID, list[dict[str, Any]]] = defaultdict(list)
    for appointment in appointments:
        if appointment.get("room_id") is None:
            continue
        if AppointmentStatus(appointment["status"]) not in statuses:
            continue
        if filters.room_id and appointment["room_id"] != filters.room_id:
            continue
        if filters.doctor_id and appointment.get("doctor_id") != filters.doctor_id:
            continue
        grouped[appointment["room_id"]].append(appointment)

    room_queues = []
    for room in rooms:
        if filters.room_id and room["id"] != filters.room_id:
            continue

        waiting = sorted(grouped.get(room["id"], []), key=appointment_order_key)

        # A doctor filter only shows rooms where that doctor has patients waiting
        if filters.doctor_id and not waiting:
            continue

        queue = [QueueAppointment.model_validate(a) for a in waiting]
        next_appointment = None
        if queue:
            head = queue[0]
            next_appointment = NextAppointmentPreview(
                id=head.id,
                appointment_number=head.appointment_number,
                patient_id=head.patient_id,
                appointment_time=head.appointment_time,
                status=head.status,
                source=head.source,
            )

        room_queues.append(
            RoomQueue(
                room_id=room["id"],
                name=room["name"],
                description=room.get("description"),
                status=RoomStatus(room["status"]),
                queue_length=len(queue),
                queue=queue,
                next_appointment=next_appointment,
            )
        )

    return room_queues


class QueueService:
    """Computes per-room waiting lists for a clinic."""

    def __init__(self, appointment_repo: AppointmentRepository, room_repo: RoomRepository):
        """Initialize service with its repositories."""
        self.appointment_repo = appointment_repo
        self.room_repo = room_repo

    async def get_queue(
        self,
        clinic_id: UUID,
        filters: QueueFilters | None = None,
    ) -> Result[QueueSnapshot]:
        """
        Get the current queue of every matching room in a clinic.

        Room status (OPEN/PAUSED/CLOSED) is reported but never hides a queue.

        Args:
            clinic_id: Tenant key
            filters: Optional room, doctor, status and service date filters.
                The service date defaults to today (UTC).

        Returns:
            Result holding the clinic snapshot, or NOT_FOUND for an unknown room
        """
        filters = filters or QueueFilters()
        if filters.service_date is None:
            filters = filters.model_copy(update={"service_date": datetime.now(UTC).date()})

        if filters.room_id:
            room = await self.room_repo.find_by_id(filters.room_id, clinic_id)
            if room is None:
                return Result.failure(ErrorKind.NOT_FOUND, "Room not found")
            rooms = [room]
        else:
            rooms = await self.room_repo.find_all(clinic_id)

        statuses = waiting_statuses(filters.appointment_status)
        appointments: list[dict[str, Any]] = []
        if statuses:
            appointments = await self.appointment_repo.find_all(
                clinic_id,
                AppointmentFilters(
                    statuses=sorted(statuses, key=lambda s: s.value),
                    service_date=filters.service_date,
                    room_id=filters.room_id,
                    doctor_id=filters.doctor_id,
                ),
            )

        room_queues = compose_room_queues(rooms, appointments, filters)

        logger.debug(
            "queue_composed",
            clinic_id=str(clinic_id),
            rooms=len(room_queues),
            waiting=sum(r.queue_length for r in room_queues),
        )

        return Result.success(
            QueueSnapshot(
                clinic_id=clinic_id,
                service_date=filters.service_date,
                generated_at=datetime.now(UTC),
                rooms=room_queues,
            )
        )
