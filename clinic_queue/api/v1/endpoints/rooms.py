"""Room and queue endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from clinic_queue.core.exceptions import unwrap
from clinic_queue.dependencies import QueueServiceDep, RoomServiceDep, require
from clinic_queue.schemas.appointments import AppointmentStatus
from clinic_queue.schemas.clinic_users import ClinicAccess
from clinic_queue.schemas.rooms import (
    QueueFilters,
    QueueSnapshot,
    RoomStatusUpdate,
    RoomStatusUpdateResponse,
)
from clinic_queue.services.authorization_service import Operation

router = APIRouter()


@router.get(
    "/queue",
    response_model=QueueSnapshot,
    status_code=status.HTTP_200_OK,
    summary="Get room queues",
)
async def get_queue(
    access: Annotated[ClinicAccess, Depends(require(Operation.QUEUE_VIEW))],
    service: QueueServiceDep,
    room_id: UUID | None = Query(None),
    doctor_id: UUID | None = Query(None),
    appointment_status: AppointmentStatus | None = Query(None, alias="status"),
    service_date: date | None = Query(None, alias="date"),
) -> QueueSnapshot:
    """
    Ordered waiting lists for the clinic's rooms.

    Args:
        access: Caller's clinic access
        service: Queue composer
        room_id: Only this room
        doctor_id: Only this doctor's appointments and rooms
        appointment_status: Only this waiting status
        service_date: Only appointments served on this day (UTC), default today

    Returns:
        Queue snapshot of the clinic
    """
    filters = QueueFilters(
        room_id=room_id,
        doctor_id=doctor_id,
        appointment_status=appointment_status,
        service_date=service_date,
    )
    return unwrap(await service.get_queue(access.clinic_id, filters))


@router.patch(
    "/{room_id}/status",
    response_model=RoomStatusUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update room status",
)
async def update_room_status(
    room_id: UUID,
    data: RoomStatusUpdate,
    access: Annotated[ClinicAccess, Depends(require(Operation.ROOMS_UPDATE_STATUS))],
    service: RoomServiceDep,
) -> RoomStatusUpdateResponse:
    """Open, pause or close a room."""
    return unwrap(
        await service.update_room_status(
            room_id,
            access.clinic_id,
            data.status,
            actor_id=access.user_id,
        )
    )
