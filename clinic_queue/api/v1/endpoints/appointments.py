"""Appointment endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from clinic_queue.core.exceptions import unwrap
from clinic_queue.dependencies import AppointmentServiceDep, require
from clinic_queue.schemas.appointments import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentTransition,
    AppointmentUpdate,
)
from clinic_queue.schemas.clinic_users import ClinicAccess
from clinic_queue.services.authorization_service import Operation

router = APIRouter()


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    access: Annotated[ClinicAccess, Depends(require(Operation.APPOINTMENTS_CREATE))],
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Create a booking or walk-in appointment in the caller's clinic.

    Args:
        data: Appointment creation data
        access: Caller's clinic access
        service: Lifecycle engine

    Returns:
        Created appointment in SCHEDULED
    """
    return unwrap(await service.create(access.clinic_id, data))


@router.get(
    "",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    access: Annotated[ClinicAccess, Depends(require(Operation.APPOINTMENTS_LIST))],
    service: AppointmentServiceDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    service_date: date | None = Query(None, alias="date"),
    room_id: UUID | None = Query(None),
    doctor_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
) -> AppointmentListResponse:
    """
    List the clinic's appointments ordered by appointment time.

    Args:
        access: Caller's clinic access
        service: Lifecycle engine
        status_filter: Filter by status
        service_date: Filter by service day (UTC)
        room_id: Filter by room
        doctor_id: Filter by doctor
        patient_id: Filter by patient

    Returns:
        Matching appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        service_date=service_date,
        room_id=room_id,
        doctor_id=doctor_id,
        patient_id=patient_id,
    )
    return unwrap(await service.list(access.clinic_id, filters))


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    access: Annotated[ClinicAccess, Depends(require(Operation.APPOINTMENTS_VIEW))],
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Get an appointment of the caller's clinic."""
    return unwrap(await service.get(appointment_id, access.clinic_id))


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    access: Annotated[ClinicAccess, Depends(require(Operation.APPOINTMENTS_UPDATE))],
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Update doctor, room, appointment time or note.

    Status cannot be changed here; use the transition endpoint.
    """
    return unwrap(
        await service.update(appointment_id, access.clinic_id, data, actor_id=access.user_id)
    )


@router.post(
    "/{appointment_id}/transition",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Change appointment status",
)
async def transition_appointment(
    appointment_id: UUID,
    data: AppointmentTransition,
    access: Annotated[ClinicAccess, Depends(require(Operation.APPOINTMENTS_TRANSITION))],
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Move an appointment along its lifecycle.

    Args:
        appointment_id: Appointment ID
        data: Target status and optional note
        access: Caller's clinic access
        service: Lifecycle engine

    Returns:
        Updated appointment
    """
    return unwrap(
        await service.transition(
            appointment_id,
            access.clinic_id,
            data.status,
            actor_id=access.user_id,
            note=data.note,
        )
    )


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    access: Annotated[ClinicAccess, Depends(require(Operation.APPOINTMENTS_CANCEL))],
    service: AppointmentServiceDep,
    data: AppointmentCancel | None = None,
) -> AppointmentResponse:
    """Cancel an appointment with an optional reason."""
    reason = data.reason if data else None
    return unwrap(
        await service.cancel(appointment_id, access.clinic_id, actor_id=access.user_id, reason=reason)
    )
