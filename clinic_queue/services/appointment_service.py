"""Appointment lifecycle engine."""

from collections.abc import Awaitable
from datetime import UTC, date, datetime
from typing import Any, TypeVar
from uuid import UUID

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from clinic_queue.core.results import ErrorKind, Result
from clinic_queue.repositories.appointment_repository import AppointmentRepository
from clinic_queue.repositories.room_repository import RoomRepository
from clinic_queue.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
)
from clinic_queue.services.broadcast_service import QueueBroadcastPublisher
from clinic_queue.services.queue_service import appointment_order_key

logger = structlog.get_logger(__name__)

T = TypeVar("T")

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.CHECKED_IN, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.CHECKED_IN: frozenset(
        {AppointmentStatus.IN_PROGRESS, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.IN_PROGRESS: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

# Timestamp column set on first entry into a status
ENTRY_TIMESTAMPS: dict[AppointmentStatus, str] = {
    AppointmentStatus.CHECKED_IN: "checkin_time",
    AppointmentStatus.IN_PROGRESS: "start_time",
    AppointmentStatus.COMPLETED: "end_time",
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Whether `target` is reachable from `current` in one step."""
    return target in ALLOWED_TRANSITIONS[current]


def service_day(appointment_time: datetime | None, now: datetime) -> date:
    """UTC calendar day an appointment is served on."""
    moment = appointment_time or now
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).date()


def append_cancellation_reason(note: str | None, reason: str | None) -> str | None:
    """Append a cancellation reason to an existing note."""
    if not reason:
        return note
    return f"{note or ''}\nCancellation reason: {reason}".strip()


class AppointmentService:
    """
    Owns the appointment state machine and its timestamp side effects.

    Expected failures are returned as `Result` values; only persistence
    errors propagate as exceptions. Every committed change to a queued field
    triggers a best-effort queue broadcast.
    """

    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        room_repo: RoomRepository,
        publisher: QueueBroadcastPublisher | None = None,
    ):
        """Initialize service with repositories and an optional publisher."""
        self.appointment_repo = appointment_repo
        self.room_repo = room_repo
        self.publisher = publisher

    async def create(self, clinic_id: UUID, data: AppointmentCreate) -> Result[AppointmentResponse]:
        """
        Create a new appointment in SCHEDULED.

        Args:
            clinic_id: Tenant key
            data: Appointment creation data

        Returns:
            Result holding the created appointment. VALIDATION if the patient
            is missing, NOT_FOUND if the room is not in the clinic.
        """
        if data.patient_id is None:
            return Result.failure(ErrorKind.VALIDATION, "patient_id is required")

        if data.room_id is not None and not await self._room_exists(data.room_id, clinic_id):
            return Result.failure(ErrorKind.NOT_FOUND, "Room not found")

        now = datetime.now(UTC)
        number = await self.appointment_repo.next_appointment_number(
            clinic_id, service_day(data.appointment_time, now)
        )

        values = {
            "clinic_id": clinic_id,
            "patient_id": data.patient_id,
            "doctor_id": data.doctor_id,
            "room_id": data.room_id,
            "appointment_number": number,
            "appointment_time": data.appointment_time,
            "status": AppointmentStatus.SCHEDULED.value,
            "source": data.source.value,
            "note": data.note,
            "created_at": now,
            "updated_at": now,
        }

        row = await self._write(
            "create",
            self.appointment_repo.create(values),
            clinic_id=str(clinic_id),
        )

        logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            clinic_id=str(clinic_id),
            appointment_number=number,
            room_id=str(row["room_id"]) if row["room_id"] else None,
        )

        await self._broadcast(clinic_id, row["room_id"])
        return Result.success(AppointmentResponse.model_validate(row))

    async def get(self, appointment_id: UUID, clinic_id: UUID) -> Result[AppointmentResponse]:
        """Get an appointment; one in another clinic is reported as NOT_FOUND."""
        row = await self.appointment_repo.find_by_id(appointment_id, clinic_id)
        if row is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Appointment not found")
        return Result.success(AppointmentResponse.model_validate(row))

    async def list(
        self,
        clinic_id: UUID,
        filters: AppointmentFilters | None = None,
    ) -> Result[AppointmentListResponse]:
        """List a clinic's appointments by appointment time, then creation."""
        rows = await self.appointment_repo.find_all(clinic_id, filters)
        rows.sort(key=appointment_order_key)
        items = [AppointmentResponse.model_validate(row) for row in rows]
        return Result.success(AppointmentListResponse(total=len(items), items=items))

    async def transition(
        self,
        appointment_id: UUID,
        clinic_id: UUID,
        target_status: AppointmentStatus,
        actor_id: UUID | None = None,
        note: str | None = None,
    ) -> Result[AppointmentResponse]:
        """
        Move an appointment to another status.

        Args:
            appointment_id: Appointment ID
            clinic_id: Tenant key
            target_status: Requested status
            actor_id: User performing the change (logged)
            note: Replacement note, if given

        Returns:
            Result holding the updated appointment. NOT_FOUND if the
            appointment is not in the clinic, INVALID_TRANSITION if the target
            is not reachable from the current status.
        """
        return await self._transition(appointment_id, clinic_id, target_status, actor_id, note=note)

    async def cancel(
        self,
        appointment_id: UUID,
        clinic_id: UUID,
        actor_id: UUID | None = None,
        reason: str | None = None,
    ) -> Result[AppointmentResponse]:
        """Cancel an appointment, appending the reason to its note."""
        return await self._transition(
            appointment_id,
            clinic_id,
            AppointmentStatus.CANCELLED,
            actor_id,
            reason=reason,
        )

    async def update(
        self,
        appointment_id: UUID,
        clinic_id: UUID,
        fields: AppointmentUpdate | dict[str, Any],
        actor_id: UUID | None = None,
    ) -> Result[AppointmentResponse]:
        """
        Update non-status fields (doctor, room, appointment time, note).

        Args:
            appointment_id: Appointment ID
            clinic_id: Tenant key
            fields: Partial update; only fields explicitly set are written
            actor_id: User performing the change (logged)

        Returns:
            Result holding the updated appointment. VALIDATION for a status
            change or unknown field, NOT_FOUND for an unknown appointment or a
            room outside the clinic.
        """
        if isinstance(fields, dict):
            if "status" in fields:
                return Result.failure(
                    ErrorKind.VALIDATION,
                    "Status can only be changed through a transition",
                )
            try:
                fields = AppointmentUpdate.model_validate(fields)
            except ValidationError as e:
                return Result.failure(ErrorKind.VALIDATION, str(e))

        values = fields.model_dump(exclude_unset=True)

        current = await self.appointment_repo.find_by_id(appointment_id, clinic_id)
        if current is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Appointment not found")

        if not values:
            return Result.success(AppointmentResponse.model_validate(current))

        new_room_id = values.get("room_id")
        if new_room_id is not None and not await self._room_exists(new_room_id, clinic_id):
            return Result.failure(ErrorKind.NOT_FOUND, "Room not found")

        row = await self._write(
            "update",
            self.appointment_repo.update(appointment_id, clinic_id, values),
            appointment_id=str(appointment_id),
        )
        if row is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Appointment not found")

        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            clinic_id=str(clinic_id),
            fields=sorted(values),
            actor_id=str(actor_id) if actor_id else None,
        )

        if "room_id" in values or "appointment_time" in values:
            await self._broadcast(clinic_id, current["room_id"], row["room_id"])

        return Result.success(AppointmentResponse.model_validate(row))

    async def _transition(
        self,
        appointment_id: UUID,
        clinic_id: UUID,
        target_status: AppointmentStatus,
        actor_id: UUID | None,
        note: str | None = None,
        reason: str | None = None,
    ) -> Result[AppointmentResponse]:
        current = await self.appointment_repo.find_by_id(appointment_id, clinic_id)
        if current is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Appointment not found")

        current_status = AppointmentStatus(current["status"])
        if not can_transition(current_status, target_status):
            logger.info(
                "appointment_transition_rejected",
                appointment_id=str(appointment_id),
                from_status=current_status.value,
                to_status=target_status.value,
            )
            return Result.failure(
                ErrorKind.INVALID_TRANSITION,
                f"Cannot change appointment status from {current_status.value} "
                f"to {target_status.value}",
            )

        values: dict[str, Any] = {"status": target_status.value}

        timestamp_field = ENTRY_TIMESTAMPS.get(target_status)
        if timestamp_field and current[timestamp_field] is None:
            values[timestamp_field] = datetime.now(UTC)

        if note is not None:
            values["note"] = note
        if reason:
            values["note"] = append_cancellation_reason(current["note"], reason)

        row = await self._write(
            "transition",
            self.appointment_repo.update(appointment_id, clinic_id, values),
            appointment_id=str(appointment_id),
        )
        if row is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Appointment not found")

        logger.info(
            "appointment_transitioned",
            appointment_id=str(appointment_id),
            clinic_id=str(clinic_id),
            from_status=current_status.value,
            to_status=target_status.value,
            actor_id=str(actor_id) if actor_id else None,
        )

        await self._broadcast(clinic_id, row["room_id"])
        return Result.success(AppointmentResponse.model_validate(row))

    async def _room_exists(self, room_id: UUID, clinic_id: UUID) -> bool:
        return await self.room_repo.find_by_id(room_id, clinic_id) is not None

    async def _write(self, operation: str, write: Awaitable[T], **context: Any) -> T:
        try:
            return await write
        except SQLAlchemyError as e:
            logger.error(
                "appointment_persistence_failed",
                operation=operation,
                error=str(e),
                **context,
            )
            raise

    async def _broadcast(self, clinic_id: UUID, *room_ids: UUID | None) -> None:
        if self.publisher is not None:
            await self.publisher.publish_queue_update(clinic_id, room_ids)
