"""Appointment persistence gateway using SQLAlchemy Core."""

from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import ColumnElement, and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_queue.models.appointments import appointments
from clinic_queue.schemas.appointments import AppointmentFilters


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the [start, end) UTC instants of a calendar day."""
    start = datetime.combine(day, time.min, tzinfo=UTC)
    return start, start + timedelta(days=1)


def service_time() -> ColumnElement:
    """The instant an appointment is served on: its scheduled time, else creation."""
    return func.coalesce(appointments.c.appointment_time, appointments.c.created_at)


class AppointmentRepository:
    """Tenant-scoped CRUD for appointments. Every query is filtered by clinic."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    async def find_by_id(self, appointment_id: UUID, clinic_id: UUID) -> dict | None:
        """Get an appointment by ID within a clinic."""
        query = select(appointments).where(
            and_(
                appointments.c.id == appointment_id,
                appointments.c.clinic_id == clinic_id,
            )
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        return dict(row) if row else None

    async def find_all(
        self,
        clinic_id: UUID,
        filters: AppointmentFilters | None = None,
    ) -> list[dict]:
        """
        List a clinic's appointments.

        Args:
            clinic_id: Tenant key
            filters: Optional status, service date, room, doctor and patient filters

        Returns:
            Appointments in creation order
        """
        conditions: list = [appointments.c.clinic_id == clinic_id]

        if filters is not None:
            if filters.status:
                conditions.append(appointments.c.status == filters.status.value)

            if filters.statuses is not None:
                conditions.append(appointments.c.status.in_([s.value for s in filters.statuses]))

            if filters.room_id:
                conditions.append(appointments.c.room_id == filters.room_id)

            if filters.doctor_id:
                conditions.append(appointments.c.doctor_id == filters.doctor_id)

            if filters.patient_id:
                conditions.append(appointments.c.patient_id == filters.patient_id)

            if filters.service_date:
                start, end = day_bounds(filters.service_date)
                conditions.append(service_time() >= start)
                conditions.append(service_time() < end)

        query = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.created_at, appointments.c.appointment_number)
        )

        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def create(self, values: dict[str, Any]) -> dict:
        """Insert an appointment and commit."""
        now = datetime.now(UTC)
        values = {"id": uuid4(), "created_at": now, "updated_at": now, **values}

        stmt = appointments.insert().values(**values).returning(appointments)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        if not row:
            raise ValueError("Failed to create appointment")

        return dict(row)

    async def update(
        self,
        appointment_id: UUID,
        clinic_id: UUID,
        values: dict[str, Any],
    ) -> dict | None:
        """Update an appointment within a clinic and commit. Returns None if absent."""
        values = {**values, "updated_at": datetime.now(UTC)}

        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment_id,
                    appointments.c.clinic_id == clinic_id,
                )
            )
            .values(**values)
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        return dict(row) if row else None

    async def delete(self, appointment_id: UUID, clinic_id: UUID) -> bool:
        """Physically delete an appointment. Not used by the normal flow."""
        stmt = delete(appointments).where(
            and_(
                appointments.c.id == appointment_id,
                appointments.c.clinic_id == clinic_id,
            )
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return bool(result.rowcount)

    async def next_appointment_number(self, clinic_id: UUID, service_day: date) -> int:
        """Next display number for a clinic's service day (1-based)."""
        start, end = day_bounds(service_day)
        query = select(func.max(appointments.c.appointment_number)).where(
            and_(
                appointments.c.clinic_id == clinic_id,
                service_time() >= start,
                service_time() < end,
            )
        )
        result = await self.db.execute(query)
        current = result.scalar()
        return (current or 0) + 1
