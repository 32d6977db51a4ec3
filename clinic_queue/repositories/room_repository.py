"""Room persistence gateway using SQLAlchemy Core."""

from collections.abc import Collection
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_queue.models.rooms import rooms
from clinic_queue.schemas.rooms import RoomStatus


class RoomRepository:
    """Tenant-scoped CRUD for rooms."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    async def find_by_id(self, room_id: UUID, clinic_id: UUID) -> dict | None:
        """Get a room by ID within a clinic."""
        query = select(rooms).where(and_(rooms.c.id == room_id, rooms.c.clinic_id == clinic_id))
        result = await self.db.execute(query)
        row = result.mappings().first()
        return dict(row) if row else None

    async def find_all(
        self,
        clinic_id: UUID,
        status: RoomStatus | None = None,
        room_ids: Collection[UUID] | None = None,
    ) -> list[dict]:
        """List a clinic's rooms ordered by name."""
        conditions: list = [rooms.c.clinic_id == clinic_id]

        if status:
            conditions.append(rooms.c.status == status.value)

        if room_ids is not None:
            conditions.append(rooms.c.id.in_(list(room_ids)))

        query = select(rooms).where(and_(*conditions)).order_by(rooms.c.name, rooms.c.created_at)
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def create(self, values: dict[str, Any]) -> dict:
        """Insert a room and commit."""
        now = datetime.now(UTC)
        values = {"id": uuid4(), "created_at": now, "updated_at": now, **values}

        stmt = rooms.insert().values(**values).returning(rooms)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        if not row:
            raise ValueError("Failed to create room")

        return dict(row)

    async def update(self, room_id: UUID, clinic_id: UUID, values: dict[str, Any]) -> dict | None:
        """Update a room within a clinic and commit."""
        values = {**values, "updated_at": datetime.now(UTC)}

        stmt = (
            update(rooms)
            .where(and_(rooms.c.id == room_id, rooms.c.clinic_id == clinic_id))
            .values(**values)
            .returning(rooms)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        return dict(row) if row else None

    async def delete(self, room_id: UUID, clinic_id: UUID) -> bool:
        """Delete a room within a clinic."""
        stmt = delete(rooms).where(and_(rooms.c.id == room_id, rooms.c.clinic_id == clinic_id))
        result = await self.db.execute(stmt)
        await self.db.commit()
        return bool(result.rowcount)
