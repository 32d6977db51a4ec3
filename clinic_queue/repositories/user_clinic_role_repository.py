"""Role assignment lookups, scoped by user and/or clinic."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_queue.models.user_clinic_roles import user_clinic_roles
from clinic_queue.schemas.clinic_users import Role


class UserClinicRoleRepository:
    """Persistence for (user, clinic) -> role rows."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    async def find(self, user_id: UUID, clinic_id: UUID) -> dict | None:
        """Get a user's role row in a clinic."""
        query = select(user_clinic_roles).where(
            and_(
                user_clinic_roles.c.user_id == user_id,
                user_clinic_roles.c.clinic_id == clinic_id,
            )
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        return dict(row) if row else None

    async def find_by_user(self, user_id: UUID) -> list[dict]:
        """All clinic roles held by a user."""
        query = (
            select(user_clinic_roles)
            .where(user_clinic_roles.c.user_id == user_id)
            .order_by(user_clinic_roles.c.created_at)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def find_by_clinic(self, clinic_id: UUID) -> list[dict]:
        """All role rows of a clinic."""
        query = (
            select(user_clinic_roles)
            .where(user_clinic_roles.c.clinic_id == clinic_id)
            .order_by(user_clinic_roles.c.created_at)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def create(self, user_id: UUID, clinic_id: UUID, role: Role) -> dict:
        """Insert a role row and commit."""
        now = datetime.now(UTC)
        stmt = (
            user_clinic_roles.insert()
            .values(
                user_id=user_id,
                clinic_id=clinic_id,
                role=role.value,
                created_at=now,
                updated_at=now,
            )
            .returning(user_clinic_roles)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        if not row:
            raise ValueError("Failed to add user to clinic")

        return dict(row)

    async def update_role(self, user_id: UUID, clinic_id: UUID, role: Role) -> dict | None:
        """Change a user's role in a clinic and commit."""
        stmt = (
            update(user_clinic_roles)
            .where(
                and_(
                    user_clinic_roles.c.user_id == user_id,
                    user_clinic_roles.c.clinic_id == clinic_id,
                )
            )
            .values(role=role.value, updated_at=datetime.now(UTC))
            .returning(user_clinic_roles)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()
        return dict(row) if row else None

    async def delete(self, user_id: UUID, clinic_id: UUID) -> bool:
        """Remove a user from a clinic and commit."""
        stmt = delete(user_clinic_roles).where(
            and_(
                user_clinic_roles.c.user_id == user_id,
                user_clinic_roles.c.clinic_id == clinic_id,
            )
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return bool(result.rowcount)
