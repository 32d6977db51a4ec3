"""Tenant-scoped authorization matrix and clinic membership management."""

from enum import Enum
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinic_queue.core.results import ErrorKind, Result
from clinic_queue.repositories.user_clinic_role_repository import UserClinicRoleRepository
from clinic_queue.schemas.auth import UserClinicsResponse
from clinic_queue.schemas.clinic_users import (
    ADMIN_ROLES,
    ClinicAccess,
    ClinicMemberListResponse,
    ClinicMemberRemovedResponse,
    ClinicMemberResponse,
    Role,
    RoleChangeResponse,
)

logger = structlog.get_logger(__name__)


class Operation(str, Enum):
    """Clinic-scoped operations guarded by the policy table."""

    APPOINTMENTS_LIST = "appointments:list"
    APPOINTMENTS_VIEW = "appointments:view"
    APPOINTMENTS_CREATE = "appointments:create"
    APPOINTMENTS_UPDATE = "appointments:update"
    APPOINTMENTS_TRANSITION = "appointments:transition"
    APPOINTMENTS_CANCEL = "appointments:cancel"
    QUEUE_VIEW = "queue:view"
    ROOMS_UPDATE_STATUS = "rooms:update_status"
    MEMBERS_VIEW = "members:view"
    MEMBERS_MANAGE = "members:manage"


ALL_ROLES: frozenset[Role] = frozenset(Role)

FRONT_DESK_ROLES: frozenset[Role] = frozenset(
    {Role.ADMIN, Role.CLINIC_ADMIN, Role.DOCTOR, Role.NURSE, Role.RECEPTIONIST}
)

POLICY: dict[Operation, frozenset[Role]] = {
    Operation.APPOINTMENTS_LIST: ALL_ROLES,
    Operation.APPOINTMENTS_VIEW: ALL_ROLES,
    Operation.APPOINTMENTS_CREATE: FRONT_DESK_ROLES,
    Operation.APPOINTMENTS_UPDATE: FRONT_DESK_ROLES,
    Operation.APPOINTMENTS_TRANSITION: FRONT_DESK_ROLES,
    Operation.APPOINTMENTS_CANCEL: FRONT_DESK_ROLES,
    Operation.QUEUE_VIEW: ALL_ROLES,
    Operation.ROOMS_UPDATE_STATUS: FRONT_DESK_ROLES,
    Operation.MEMBERS_VIEW: frozenset({Role.ADMIN, Role.CLINIC_ADMIN, Role.DOCTOR}),
    Operation.MEMBERS_MANAGE: ADMIN_ROLES,
}


def resolve_clinic_context(
    path_clinic_id: UUID | str | None = None,
    header_clinic_id: str | None = None,
    query_clinic_id: str | None = None,
    token_clinic_id: str | None = None,
) -> Result[UUID]:
    """
    Pick the acting clinic of a request.

    Sources are tried in order: path parameter, header, query parameter,
    selected-clinic token claim. The first present one wins; it is never
    defaulted.

    Returns:
        Result holding the clinic ID. MISSING_CLINIC_CONTEXT if no source is
        present, VALIDATION if the winning source is not a UUID.
    """
    sources = (
        ("path", path_clinic_id),
        ("header", header_clinic_id),
        ("query", query_clinic_id),
        ("token", token_clinic_id),
    )

    for source, raw in sources:
        if raw is None:
            continue
        if isinstance(raw, UUID):
            return Result.success(raw)
        if not str(raw).strip():
            continue
        try:
            return Result.success(UUID(str(raw).strip()))
        except ValueError:
            return Result.failure(ErrorKind.VALIDATION, f"Invalid clinic id in {source}: {raw}")

    return Result.failure(ErrorKind.MISSING_CLINIC_CONTEXT, "Clinic context is required")


def count_admins_after(
    rows: list[dict[str, Any]],
    user_id: UUID,
    new_role: Role | None,
) -> int:
    """
    Count a clinic's administrators once a user's role changes.

    Args:
        rows: Current role rows of the clinic
        user_id: Member being added, changed or removed
        new_role: Role after the change, None for removal
    """
    count = 0
    for row in rows:
        if row["user_id"] == user_id:
            continue
        if Role(row["role"]) in ADMIN_ROLES:
            count += 1
    if new_role in ADMIN_ROLES:
        count += 1
    return count


class AuthorizationService:
    """Resolves callers' clinic roles and guards role mutations."""

    def __init__(self, role_repo: UserClinicRoleRepository):
        """Initialize service with the role repository."""
        self.role_repo = role_repo

    async def effective_roles(self, user_id: UUID) -> dict[UUID, Role]:
        """Map of clinic ID to the role the user holds there."""
        rows = await self.role_repo.find_by_user(user_id)
        return {row["clinic_id"]: Role(row["role"]) for row in rows}

    async def authorize(
        self,
        user_id: UUID,
        clinic_id: UUID,
        required_roles: frozenset[Role] | set[Role],
    ) -> Result[ClinicAccess]:
        """
        Check that a user may act in a clinic with one of the given roles.

        Holding ADMIN in any clinic satisfies every clinic's requirement.

        Args:
            user_id: Caller
            clinic_id: Acting clinic
            required_roles: Roles allowed for the operation

        Returns:
            Result holding the access decision. CLINIC_ACCESS_DENIED if the
            user has no role in the clinic, INSUFFICIENT_ROLE if the role held
            is not allowed.
        """
        roles = await self.effective_roles(user_id)

        if Role.ADMIN in roles.values():
            return Result.success(
                ClinicAccess(
                    user_id=user_id,
                    clinic_id=clinic_id,
                    role=Role.ADMIN,
                    is_global_admin=True,
                )
            )

        role = roles.get(clinic_id)
        if role is None:
            logger.info("clinic_access_denied", user_id=str(user_id), clinic_id=str(clinic_id))
            return Result.failure(
                ErrorKind.CLINIC_ACCESS_DENIED,
                "You do not have access to this clinic",
            )

        if role not in required_roles:
            logger.info(
                "insufficient_role",
                user_id=str(user_id),
                clinic_id=str(clinic_id),
                role=role.value,
            )
            return Result.failure(
                ErrorKind.INSUFFICIENT_ROLE,
                f"Role {role.value} is not allowed to perform this operation",
            )

        return Result.success(ClinicAccess(user_id=user_id, clinic_id=clinic_id, role=role))

    async def authorize_operation(
        self,
        user_id: UUID,
        clinic_id: UUID,
        operation: Operation,
    ) -> Result[ClinicAccess]:
        """Authorize an operation against the policy table."""
        return await self.authorize(user_id, clinic_id, POLICY[operation])

    async def list_user_clinics(self, user_id: UUID) -> Result[UserClinicsResponse]:
        """Clinics the user belongs to."""
        rows = await self.role_repo.find_by_user(user_id)
        items = [ClinicMemberResponse.model_validate(row) for row in rows]
        is_global_admin = any(item.role == Role.ADMIN for item in items)
        return Result.success(UserClinicsResponse(is_global_admin=is_global_admin, items=items))

    async def list_members(self, clinic_id: UUID) -> Result[ClinicMemberListResponse]:
        """Members of a clinic with their roles."""
        rows = await self.role_repo.find_by_clinic(clinic_id)
        items = [ClinicMemberResponse.model_validate(row) for row in rows]
        return Result.success(ClinicMemberListResponse(total=len(items), items=items))

    async def add_member(
        self,
        actor: ClinicAccess,
        user_id: UUID,
        role: Role,
    ) -> Result[ClinicMemberResponse]:
        """
        Add a user to the actor's clinic.

        Returns:
            Result holding the new member. CONFLICT if already a member or if
            the clinic would have no administrator, INSUFFICIENT_ROLE when a
            non global admin grants ADMIN.
        """
        clinic_id = actor.clinic_id

        if await self.role_repo.find(user_id, clinic_id) is not None:
            return Result.failure(ErrorKind.CONFLICT, "User is already a member of this clinic")

        if role == Role.ADMIN and not actor.is_global_admin:
            return Result.failure(ErrorKind.INSUFFICIENT_ROLE, "Only an ADMIN can grant ADMIN")

        rows = await self.role_repo.find_by_clinic(clinic_id)
        if count_admins_after(rows, user_id, role) == 0:
            return Result.failure(
                ErrorKind.CONFLICT,
                "A clinic must have at least one administrator",
            )

        row = await self._write("add_member", self.role_repo.create(user_id, clinic_id, role))

        logger.info(
            "clinic_member_added",
            clinic_id=str(clinic_id),
            user_id=str(user_id),
            role=role.value,
            actor_id=str(actor.user_id),
        )
        return Result.success(ClinicMemberResponse.model_validate(row))

    async def change_role(
        self,
        actor: ClinicAccess,
        user_id: UUID,
        role: Role,
    ) -> Result[RoleChangeResponse]:
        """
        Change a member's role in the actor's clinic.

        Demoting the last administrator, including oneself, is a CONFLICT.
        """
        clinic_id = actor.clinic_id

        current = await self.role_repo.find(user_id, clinic_id)
        if current is None:
            return Result.failure(ErrorKind.NOT_FOUND, "User is not a member of this clinic")

        previous = Role(current["role"])
        if Role.ADMIN in (previous, role) and previous != role and not actor.is_global_admin:
            return Result.failure(
                ErrorKind.INSUFFICIENT_ROLE,
                "Only an ADMIN can grant or revoke ADMIN",
            )

        if previous != role:
            rows = await self.role_repo.find_by_clinic(clinic_id)
            if count_admins_after(rows, user_id, role) == 0:
                return Result.failure(
                    ErrorKind.CONFLICT,
                    "Cannot remove the last administrator of a clinic",
                )

            await self._write("change_role", self.role_repo.update_role(user_id, clinic_id, role))

            logger.info(
                "clinic_member_role_changed",
                clinic_id=str(clinic_id),
                user_id=str(user_id),
                previous_role=previous.value,
                new_role=role.value,
                actor_id=str(actor.user_id),
            )

        return Result.success(
            RoleChangeResponse(
                user_id=user_id,
                clinic_id=clinic_id,
                previous_role=previous,
                new_role=role,
            )
        )

    async def remove_member(
        self,
        actor: ClinicAccess,
        user_id: UUID,
    ) -> Result[ClinicMemberRemovedResponse]:
        """Remove a member from the actor's clinic, keeping one administrator."""
        clinic_id = actor.clinic_id

        current = await self.role_repo.find(user_id, clinic_id)
        if current is None:
            return Result.failure(ErrorKind.NOT_FOUND, "User is not a member of this clinic")

        if Role(current["role"]) == Role.ADMIN and not actor.is_global_admin:
            return Result.failure(ErrorKind.INSUFFICIENT_ROLE, "Only an ADMIN can revoke ADMIN")

        rows = await self.role_repo.find_by_clinic(clinic_id)
        if count_admins_after(rows, user_id, None) == 0:
            return Result.failure(
                ErrorKind.CONFLICT,
                "Cannot remove the last administrator of a clinic",
            )

        removed = await self._write("remove_member", self.role_repo.delete(user_id, clinic_id))

        logger.info(
            "clinic_member_removed",
            clinic_id=str(clinic_id),
            user_id=str(user_id),
            actor_id=str(actor.user_id),
        )
        return Result.success(
            ClinicMemberRemovedResponse(user_id=user_id, clinic_id=clinic_id, removed=removed)
        )

    async def _write(self, operation: str, write):
        try:
            return await write
        except SQLAlchemyError as e:
            logger.error("clinic_role_persistence_failed", operation=operation, error=str(e))
            raise
