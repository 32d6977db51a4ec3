"""Clinic membership and role schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class Role(str, Enum):
    """Roles a user can hold in a clinic. ADMIN is global."""

    ADMIN = "ADMIN"
    CLINIC_ADMIN = "CLINIC_ADMIN"
    DOCTOR = "DOCTOR"
    NURSE = "NURSE"
    RECEPTIONIST = "RECEPTIONIST"
    STAFF = "STAFF"


# Roles that count towards a clinic's administrators
ADMIN_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.CLINIC_ADMIN})


class ClinicMemberCreate(BaseModel):
    """Schema for adding a user to a clinic."""

    user_id: UUID
    role: Role = Role.STAFF


class ClinicMemberRoleUpdate(BaseModel):
    """Schema for changing a member's role."""

    role: Role


class ClinicMemberResponse(BaseModel):
    """A user's role in a clinic."""

    user_id: UUID
    clinic_id: UUID
    role: Role
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClinicMemberListResponse(BaseModel):
    """Members of a clinic."""

    total: int
    items: list[ClinicMemberResponse]


class RoleChangeResponse(BaseModel):
    """Outcome of a role change."""

    user_id: UUID
    clinic_id: UUID
    previous_role: Role
    new_role: Role


class ClinicMemberRemovedResponse(BaseModel):
    """Outcome of removing a member."""

    user_id: UUID
    clinic_id: UUID
    removed: bool


class ClinicAccess(BaseModel):
    """Authorization decision for a caller in a clinic."""

    user_id: UUID
    clinic_id: UUID
    role: Role
    is_global_admin: bool = False
