"""Clinic membership endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from clinic_queue.core.exceptions import unwrap
from clinic_queue.dependencies import AuthorizationServiceDep, require
from clinic_queue.schemas.clinic_users import (
    ClinicAccess,
    ClinicMemberCreate,
    ClinicMemberListResponse,
    ClinicMemberRemovedResponse,
    ClinicMemberResponse,
    ClinicMemberRoleUpdate,
    RoleChangeResponse,
)
from clinic_queue.services.authorization_service import Operation

router = APIRouter()

ViewAccess = Annotated[ClinicAccess, Depends(require(Operation.MEMBERS_VIEW))]
ManageAccess = Annotated[ClinicAccess, Depends(require(Operation.MEMBERS_MANAGE))]


@router.get(
    "/{clinic_id}/members",
    response_model=ClinicMemberListResponse,
    status_code=status.HTTP_200_OK,
    summary="List clinic members",
)
async def list_members(
    clinic_id: UUID,
    access: ViewAccess,
    service: AuthorizationServiceDep,
) -> ClinicMemberListResponse:
    """List users holding a role in the clinic."""
    return unwrap(await service.list_members(access.clinic_id))


@router.post(
    "/{clinic_id}/members",
    response_model=ClinicMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add clinic member",
)
async def add_member(
    clinic_id: UUID,
    data: ClinicMemberCreate,
    access: ManageAccess,
    service: AuthorizationServiceDep,
) -> ClinicMemberResponse:
    """
    Give a user a role in the clinic.

    Args:
        clinic_id: Clinic ID
        data: User and role
        access: Caller's clinic access
        service: Authorization matrix

    Returns:
        The new membership
    """
    return unwrap(await service.add_member(access, data.user_id, data.role))


@router.patch(
    "/{clinic_id}/members/{user_id}",
    response_model=RoleChangeResponse,
    status_code=status.HTTP_200_OK,
    summary="Change member role",
)
async def change_member_role(
    clinic_id: UUID,
    user_id: UUID,
    data: ClinicMemberRoleUpdate,
    access: ManageAccess,
    service: AuthorizationServiceDep,
) -> RoleChangeResponse:
    """Change a member's role; the last administrator cannot be demoted."""
    return unwrap(await service.change_role(access, user_id, data.role))


@router.delete(
    "/{clinic_id}/members/{user_id}",
    response_model=ClinicMemberRemovedResponse,
    status_code=status.HTTP_200_OK,
    summary="Remove clinic member",
)
async def remove_member(
    clinic_id: UUID,
    user_id: UUID,
    access: ManageAccess,
    service: AuthorizationServiceDep,
) -> ClinicMemberRemovedResponse:
    """Remove a user from the clinic; the last administrator cannot be removed."""
    return unwrap(await service.remove_member(access, user_id))
