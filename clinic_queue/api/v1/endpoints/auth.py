"""Authentication endpoints."""

from fastapi import APIRouter, status

from clinic_queue.core.exceptions import unwrap
from clinic_queue.dependencies import AuthorizationServiceDep, AuthServiceDep, CurrentUserId
from clinic_queue.schemas.auth import SelectClinicRequest, Token, UserClinicsResponse

router = APIRouter()


@router.post(
    "/select-clinic",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    summary="Select working clinic",
)
async def select_clinic(
    data: SelectClinicRequest,
    user_id: CurrentUserId,
    service: AuthServiceDep,
) -> Token:
    """
    Issue an access token bound to a clinic the caller belongs to.

    Requests made with the new token act in that clinic unless a header,
    path or query parameter names another one.

    Args:
        data: Clinic to select
        user_id: Authenticated user
        service: Token service

    Returns:
        Access token carrying the selected clinic
    """
    return unwrap(await service.select_clinic(user_id, data.clinic_id))


@router.get(
    "/me/clinics",
    response_model=UserClinicsResponse,
    status_code=status.HTTP_200_OK,
    summary="List my clinics",
)
async def list_my_clinics(
    user_id: CurrentUserId,
    service: AuthorizationServiceDep,
) -> UserClinicsResponse:
    """Clinics the caller holds a role in."""
    return unwrap(await service.list_user_clinics(user_id))
