"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel

from clinic_queue.schemas.clinic_users import ClinicMemberResponse, Role


class SelectClinicRequest(BaseModel):
    """Request to make a clinic the caller's working context."""

    clinic_id: UUID


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    clinic_id: UUID
    role: Role


class UserClinicsResponse(BaseModel):
    """Clinics the caller belongs to."""

    is_global_admin: bool
    items: list[ClinicMemberResponse]
