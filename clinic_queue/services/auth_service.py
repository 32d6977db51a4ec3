"""Authentication service for clinic-scoped JWT access tokens."""

from datetime import timedelta
from uuid import UUID

import structlog

from clinic_queue.config import settings
from clinic_queue.core.results import Result
from clinic_queue.core.security import create_access_token
from clinic_queue.schemas.auth import Token
from clinic_queue.services.authorization_service import ALL_ROLES, AuthorizationService

logger = structlog.get_logger(__name__)


class AuthService:
    """Issues access tokens carrying the caller's selected clinic."""

    def __init__(self, authorization: AuthorizationService):
        """Initialize auth service with the authorization matrix."""
        self.authorization = authorization

    async def select_clinic(self, user_id: UUID, clinic_id: UUID) -> Result[Token]:
        """
        Exchange the caller's token for one bound to a clinic.

        Args:
            user_id: Authenticated user
            clinic_id: Clinic to act in by default

        Returns:
            Result holding the new token, or CLINIC_ACCESS_DENIED
        """
        access = await self.authorization.authorize(user_id, clinic_id, ALL_ROLES)
        if not access.ok:
            return Result.from_error(access.error)  # type: ignore[arg-type]

        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
        token = create_access_token(
            data={"sub": str(user_id)},
            expires_delta=expires_delta,
            clinic_id=clinic_id,
        )

        logger.info("clinic_selected", user_id=str(user_id), clinic_id=str(clinic_id))

        return Result.success(
            Token(
                access_token=token,
                token_type="bearer",
                expires_in=int(expires_delta.total_seconds()),
                clinic_id=clinic_id,
                role=access.value.role,  # type: ignore[union-attr]
            )
        )
