"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_queue.config import settings
from clinic_queue.core.broadcast import QueueBroadcastClient
from clinic_queue.core.exceptions import unwrap
from clinic_queue.core.security import CLINIC_CLAIM, decode_access_token
from clinic_queue.database import get_db
from clinic_queue.repositories.appointment_repository import AppointmentRepository
from clinic_queue.repositories.room_repository import RoomRepository
from clinic_queue.repositories.user_clinic_role_repository import UserClinicRoleRepository
from clinic_queue.schemas.clinic_users import ClinicAccess
from clinic_queue.services.appointment_service import AppointmentService
from clinic_queue.services.auth_service import AuthService
from clinic_queue.services.authorization_service import (
    AuthorizationService,
    Operation,
    resolve_clinic_context,
)
from clinic_queue.services.broadcast_service import QueueBroadcastPublisher
from clinic_queue.services.queue_service import QueueService
from clinic_queue.services.room_service import RoomService

# Security
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_payload(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> dict[str, Any]:
    """
    Decode and validate the bearer access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()
    return payload


async def get_current_user_id(
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
) -> UUID:
    """
    Extract user ID from the token's ``sub`` claim.

    Raises:
        HTTPException: If the claim is missing or not a UUID
    """
    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise _credentials_error()

    try:
        return UUID(user_id_str)
    except ValueError:
        raise _credentials_error("Invalid user ID format")


def get_broadcast_client(request: Request) -> QueueBroadcastClient | None:
    """Broadcast client created by the application lifespan, if any."""
    return getattr(request.app.state, "broadcast_client", None)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
TokenPayload = Annotated[dict[str, Any], Depends(get_token_payload)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
BroadcastClient = Annotated[QueueBroadcastClient | None, Depends(get_broadcast_client)]


def get_queue_service(db: DatabaseSession) -> QueueService:
    """Queue composer bound to the request's session."""
    return QueueService(AppointmentRepository(db), RoomRepository(db))


def get_broadcast_publisher(
    client: BroadcastClient,
    queue_service: Annotated[QueueService, Depends(get_queue_service)],
) -> QueueBroadcastPublisher:
    """Publisher using the process-wide broadcast client."""
    return QueueBroadcastPublisher(client, queue_service)


def get_appointment_service(
    db: DatabaseSession,
    publisher: Annotated[QueueBroadcastPublisher, Depends(get_broadcast_publisher)],
) -> AppointmentService:
    """Lifecycle engine bound to the request's session."""
    return AppointmentService(AppointmentRepository(db), RoomRepository(db), publisher)


def get_room_service(
    db: DatabaseSession,
    publisher: Annotated[QueueBroadcastPublisher, Depends(get_broadcast_publisher)],
) -> RoomService:
    """Room service bound to the request's session."""
    return RoomService(RoomRepository(db), publisher)


def get_authorization_service(db: DatabaseSession) -> AuthorizationService:
    """Authorization matrix bound to the request's session."""
    return AuthorizationService(UserClinicRoleRepository(db))


def get_auth_service(
    authorization: Annotated[AuthorizationService, Depends(get_authorization_service)],
) -> AuthService:
    """Token service."""
    return AuthService(authorization)


QueueServiceDep = Annotated[QueueService, Depends(get_queue_service)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
RoomServiceDep = Annotated[RoomService, Depends(get_room_service)]
AuthorizationServiceDep = Annotated[AuthorizationService, Depends(get_authorization_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def require(operation: Operation) -> Callable[..., Awaitable[ClinicAccess]]:
    """
    Build a dependency that authorizes ``operation`` in the request's clinic.

    The clinic is taken from the ``clinic_id`` path parameter, the clinic
    header, the ``clinic_id`` query parameter or the token's selected clinic,
    in that order.

    Args:
        operation: Policy table entry to check

    Returns:
        Dependency resolving to the caller's ClinicAccess
    """

    async def dependency(
        request: Request,
        payload: TokenPayload,
        user_id: CurrentUserId,
        authorization: AuthorizationServiceDep,
    ) -> ClinicAccess:
        clinic_id = unwrap(
            resolve_clinic_context(
                path_clinic_id=request.path_params.get("clinic_id"),
                header_clinic_id=request.headers.get(settings.clinic_header_name),
                query_clinic_id=request.query_params.get("clinic_id"),
                token_clinic_id=payload.get(CLINIC_CLAIM),
            )
        )
        return unwrap(await authorization.authorize_operation(user_id, clinic_id, operation))

    return dependency
