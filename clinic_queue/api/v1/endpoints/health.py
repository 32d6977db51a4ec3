"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from clinic_queue.config import settings
from clinic_queue.database import check_database_connection
from clinic_queue.dependencies import BroadcastClient

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response model."""

    status: str
    version: str
    environment: str
    database: str
    broadcast: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Basic health status
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check(client: BroadcastClient) -> DetailedHealthResponse:
    """
    Detailed health check with database and broadcast channel status.

    A disabled broadcast channel does not degrade the service; queue
    updates are then only available by polling.
    """
    db_healthy = await check_database_connection()

    if client is None or not client.enabled:
        broadcast = "disabled"
    elif client.ping():
        broadcast = "healthy"
    else:
        broadcast = "unhealthy"

    return DetailedHealthResponse(
        status="healthy" if db_healthy and broadcast != "unhealthy" else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        broadcast=broadcast,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """
    Simple ping endpoint.

    Returns:
        Pong response
    """
    return {"message": "pong"}
