"""Security utilities for JWT handling."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from clinic_queue.config import settings

CLINIC_CLAIM = "clinic_id"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    clinic_id: UUID | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode (``sub`` holds the user ID)
        expires_delta: Optional expiration time delta
        clinic_id: Optional selected clinic stored in the token

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update(
        {
            "exp": expire,
            "iat": datetime.now(UTC),
            "type": "access",
        }
    )
    if clinic_id is not None:
        to_encode[CLINIC_CLAIM] = str(clinic_id)

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None

    return payload
