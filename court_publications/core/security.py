"""Security utilities: bearer token encoding and decoding."""

from datetime import datetime, timedelta, timezone
from uuid import UUID
import logging

import jwt
from pydantic import BaseModel, Field, ValidationError

from .config import get_settings

logger = logging.getLogger(__name__)


# Publisher (source system) tokens
class PublisherTokenPayload(BaseModel):
    """Client-credentials token presented by an upstream source system."""

    sub: str  # Client ID
    roles: list[str] = Field(default_factory=list)
    exp: datetime
    iat: datetime


def create_publisher_token(
    client_id: str,
    roles: list[str],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT for a publishing source system."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    payload = {
        "sub": client_id,
        "roles": roles,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def decode_publisher_token(token: str) -> PublisherTokenPayload | None:
    """Decode and validate a publisher token."""
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=["HS256"])
        return PublisherTokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        logger.warning("[auth] Publisher token expired")
        return None
    except (jwt.InvalidTokenError, ValidationError):
        return None


# Viewer (signed-in user) tokens
class ViewerTokenPayload(BaseModel):
    """Token carried by a signed-in user of the public service."""

    sub: str  # User ID
    role: str | None = None
    provenance: str | None = None
    exp: datetime
    iat: datetime


def create_viewer_token(
    user_id: UUID,
    role: str | None = None,
    provenance: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT for a signed-in user."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    payload = {
        "sub": str(user_id),
        "role": role,
        "provenance": provenance,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def decode_viewer_token(token: str) -> ViewerTokenPayload | None:
    """Decode and validate a viewer token."""
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=["HS256"])
        return ViewerTokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        return None
    except (jwt.InvalidTokenError, ValidationError):
        return None
