"""FastAPI dependencies for authentication and request context."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.access import ANONYMOUS, Viewer
from .config import get_settings
from .database import get_session
from .security import PublisherTokenPayload, decode_publisher_token, decode_viewer_token

logger = logging.getLogger(__name__)

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def require_publisher(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> PublisherTokenPayload:
    """Require a source-system token carrying the publisher role."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_publisher_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    required_role = get_settings().api_required_role
    if required_role not in payload.roles:
        logger.warning(f"[auth] Client {payload.sub} lacks role {required_role}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required role: {required_role}",
        )

    return payload


def _viewer_from_token(token: str) -> Viewer | None:
    payload = decode_viewer_token(token)
    if not payload:
        return None
    try:
        user_id = UUID(payload.sub)
    except ValueError:
        return None
    return Viewer.from_claims(user_id, payload.role, payload.provenance)


async def get_viewer(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Viewer:
    """Optional authentication - anonymous viewer if no valid token."""
    if not credentials:
        return ANONYMOUS
    return _viewer_from_token(credentials.credentials) or ANONYMOUS


async def get_current_viewer(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Viewer:
    """Require a signed-in user."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    viewer = _viewer_from_token(credentials.credentials)
    if viewer is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return viewer


# Type aliases for cleaner dependency injection
SessionDep = Annotated[AsyncSession, Depends(get_session)]
PublisherDep = Annotated[PublisherTokenPayload, Depends(require_publisher)]
ViewerDep = Annotated[Viewer, Depends(get_viewer)]
CurrentViewerDep = Annotated[Viewer, Depends(get_current_viewer)]
