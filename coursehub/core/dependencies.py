import logging
from typing import Optional

from fastapi import HTTPException, Query, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coursehub.core.config import settings
from coursehub.core.security import jwt_manager
from coursehub.schemas.actor import ActorContext

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_actor(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> ActorContext:
    """
    Dependency that requires a valid Bearer token and returns the actor.
    Raises 401 Unauthorized if the token is missing or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return jwt_manager.actor_from_token(credentials.credentials)


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Optional[ActorContext]:
    """
    Dependency that returns the actor if a valid token is provided, or None
    otherwise. Invalid tokens are treated as anonymous visitors.
    """
    if not credentials:
        return None

    try:
        return jwt_manager.actor_from_token(credentials.credentials)
    except HTTPException:
        return None


def page_params(
    offset: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """Offset/limit window shared by the back-office listings."""
    return offset, limit
