# core/security.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from coursehub.core.config import settings
from coursehub.schemas.actor import ActorContext

logger = logging.getLogger(__name__)


class JWTManager:
    """
    Bearer tokens carrying the actor context.
    Accounts and logins belong to the auth service; the catalog only signs
    tokens for tooling and verifies the ones it is handed.
    """

    def __init__(self):
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.access_token_expire = timedelta(
            minutes=settings.jwt_access_expiration_minutes
        )
        self.issuer = settings.jwt_issuer

    def create_access_token(
        self, actor: ActorContext, custom_expiration: Optional[timedelta] = None
    ) -> str:
        """
        Create JWT access token for an actor

        Args:
            actor: Who the token speaks for
            custom_expiration: Override default expiration

        Returns:
            JWT access token string
        """
        current_time = datetime.now(timezone.utc)
        expire = current_time + (custom_expiration or self.access_token_expire)

        payload = {
            "sub": str(actor.user_id),
            "user_id": actor.user_id,
            "role": actor.role,
            "instructor_id": actor.instructor_id,
            "exp": int(expire.timestamp()),
            "iat": int(current_time.timestamp()),
            "iss": self.issuer,
            "type": "access",
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.info(f"Access token created for user: {actor.user_id} ({actor.role})")
        return token

    def verify_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Verify and decode JWT token
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": True},
            )
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        # Verify token type (check 'type' field, not 'role')
        if payload.get("type") != token_type:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token type. Expected {token_type}",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if payload.get("iss") != self.issuer:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token issuer",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return payload

    def actor_from_token(self, token: str) -> ActorContext:
        payload = self.verify_token(token, "access")
        try:
            return ActorContext(
                user_id=payload.get("user_id"),
                role=payload.get("role") or "student",
                instructor_id=payload.get("instructor_id"),
            )
        except PydanticValidationError as e:
            logger.warning(f"Token payload rejected: {e.errors()}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: malformed actor claims",
                headers={"WWW-Authenticate": "Bearer"},
            )


# Global instance
jwt_manager = JWTManager()
