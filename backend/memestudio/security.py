"""
MemeStudio Backend - Bearer Token Authentication
=================================================

What:  FastAPI dependency resolving the acting user from an HS256 JWT.
How:   `Authorization: Bearer <token>` is verified with JWT_SECRET_KEY;
       the `sub` claim must be the user's UUID. Tokens are issued by the
       identity service; this backend only verifies them.
Who:   Every write endpoint and GET /api/memes/my-memes.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from memestudio.config import settings
from memestudio.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_user_id(token: str, secret: str, algorithm: str = "HS256") -> uuid.UUID:
    """
    Verify `token` and return its subject.

    Raises:
        AuthenticationError: unconfigured secret, bad signature, expired
            token, or a `sub` claim that is not a UUID
    """
    if not secret:
        logger.error("JWT_SECRET_KEY is not configured; rejecting authenticated request")
        raise AuthenticationError(message="Authentication is not configured")

    try:
        payload: Dict[str, Any] = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as exc:
        raise AuthenticationError(message="Invalid or expired token") from exc

    subject = payload.get("sub")
    try:
        return uuid.UUID(str(subject))
    except ValueError as exc:
        raise AuthenticationError(message="Invalid token subject") from exc


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> uuid.UUID:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Please authenticate")
    return decode_user_id(
        credentials.credentials,
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def create_access_token(user_id: uuid.UUID, secret: str, algorithm: str = "HS256", **claims: Any) -> str:
    """Sign a token for `user_id`; used by local tooling and tests."""
    return jwt.encode({"sub": str(user_id), **claims}, secret, algorithm=algorithm)
