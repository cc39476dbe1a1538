"""
Signed-claim authentication for the API.

Tokens are HS256 JWTs carrying the user id (``sub``) and role. Requests
without a token are accepted as anonymous; a token, when present, must be
valid and decides what the caller may do.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from apply_desk.config import settings
from apply_desk.core.errors import AuthError, ForbiddenError
from apply_desk.core.models import User, UserRole
from apply_desk.utils.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)

MANAGING_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a new JWT access token."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expiration_hours))
    payload = {
        "sub": user.id,
        "role": user.role.value,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and validate a JWT token. Returns None when it is expired or invalid."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("Expired token presented")
        return None
    except jwt.InvalidTokenError:
        logger.info("Invalid token presented")
        return None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[User]:
    """
    Dependency resolving the bearer token to a user.

    Returns None for anonymous requests.

    Raises:
        AuthError: token invalid, expired, or naming an unknown or inactive user
    """
    if credentials is None:
        return None

    payload = decode_token(credentials.credentials)
    if payload is None or "sub" not in payload:
        raise AuthError("Invalid or expired token")

    store = request.app.state.manager.store
    user = await store.find_user_by_id(payload["sub"])
    if user is None or not user.is_active:
        raise AuthError("Unknown or inactive user", {"userId": payload["sub"]})
    return user


async def forbid_observer(user: Optional[User] = Depends(get_current_user)) -> Optional[User]:
    """Dependency rejecting observers from endpoints that change sessions."""
    if user is not None and user.role == UserRole.OBSERVER:
        raise ForbiddenError("Observers cannot modify sessions", {"userId": user.id})
    return user


async def require_manager(user: Optional[User] = Depends(get_current_user)) -> Optional[User]:
    """Dependency restricting authenticated callers to managers and admins."""
    if user is not None and user.role not in MANAGING_ROLES:
        raise ForbiddenError("Manager or admin role required", {"userId": user.id, "role": user.role.value})
    return user
