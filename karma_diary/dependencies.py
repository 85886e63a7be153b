"""
Common Dependencies
===================

Shared dependencies used across the application.
"""

import logging
from typing import Annotated, Optional
import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.core.errors import AuthenticationError, ErrorCodes
from karma_diary.core.security import decode_token
from karma_diary.db.session import get_db
from karma_diary.models.user import User
from karma_diary.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

# Security scheme for JWT authentication
security = HTTPBearer(auto_error=False)


def _user_id_from_token(token: str) -> Optional[uuid.UUID]:
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        return None

    user_id_str = payload.get("sub")
    if user_id_str is None:
        return None

    try:
        return uuid.UUID(user_id_str)
    except ValueError:
        return None


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
) -> User:
    """
    Get current authenticated user.

    Raises 401 if not authenticated, the token is invalid, or the
    account is gone or deactivated.
    """
    if credentials is None:
        raise AuthenticationError(
            code=ErrorCodes.AUTH_TOKEN_EXPIRED,
            message="Not authenticated",
        )

    user_id = _user_id_from_token(credentials.credentials)
    if user_id is None:
        raise AuthenticationError(
            code=ErrorCodes.AUTH_TOKEN_EXPIRED,
            message="Invalid or expired token",
        )

    user = await AuthService(db).get_user_by_id(user_id)
    if user is None or not user.is_active:
        raise AuthenticationError(
            code=ErrorCodes.AUTH_INVALID_TOKEN,
            message="User not found or inactive",
        )

    # Picked up by the New Relic middleware
    request.state.user_id = str(user.user_id)
    return user


# Type alias for authenticated user dependency
CurrentUser = Annotated[User, Depends(get_current_user)]
