"""
Authentication API Endpoints
============================

Handles Telegram Login Widget sign-in, bot-confirmed web login sessions,
Google sign-in and token refresh.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, status

from karma_diary.config import settings
from karma_diary.core.errors import (
    AuthenticationError,
    ErrorCodes,
    NotFoundError,
    ServiceUnavailableError,
)
from karma_diary.core.rate_limit import create_rate_limit_dependency
from karma_diary.core.security import create_tokens_for_user, verify_telegram_login
from karma_diary.dependencies import DBSession
from karma_diary.schemas.auth import (
    GoogleLoginRequest,
    RefreshTokenRequest,
    TelegramLoginRequest,
)
from karma_diary.schemas.common import DataResponse, ErrorResponse
from karma_diary.services.auth_service import (
    AuthService,
    consume_login_session,
    create_login_session,
)
from karma_diary.services.user_service import user_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(create_rate_limit_dependency("auth"))])


def _auth_payload(user, created: bool = False) -> dict:
    return {
        "user": user_to_dict(user),
        "tokens": create_tokens_for_user(user.user_id, plan=user.subscription_plan),
        "is_new_user": created,
    }


@router.post(
    "/telegram",
    response_model=DataResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid widget signature"}},
)
async def telegram_login(payload: TelegramLoginRequest, db: DBSession):
    """
    Sign in with the Telegram Login Widget.

    The widget payload is verified with the bot token and must be less
    than a day old.
    """
    data = payload.model_dump(exclude_none=True)
    if not verify_telegram_login(data, settings.TELEGRAM_BOT_TOKEN):
        logger.warning("Rejected Telegram login for %s", payload.id)
        raise AuthenticationError(
            code=ErrorCodes.AUTH_TELEGRAM_INVALID,
            message="Invalid Telegram authentication data",
        )

    user, created = await AuthService(db).get_or_create_telegram_user(
        telegram_id=payload.id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        username=payload.username,
        avatar_url=payload.photo_url,
    )
    return DataResponse(data=_auth_payload(user, created))


@router.post(
    "/telegram/session",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_telegram_session():
    """
    Start a web login confirmed in the bot.

    The client opens ``bot_url`` and polls the session until it is
    authorised.
    """
    session = await create_login_session()
    if not session:
        raise ServiceUnavailableError(
            code=ErrorCodes.INTERNAL_ERROR,
            message="Login sessions are temporarily unavailable",
        )
    return DataResponse(data=session)


@router.get("/telegram/session/{session_id}", response_model=DataResponse)
async def check_telegram_session(session_id: str, db: DBSession):
    """Poll a web login session; returns tokens once the bot confirmed it."""
    session = await consume_login_session(session_id)
    if session is None:
        raise NotFoundError(
            code=ErrorCodes.AUTH_SESSION_NOT_FOUND,
            message="Login session not found or expired",
        )

    if session.get("status") != "authorized":
        return DataResponse(data={"status": "pending"})

    user = await AuthService(db).get_user_by_id(uuid.UUID(session["user_id"]))
    if user is None or not user.is_active:
        raise AuthenticationError(
            code=ErrorCodes.AUTH_INVALID_TOKEN,
            message="User not found or inactive",
        )
    return DataResponse(data={"status": "authorized", **_auth_payload(user)})


@router.post(
    "/google",
    response_model=DataResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid Google token"}},
)
async def google_login(request: GoogleLoginRequest, db: DBSession):
    """Sign in with a Google ID token."""
    if not settings.GOOGLE_CLIENT_ID:
        raise ServiceUnavailableError(
            code=ErrorCodes.AUTH_GOOGLE_TOKEN_INVALID,
            message="Google sign-in is not configured",
        )

    auth_service = AuthService(db)
    try:
        claims = await auth_service.verify_google_id_token(request.id_token)
    except ValueError as e:
        logger.warning("Google token verification failed: %s", e)
        raise AuthenticationError(
            code=ErrorCodes.AUTH_GOOGLE_TOKEN_INVALID,
            message="Invalid Google token",
        )

    if not claims.get("email_verified"):
        raise AuthenticationError(
            code=ErrorCodes.AUTH_GOOGLE_EMAIL_UNVERIFIED,
            message="Google email is not verified",
        )

    user, created = await auth_service.get_or_create_google_user(
        google_id=claims["sub"],
        email=claims["email"],
        first_name=claims.get("given_name"),
        last_name=claims.get("family_name"),
        avatar_url=claims.get("picture"),
    )
    return DataResponse(data=_auth_payload(user, created))


@router.post(
    "/refresh",
    response_model=DataResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid refresh token"}},
)
async def refresh_token(request: RefreshTokenRequest, db: DBSession):
    """Exchange a refresh token for a new token pair."""
    tokens = await AuthService(db).refresh_tokens(request.refresh_token)
    if tokens is None:
        raise AuthenticationError(
            code=ErrorCodes.AUTH_TOKEN_EXPIRED,
            message="Invalid or expired refresh token",
        )
    return DataResponse(data={"tokens": tokens})
