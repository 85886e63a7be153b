"""
Security Module
===============

Authentication and security utilities including:
- JWT token generation and validation
- Telegram Login Widget payload verification
"""

import hashlib
import hmac
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import uuid

from jose import JWTError, jwt

from karma_diary.config import settings

# Telegram login payloads older than this are rejected
TELEGRAM_AUTH_MAX_AGE_SECONDS = 86400


def _encode(data: dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    to_encode.update({
        "exp": now + expires_delta,
        "iat": now,
        "type": token_type,
    })

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def create_access_token(
    data: dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode
        expires_delta: Custom expiration time (optional)

    Returns:
        Encoded JWT token string
    """
    return _encode(
        data,
        "access",
        expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(
    data: dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT refresh token.

    Args:
        data: Payload data to encode
        expires_delta: Custom expiration time (optional)

    Returns:
        Encoded JWT refresh token string
    """
    return _encode(
        data,
        "refresh",
        expires_delta or timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """
    Decode and validate a JWT token.

    Returns:
        Decoded payload if valid, None otherwise
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None


def create_tokens_for_user(
    user_id: uuid.UUID,
    plan: str = "none",
) -> dict[str, Any]:
    """
    Create both access and refresh tokens for a user.

    Returns:
        Dictionary with access_token, refresh_token, and expires_in
    """
    token_data = {
        "sub": str(user_id),
        "plan": plan,
    }

    return {
        "access_token": create_access_token(token_data),
        "refresh_token": create_refresh_token(token_data),
        "token_type": "bearer",
        "expires_in": settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # seconds
    }


def verify_telegram_login(
    payload: dict[str, Any],
    bot_token: str,
    now: Optional[float] = None,
) -> bool:
    """
    Verify a Telegram Login Widget payload.

    The data-check string is every field except ``hash`` as ``key=value``
    lines sorted by key; the HMAC key is ``sha256(bot_token)``.
    """
    received_hash = payload.get("hash")
    if not received_hash or not bot_token:
        return False

    data_check_string = "\n".join(
        f"{key}={payload[key]}"
        for key in sorted(payload)
        if key != "hash" and payload[key] is not None
    )
    secret_key = hashlib.sha256(bot_token.encode()).digest()
    expected = hmac.new(
        secret_key, data_check_string.encode(), hashlib.sha256
    ).hexdigest()

    if not hmac.compare_digest(expected, str(received_hash)):
        return False

    try:
        auth_date = int(payload.get("auth_date", 0))
    except (TypeError, ValueError):
        return False

    current = now if now is not None else time.time()
    return current - auth_date <= TELEGRAM_AUTH_MAX_AGE_SECONDS
