"""
Authentication Schemas
======================

Pydantic schemas for authentication endpoints.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TelegramLoginRequest(BaseModel):
    """
    Payload of the Telegram Login Widget.

    Every field the widget sends takes part in the signature, so unknown
    fields are kept.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    photo_url: Optional[str] = None
    auth_date: int
    hash: str


class GoogleLoginRequest(BaseModel):
    """Request schema for Google sign-in with an ID token."""

    id_token: str = Field(..., min_length=10)


class RefreshTokenRequest(BaseModel):
    """Request schema for token refresh."""

    refresh_token: str
