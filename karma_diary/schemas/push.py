"""
Push Schemas
============

Browser ``PushSubscription.toJSON()`` shape.
"""

from typing import Optional

from pydantic import BaseModel, Field


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=10, max_length=2000)
    keys: PushKeys
    user_agent: Optional[str] = Field(None, max_length=500)


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=10, max_length=2000)
