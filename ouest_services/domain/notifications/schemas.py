"""Notification request schemas"""

from typing import Optional

from pydantic import BaseModel, Field


class PushRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=2, max_length=100)
    body: str = Field(..., min_length=10, max_length=500)
    data: Optional[dict[str, str]] = None


class ResourceRequest(BaseModel):
    id: str = Field(..., min_length=1)


class PushResponse(BaseModel):
    sent: bool
    message: str


class FanoutResponse(BaseModel):
    sent: int
    skipped: int
    failed: int
