"""Response envelopes returned by the authentication endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SessionUser(BaseModel):
    username: str
    email: str
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")

    class Config:
        populate_by_name = True


class SessionData(BaseModel):
    user: SessionUser
    message: str


class SessionEnvelope(BaseModel):
    """``{"data": {"user": {...}, "message": ...}}`` returned after login or registration."""

    data: SessionData

    @classmethod
    def build(cls, *, user: SessionUser, message: str) -> "SessionEnvelope":
        return cls(data=SessionData(user=user, message=message))


class MessageData(BaseModel):
    message: str


class MessageEnvelope(BaseModel):
    data: MessageData

    @classmethod
    def build(cls, message: str) -> "MessageEnvelope":
        return cls(data=MessageData(message=message))
