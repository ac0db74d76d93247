"""Account-related DTOs shared across services."""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, EmailStr


class AccountProfile(BaseModel):
    """Public projection of an account.

    Only the fields declared here leave the service; credential and reset
    fields are never part of it.
    """

    account_id: str
    username: str
    email: EmailStr
    first_name: str = ""
    last_name: str = ""
    created_at: datetime | None = None

    class Config:
        from_attributes = True
