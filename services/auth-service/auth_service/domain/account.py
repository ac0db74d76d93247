from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class Account:
    """Aggregate root for a user identity and its credentials.

    ``password`` holds plaintext only between :meth:`set_password` and the
    repository's pre-write hashing step; the stored credential is
    ``password_hash``.
    """

    account_id: str
    username: str
    email: str
    first_name: str = ""
    last_name: str = ""
    password_hash: str | None = field(default=None, repr=False)
    reset_token: str | None = field(default=None, repr=False)
    reset_token_expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    password: str | None = field(default=None, repr=False, compare=False)

    def set_password(self, plaintext: str) -> None:
        """Stage a new plaintext password to be hashed before the next write."""
        self.password = plaintext

    @property
    def has_pending_password(self) -> bool:
        return self.password is not None

    def clear_reset_token(self) -> None:
        self.reset_token = None
        self.reset_token_expires_at = None
