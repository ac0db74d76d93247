"""Password hashing, verification, and password-reset token issuance."""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

import bcrypt

from ..config import Settings
from ..domain.account import Account
from ..errors import CredentialComparisonFailure

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


BCRYPT_MAX_BYTES = 72


def _bcrypt_input(plaintext: str) -> bytes:
    """Encode ``plaintext`` for bcrypt, folding secrets past its 72-byte limit into a SHA-256 hex digest."""
    encoded = plaintext.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return hashlib.sha256(encoded).hexdigest().encode("ascii")
    return encoded


class CredentialManager:
    """Owns the one-way password transform and reset token generation.

    Parameters
    ----------
    rounds:
        bcrypt work factor (4-31).
    reset_token_ttl_seconds:
        Lifetime of a password-reset token.
    reset_token_bytes:
        Entropy of a reset token; the hex encoding is twice as long.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    MIN_ROUNDS = 4
    MAX_ROUNDS = 31

    def __init__(
        self,
        *,
        rounds: int = 12,
        reset_token_ttl_seconds: int = 3600,
        reset_token_bytes: int = 20,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not (self.MIN_ROUNDS <= rounds <= self.MAX_ROUNDS):
            raise ValueError(
                f"rounds must be between {self.MIN_ROUNDS} and {self.MAX_ROUNDS}, got {rounds}"
            )
        self._rounds = rounds
        self._reset_ttl = timedelta(seconds=reset_token_ttl_seconds)
        self._reset_token_bytes = reset_token_bytes
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialManager":
        return cls(
            rounds=settings.bcrypt_rounds,
            reset_token_ttl_seconds=settings.reset_token_ttl_seconds,
        )

    def hash(self, plaintext: str) -> str:
        """Return a salted bcrypt digest; every call draws a fresh salt."""
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(_bcrypt_input(plaintext), salt).decode("utf-8")

    def verify(self, plaintext: str, digest: str | None) -> bool:
        """Return whether ``plaintext`` matches ``digest``.

        Raises
        ------
        CredentialComparisonFailure
            When the digest cannot be compared at all (missing or malformed),
            which is a stored-data fault rather than a wrong password.
        """
        try:
            return bcrypt.checkpw(_bcrypt_input(plaintext), (digest or "").encode("utf-8"))
        except (ValueError, TypeError) as exc:
            raise CredentialComparisonFailure("stored credential could not be compared") from exc

    def issue_reset_token(self, account: Account) -> tuple[str, datetime]:
        """Attach a fresh reset token and its absolute expiry to ``account``.

        The account is only mutated in memory; the caller persists it.
        """
        token = secrets.token_hex(self._reset_token_bytes)
        expires_at = self._clock() + self._reset_ttl
        account.reset_token = token
        account.reset_token_expires_at = expires_at
        return token, expires_at

    def reset_token_expired(self, account: Account) -> bool:
        expires_at = account.reset_token_expires_at
        return expires_at is None or expires_at <= self._clock()

    def prepare_for_write(self, account: Account) -> Account:
        """Hash a staged plaintext password into ``password_hash`` and drop the plaintext.

        Accounts without a staged password keep their stored digest untouched.
        """
        if account.password is not None:
            account.password_hash = self.hash(account.password)
            account.password = None
            logger.debug("hashed staged password for account %s", account.account_id)
        return account
