"""Utilities for issuing and validating session JWTs."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Callable

import jwt

from auth_schemas import SessionEnvelope, SessionUser

from ..config import Settings
from ..domain.account import Account

IDENTITY_CLAIMS = ("id", "username", "email")


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenIssuer:
    """Signs identity claims into short-lived access and long-lived refresh tokens."""

    def __init__(
        self,
        *,
        secret: str,
        access_ttl_seconds: int,
        refresh_ttl_seconds: int,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._ttls = {
            TokenKind.ACCESS: access_ttl_seconds,
            TokenKind.REFRESH: refresh_ttl_seconds,
        }
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            access_ttl_seconds=settings.access_token_ttl_seconds,
            refresh_ttl_seconds=settings.refresh_token_ttl_seconds,
            algorithm=settings.jwt_algorithm,
        )

    def ttl_for(self, kind: TokenKind) -> int:
        return self._ttls[kind]

    def issue(self, account: Account, kind: TokenKind = TokenKind.ACCESS) -> str:
        """Create a signed JWT carrying the account's identity claims.

        Parameters
        ----------
        account:
            Account whose ``id``, ``username`` and ``email`` are embedded.
        kind:
            Selects the expiry window; the claims are otherwise identical.

        Returns
        -------
        str
            The encoded token.
        """

        now = int(self._clock())
        payload: dict[str, Any] = {
            "id": account.account_id,
            "username": account.username,
            "email": account.email,
            "iat": now,
            "exp": now + self._ttls[kind],
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """Decode and verify a token returning its payload.

        Raises
        ------
        jwt.PyJWTError
            Propagated when the token is malformed, expired, or signed with another key.
        """

        return jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            options={"require": ["exp", *IDENTITY_CLAIMS]},
        )

    def build_session_payload(self, account: Account, message: str) -> dict[str, Any]:
        """Compose one access and one refresh token into the response envelope."""
        envelope = SessionEnvelope.build(
            user=SessionUser(
                username=account.username,
                email=account.email,
                access_token=self.issue(account, TokenKind.ACCESS),
                refresh_token=self.issue(account, TokenKind.REFRESH),
            ),
            message=message,
        )
        return envelope.model_dump(by_alias=True)
