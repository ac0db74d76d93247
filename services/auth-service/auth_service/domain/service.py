"""Account service orchestrating persistence, credentials, and session tokens."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

import jwt

from .account import Account
from .contracts import (
    LoginInput,
    RefreshInput,
    RegisterInput,
    ResetPasswordInput,
    UpdateAccountInput,
)
from ..errors import PersistenceConflict
from ..security.passwords import CredentialManager
from ..security.tokens import TokenIssuer

logger = logging.getLogger(__name__)

REGISTERED_MESSAGE = "User created successfully"
LOGIN_MESSAGE = "Login successful"
REFRESHED_MESSAGE = "Token refreshed"


class AccountStore(Protocol):
    """Persistence contract the service relies on."""

    def create_account(self, account: Account) -> Account: ...

    def save_account(self, account: Account) -> Account: ...

    def get_account(self, account_id: str) -> Account | None: ...

    def find_by_username(self, username: str) -> Account | None: ...

    def find_by_email(self, email: str) -> Account | None: ...

    def find_by_login(self, login: str) -> Account | None: ...

    def find_by_reset_token(self, token: str) -> Account | None: ...


class AccountService:
    """Account workflows built on the credential manager and token issuer."""

    def __init__(
        self,
        repository: AccountStore,
        credentials: CredentialManager,
        tokens: TokenIssuer,
    ) -> None:
        """Store dependencies used to orchestrate persistence and token issuance."""
        self._repository = repository
        self._credentials = credentials
        self._tokens = tokens

    def register(self, payload: RegisterInput) -> tuple[Account, dict[str, Any]]:
        """Create an account and return it with a fresh session envelope."""
        email = payload.email.strip().lower()
        if self._repository.find_by_username(payload.username) is not None:
            raise PersistenceConflict("username")
        if self._repository.find_by_email(email) is not None:
            raise PersistenceConflict("email")

        account = Account(
            account_id=str(uuid.uuid4()),
            username=payload.username,
            email=email,
            first_name=payload.first_name or "",
            last_name=payload.last_name or "",
        )
        account.set_password(payload.password)
        account = self._repository.create_account(account)
        logger.info("registered account %s", account.account_id)
        return account, self._tokens.build_session_payload(account, REGISTERED_MESSAGE)

    def login(self, payload: LoginInput) -> dict[str, Any]:
        """Verify credentials and return the session envelope.

        A wrong password and an unknown login are indistinguishable to the
        caller; a corrupt stored digest propagates as
        :class:`CredentialComparisonFailure`.
        """
        account = self._repository.find_by_login(payload.login.strip())
        if account is None:
            raise ValueError("invalid credentials")
        if not self._credentials.verify(payload.password, account.password_hash):
            logger.info("password mismatch for account %s", account.account_id)
            raise ValueError("invalid credentials")
        return self._tokens.build_session_payload(account, LOGIN_MESSAGE)

    def refresh_session(self, payload: RefreshInput) -> dict[str, Any]:
        """Exchange a previously issued token for a new access/refresh pair."""
        try:
            claims = self._tokens.decode(payload.refresh_token)
        except jwt.PyJWTError as exc:
            raise ValueError("invalid token") from exc
        account = self._repository.get_account(claims["id"])
        if account is None:
            raise ValueError("invalid token")
        return self._tokens.build_session_payload(account, REFRESHED_MESSAGE)

    def authenticate(self, access_token: str) -> str:
        """Return the account id an access token was issued to."""
        try:
            claims = self._tokens.decode(access_token)
        except jwt.PyJWTError as exc:
            raise ValueError("invalid token") from exc
        return str(claims["id"])

    def get_account(self, account_id: str) -> Account | None:
        return self._repository.get_account(account_id)

    def update_account(self, account_id: str, payload: UpdateAccountInput) -> Account:
        """Apply a partial profile update.

        Only an explicitly supplied password is re-hashed; editing any other
        field keeps the stored digest as it is.
        """
        account = self._repository.get_account(account_id)
        if account is None:
            raise ValueError("account not found")

        if payload.email is not None:
            email = payload.email.strip().lower()
            owner = self._repository.find_by_email(email)
            if owner is not None and owner.account_id != account.account_id:
                raise PersistenceConflict("email")
            account.email = email
        if payload.first_name is not None:
            account.first_name = payload.first_name
        if payload.last_name is not None:
            account.last_name = payload.last_name
        if payload.password is not None:
            account.set_password(payload.password)

        return self._repository.save_account(account)

    def request_password_reset(self, email: str) -> tuple[Account, str] | None:
        """Issue and persist a reset token for the account owning ``email``.

        Returns ``None`` when no account owns the email. Delivering the token
        to the user is left to the caller.
        """
        account = self._repository.find_by_email(email.strip().lower())
        if account is None:
            logger.info("password reset requested for unknown email")
            return None
        token, expires_at = self._credentials.issue_reset_token(account)
        account = self._repository.save_account(account)
        logger.info("reset token issued for account %s, expires %s", account.account_id, expires_at.isoformat())
        return account, token

    def reset_password(self, payload: ResetPasswordInput) -> Account:
        """Consume a reset token and stage the new password."""
        account = self._repository.find_by_reset_token(payload.token)
        if account is None:
            raise ValueError("invalid reset token")
        if self._credentials.reset_token_expired(account):
            account.clear_reset_token()
            self._repository.save_account(account)
            raise ValueError("reset token expired")

        account.set_password(payload.password)
        account.clear_reset_token()
        return self._repository.save_account(account)
