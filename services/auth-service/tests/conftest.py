from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from auth_service.api import routes
from auth_service.api.error_handlers import register_error_handlers
from auth_service.domain.account import Account
from auth_service.domain.service import AccountService
from auth_service.errors import PersistenceConflict
from auth_service.security.passwords import CredentialManager
from auth_service.security.rate_limiter import SlidingWindowRateLimiter
from auth_service.security.tokens import TokenIssuer

TEST_SECRET = "test-secret"
ACCESS_TTL = 300
REFRESH_TTL = 3600
RESET_TTL = 600


class FakeClock:
    """Controllable UTC clock for reset-token expiry."""

    def __init__(self) -> None:
        self.current = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += timedelta(seconds=seconds)


class FakeRepository:
    """In-memory repository mimicking the Postgres-backed behaviors."""

    def __init__(self, credentials: CredentialManager) -> None:
        self._credentials = credentials
        self.accounts: dict[str, Account] = {}

    def _check_unique(self, account: Account) -> None:
        for other in self.accounts.values():
            if other.account_id == account.account_id:
                continue
            if other.username == account.username:
                raise PersistenceConflict("username")
            if other.email.lower() == account.email.lower():
                raise PersistenceConflict("email")

    def create_account(self, account: Account) -> Account:
        self._credentials.prepare_for_write(account)
        self._check_unique(account)
        now = datetime.now(timezone.utc)
        stored = replace(account, created_at=now, updated_at=now)
        self.accounts[stored.account_id] = stored
        return replace(stored)

    def save_account(self, account: Account) -> Account:
        if account.account_id not in self.accounts:
            raise ValueError("account not found")
        self._credentials.prepare_for_write(account)
        self._check_unique(account)
        stored = replace(account, updated_at=datetime.now(timezone.utc))
        self.accounts[stored.account_id] = stored
        return replace(stored)

    def _first(self, predicate) -> Account | None:
        for account in self.accounts.values():
            if predicate(account):
                return replace(account)
        return None

    def get_account(self, account_id: str) -> Account | None:
        return self._first(lambda a: a.account_id == account_id)

    def find_by_username(self, username: str) -> Account | None:
        return self._first(lambda a: a.username == username)

    def find_by_email(self, email: str) -> Account | None:
        return self._first(lambda a: a.email.lower() == email.lower())

    def find_by_login(self, login: str) -> Account | None:
        return self._first(lambda a: a.username == login or a.email.lower() == login.lower())

    def find_by_reset_token(self, token: str) -> Account | None:
        return self._first(lambda a: a.reset_token == token)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credentials(clock: FakeClock) -> CredentialManager:
    return CredentialManager(rounds=4, reset_token_ttl_seconds=RESET_TTL, clock=clock)


@pytest.fixture
def tokens() -> TokenIssuer:
    return TokenIssuer(secret=TEST_SECRET, access_ttl_seconds=ACCESS_TTL, refresh_ttl_seconds=REFRESH_TTL)


@pytest.fixture
def repository(credentials: CredentialManager) -> FakeRepository:
    return FakeRepository(credentials)


@pytest.fixture
def service(repository, credentials, tokens) -> AccountService:
    return AccountService(repository, credentials, tokens)


@pytest.fixture
def api_client(service):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(routes.router)
    app.state.account_service = service

    original_limiter = routes.rate_limiter
    routes.rate_limiter = SlidingWindowRateLimiter(max_requests=3, window_seconds=60)

    with TestClient(app) as client:
        yield client

    routes.rate_limiter = original_limiter
