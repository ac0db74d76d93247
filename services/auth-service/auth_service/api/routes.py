"""HTTP route definitions for the auth service."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth_schemas import AccountProfile, MessageEnvelope

from ..config import get_settings
from ..domain.contracts import (
    FORGOT_PASSWORD_TARGET,
    LOGIN_TARGET,
    REFRESH_TARGET,
    REGISTER_TARGET,
    RESET_PASSWORD_TARGET,
    UPDATE_ACCOUNT_TARGET,
    ForgotPasswordInput,
    LoginInput,
    RefreshInput,
    RegisterInput,
    ResetPasswordInput,
    UpdateAccountInput,
)
from ..domain.service import AccountService
from ..security.rate_limiter import SlidingWindowRateLimiter
from ..security.redis_rate_limiter import RedisSlidingWindowRateLimiter
from ..validation.gate import validated

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

settings = get_settings()


def _build_rate_limiter() -> SlidingWindowRateLimiter | RedisSlidingWindowRateLimiter:
    """Instantiate the configured rate limiter backend, preferring Redis when available."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        import redis

        try:
            client = redis.from_url(settings.redis_url)
            # ensure connectivity early to fail fast and fall back
            client.ping()
            logger.info("rate limiter configured for redis backend")
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        except (redis.RedisError, ValueError) as exc:
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


rate_limiter = _build_rate_limiter()


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


bearer = HTTPBearer(auto_error=False)


def require_owner(
    account_id: str,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    service: AccountService = Depends(get_service),
) -> str:
    """Allow the request only when its access token belongs to ``account_id``."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="missing token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        subject = service.authenticate(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    if subject != account_id:
        logger.warning("account %s denied access to account %s", subject, account_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
    return subject


def _throttle(scope: str, subject: str) -> str:
    """Count an attempt against ``subject`` and return its limiter key."""
    digest = hashlib.sha256(subject.strip().lower().encode("utf-8")).hexdigest()[:16]
    key = f"{scope}:{digest}"
    if not rate_limiter.allow(key):
        logger.warning("rate limited %s request", scope)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="rate limited",
            headers={"Retry-After": str(rate_limiter.retry_after(key))},
        )
    return key


# Endpoints are plain ``def`` so the blocking bcrypt work runs on the worker thread pool.


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterInput = validated(REGISTER_TARGET),
    service: AccountService = Depends(get_service),
) -> dict[str, Any]:
    """Open an account and return its first session tokens."""
    _, session = service.register(payload)
    return session


@router.post("/auth/login")
def login(
    payload: LoginInput = validated(LOGIN_TARGET),
    service: AccountService = Depends(get_service),
) -> dict[str, Any]:
    """Verify a username/email and password pair."""
    throttle_key = _throttle("login", payload.login)
    try:
        session = service.login(payload)
    except ValueError as exc:
        raise _http_error_from_value_error(exc) from exc
    rate_limiter.reset(throttle_key)
    return session


@router.post("/auth/refresh")
def refresh(
    payload: RefreshInput = validated(REFRESH_TARGET),
    service: AccountService = Depends(get_service),
) -> dict[str, Any]:
    try:
        return service.refresh_session(payload)
    except ValueError as exc:
        raise _http_error_from_value_error(exc) from exc


@router.post("/auth/forgot-password", status_code=status.HTTP_202_ACCEPTED)
def forgot_password(
    payload: ForgotPasswordInput = validated(FORGOT_PASSWORD_TARGET),
    service: AccountService = Depends(get_service),
) -> dict[str, Any]:
    """Issue a password-reset token for the account owning the email."""
    _throttle("reset", payload.email)
    service.request_password_reset(payload.email)
    return MessageEnvelope.build("Password reset requested").model_dump()


@router.post("/auth/reset-password")
def reset_password(
    payload: ResetPasswordInput = validated(RESET_PASSWORD_TARGET),
    service: AccountService = Depends(get_service),
) -> dict[str, Any]:
    try:
        service.reset_password(payload)
    except ValueError as exc:
        raise _http_error_from_value_error(exc) from exc
    return MessageEnvelope.build("Password updated").model_dump()


@router.get("/accounts/{account_id}", response_model=AccountProfile)
def get_account(
    account_id: str = Depends(require_owner),
    service: AccountService = Depends(get_service),
) -> AccountProfile:
    """Return the public profile of an account."""
    account = service.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    return AccountProfile.model_validate(account)


@router.patch("/accounts/{account_id}", response_model=AccountProfile)
def update_account(
    account_id: str = Depends(require_owner),
    payload: UpdateAccountInput = validated(UPDATE_ACCOUNT_TARGET),
    service: AccountService = Depends(get_service),
) -> AccountProfile:
    try:
        account = service.update_account(account_id, payload)
    except ValueError as exc:
        raise _http_error_from_value_error(exc) from exc
    return AccountProfile.model_validate(account)


def _http_error_from_value_error(exc: ValueError) -> HTTPException:
    message = str(exc).lower()
    status_code = status.HTTP_400_BAD_REQUEST
    if "not found" in message:
        status_code = status.HTTP_404_NOT_FOUND
    elif message in {"invalid credentials", "invalid token"}:
        status_code = status.HTTP_401_UNAUTHORIZED
    return HTTPException(status_code=status_code, detail=str(exc))
