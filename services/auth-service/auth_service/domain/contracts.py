"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass

from ..validation.rules import (
    ValidationTarget,
    is_email,
    is_hex,
    is_string,
    matches,
    max_bytes,
    max_length,
    min_length,
    not_empty,
)

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_BYTES = 72
RESET_TOKEN_HEX_LENGTH = 40


@dataclass(slots=True)
class RegisterInput:
    """Validated inputs required to open an account."""

    username: str
    email: str
    password: str
    first_name: str = ""
    last_name: str = ""


@dataclass(slots=True)
class LoginInput:
    login: str
    password: str


@dataclass(slots=True)
class UpdateAccountInput:
    """Partial profile update; ``None`` means leave the field alone."""

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    password: str | None = None


@dataclass(slots=True)
class ForgotPasswordInput:
    email: str


@dataclass(slots=True)
class ResetPasswordInput:
    token: str
    password: str


@dataclass(slots=True)
class RefreshInput:
    refresh_token: str


def _password_rules(label: str = "password"):
    return [
        is_string(label),
        min_length(label, PASSWORD_MIN_LENGTH),
        max_bytes(label, PASSWORD_MAX_BYTES),
        not_empty(label),
    ]


def _name_rules(label: str):
    return [is_string(label), max_length(label, 100)]


REGISTER_TARGET = ValidationTarget(
    name="RegisterInput",
    shape=RegisterInput,
    rules={
        "username": [
            is_string("username"),
            matches(r"[A-Za-z0-9_.-]{3,50}", "username must be 3-50 letters, digits, dots, dashes or underscores"),
            not_empty("username"),
        ],
        "email": [is_email("email"), not_empty("email")],
        "password": _password_rules(),
        "first_name": _name_rules("first_name"),
        "last_name": _name_rules("last_name"),
    },
    optional=frozenset({"first_name", "last_name"}),
)

LOGIN_TARGET = ValidationTarget(
    name="LoginInput",
    shape=LoginInput,
    rules={
        "login": [is_string("login"), not_empty("login")],
        "password": [is_string("password"), max_bytes("password", PASSWORD_MAX_BYTES), not_empty("password")],
    },
)

UPDATE_ACCOUNT_TARGET = ValidationTarget(
    name="UpdateAccountInput",
    shape=UpdateAccountInput,
    rules={
        "email": [is_email("email")],
        "first_name": _name_rules("first_name"),
        "last_name": _name_rules("last_name"),
        "password": _password_rules(),
    },
    optional=frozenset({"email", "first_name", "last_name", "password"}),
)

FORGOT_PASSWORD_TARGET = ValidationTarget(
    name="ForgotPasswordInput",
    shape=ForgotPasswordInput,
    rules={"email": [is_email("email"), not_empty("email")]},
)

RESET_PASSWORD_TARGET = ValidationTarget(
    name="ResetPasswordInput",
    shape=ResetPasswordInput,
    rules={
        "token": [is_hex("token", RESET_TOKEN_HEX_LENGTH), not_empty("token")],
        "password": _password_rules(),
    },
)

REFRESH_TARGET = ValidationTarget(
    name="RefreshInput",
    shape=RefreshInput,
    rules={"refresh_token": [is_string("refresh_token"), not_empty("refresh_token")]},
)
