"""Declarative field constraints and the validation target shape."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from email_validator import EmailNotValidError, validate_email

Check = Callable[[Any], bool]


@dataclass(frozen=True, slots=True)
class Constraint:
    """A predicate over a single field value plus the message reported when it fails."""

    check: Check
    message: str


@dataclass(frozen=True, slots=True)
class ValidationTarget:
    """Named shape with an ordered rule table per field.

    ``shape`` is either a dataclass type the payload is coerced into, or one of
    the primitive kinds (``str``, ``dict``, ...) which opt out of validation.
    """

    name: str
    shape: type
    rules: Mapping[str, Sequence[Constraint]] = field(default_factory=dict)
    optional: frozenset[str] = frozenset()


def not_empty(label: str) -> Constraint:
    def check(value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        return value != [] and value != {}

    return Constraint(check, f"{label} should not be empty")


def is_string(label: str) -> Constraint:
    return Constraint(lambda value: isinstance(value, str), f"{label} must be a string")


def is_email(label: str = "email") -> Constraint:
    def check(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            return False
        return True

    return Constraint(check, f"{label} must be an email")


def min_length(label: str, length: int) -> Constraint:
    return Constraint(
        lambda value: isinstance(value, str) and len(value) >= length,
        f"{label} must be longer than or equal to {length} characters",
    )


def max_length(label: str, length: int) -> Constraint:
    return Constraint(
        lambda value: isinstance(value, str) and len(value) <= length,
        f"{label} must be shorter than or equal to {length} characters",
    )


def max_bytes(label: str, length: int) -> Constraint:
    return Constraint(
        lambda value: isinstance(value, str) and len(value.encode("utf-8")) <= length,
        f"{label} must be at most {length} bytes long",
    )


def matches(pattern: str, message: str) -> Constraint:
    compiled = re.compile(pattern)
    return Constraint(
        lambda value: isinstance(value, str) and compiled.fullmatch(value) is not None,
        message,
    )


def is_hex(label: str, length: int) -> Constraint:
    return matches(
        rf"[0-9a-f]{{{length}}}",
        f"{label} must be a {length} character hexadecimal string",
    )
