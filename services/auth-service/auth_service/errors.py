"""Exception taxonomy shared by the validation, credential, and persistence layers."""

from __future__ import annotations

from typing import Any

VALIDATION_FAILED_MESSAGE = "Input data validation failed"
NO_INPUTS_RECEIVED = "No inputs received"


class ValidationFailed(Exception):
    """Inbound payload was rejected before reaching business logic.

    ``errors`` is either a field → message mapping or a list holding a single
    synthetic message; both are rendered verbatim into the 400 envelope.
    """

    def __init__(self, message: str, errors: dict[str, str] | list[str]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_response(self) -> dict[str, Any]:
        return {"data": {"message": self.message, "errors": self.errors}}


class EmptyInput(ValidationFailed):
    """No payload at all."""

    def __init__(self) -> None:
        super().__init__(VALIDATION_FAILED_MESSAGE, [NO_INPUTS_RECEIVED])


class ConstraintViolation(ValidationFailed):
    """One or more fields failed their declared constraints."""

    def __init__(self, report: dict[str, str]) -> None:
        super().__init__(VALIDATION_FAILED_MESSAGE, dict(report))

    @property
    def report(self) -> dict[str, str]:
        return self.errors  # type: ignore[return-value]


class CredentialComparisonFailure(RuntimeError):
    """The password comparison itself errored, e.g. a corrupt stored digest."""


class PersistenceConflict(Exception):
    """A uniqueness constraint rejected the write."""

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field} already in use")
        self.field = field
