"""Global exception handlers mapping core failures onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import (
    VALIDATION_FAILED_MESSAGE,
    CredentialComparisonFailure,
    PersistenceConflict,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(ValidationFailed)
    async def validation_failed_handler(request: Request, exc: ValidationFailed) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # unparseable bodies never reach the input gate
        logger.warning("malformed request on %s: %s", request.url.path, exc.errors())
        errors: dict[str, str] = {}
        for error in exc.errors():
            location = [str(part) for part in error.get("loc", ()) if part != "body"]
            errors[".".join(location) or "body"] = error.get("msg", "invalid value")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"data": {"message": VALIDATION_FAILED_MESSAGE, "errors": errors}},
        )

    @app.exception_handler(PersistenceConflict)
    async def conflict_handler(request: Request, exc: PersistenceConflict) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"data": {"message": str(exc), "errors": {exc.field: str(exc)}}},
        )

    @app.exception_handler(CredentialComparisonFailure)
    async def credential_failure_handler(request: Request, exc: CredentialComparisonFailure) -> JSONResponse:
        logger.error("credential comparison failed on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"data": {"message": "Internal server error"}},
        )
