"""Error taxonomy and the handlers that turn it into JSON responses.

Every error leaves the API as ``{"error": <message>}`` plus ``details`` for
per-field validation failures. Nothing here is retried.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: list[dict[str, str]] | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class AuthenticationFailure(AppError):
    # Same message for unknown email and wrong password
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"


class AuthorizationFailure(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Insufficient role"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "Conflict"


class UpstreamError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Upstream service failed"


def _error_message(error: dict[str, Any]) -> str:
    # Custom validators raise ValueError; pydantic prefixes those with "Value error, "
    if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    return error.get("msg", "Invalid value")


def validation_details(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``[{"path": ..., "message": ...}]``.

    The leading "body" location segment is dropped so paths match field names.
    """
    details = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append({"path": ".".join(loc), "message": _error_message(error)})
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationFailed(details=validation_details(list(exc.errors())))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
