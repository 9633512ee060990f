"""
Custom HTTP exceptions and global exception handlers for TaskShare.
All application-level errors are defined here for consistency.
Every error body uses the {success, message, errors?} envelope.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ── Custom exception classes ──────────────────────────────────────────────────

class TaskShareException(Exception):
    """Base exception for all TaskShare domain errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        errors: list[dict[str, str]] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.errors = errors
        super().__init__(detail)


class NotFoundException(TaskShareException):
    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedException(TaskShareException):
    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class InvalidTokenException(UnauthorizedException):
    def __init__(self, detail: str = "Invalid or expired token") -> None:
        super().__init__(detail)


class AccessDeniedException(TaskShareException):
    def __init__(self, detail: str = "You do not have permission to perform this action") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictException(TaskShareException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ValidationException(TaskShareException):
    """Domain validation failure reported against a public (camelCase) field name."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Validation failed",
            errors=[{"field": field, "message": message}],
        )

    @property
    def fields(self) -> list[str]:
        return [error["field"] for error in self.errors or []]


# ── Exception handlers ────────────────────────────────────────────────────────

def _error_response(
    status_code: int,
    message: str,
    errors: list[dict[str, str]] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


async def taskshare_exception_handler(
    request: Request, exc: TaskShareException
) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, exc.errors)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        # Drop the "body"/"query"/"path" prefix so clients see the field name only
        loc = error["loc"][1:] if len(error["loc"]) > 1 else error["loc"]
        field = ".".join(str(part) for part in loc)
        message = str(error["msg"]).removeprefix("Value error, ")
        errors.append({"field": field, "message": message})
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation failed", errors
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected internal server error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI application."""
    app.add_exception_handler(TaskShareException, taskshare_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
