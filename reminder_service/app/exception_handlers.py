"""Global exception handlers for FastAPI application."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from reminder_service.core.database import NotFoundError, StorageError
from reminder_service.core.exceptions import AppException
from reminder_service.core.schemas.problem_details import (
    FieldError,
    ProblemDetails,
    ValidationProblemDetails,
    default_title,
)

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


def _create_problem_detail(
    status_code: int,
    detail: str,
    type_: str = "about:blank",
    title: str | None = None,
    instance: str | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create RFC 7807 Problem Details response.

    Args:
        status_code: HTTP status code.
        detail: Human-readable error description.
        type_: Error type identifier.
        title: Short human-readable summary.
        instance: URI identifying this occurrence.
        extra: Additional context information.

    Returns:
        Dictionary representing the problem detail.
    """
    problem = ProblemDetails(
        type=type_,
        title=title or default_title(status_code),
        status=status_code,
        detail=detail,
        instance=instance,
    )

    response_data = problem.model_dump(exclude_none=True)
    if extra:
        response_data.update(extra)

    return response_data


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert ``AppException`` into an RFC 7807 response."""
    logger.warning(
        "Application exception occurred",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": exc.type,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )

    problem_data = _create_problem_detail(
        status_code=exc.status_code,
        detail=exc.detail,
        type_=exc.type,
        title=exc.title,
        instance=exc.instance or request.url.path,
        extra=exc.extra,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None

    return JSONResponse(
        status_code=exc.status_code,
        content=problem_data,
        headers=headers,
        media_type=PROBLEM_JSON,
    )


async def not_found_exception_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Repository ``NotFoundError`` becomes a 404."""
    problem_data = _create_problem_detail(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=exc.message,
        type_="not-found",
        instance=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=problem_data,
        media_type=PROBLEM_JSON,
    )


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Persistence failures become a 503; the caller may retry later."""
    logger.error(
        "Storage unavailable",
        extra={
            "path": request.url.path,
            "method": request.method,
            "operation": exc.operation,
        },
    )
    problem_data = _create_problem_detail(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Storage is temporarily unavailable",
        type_="service-unavailable",
        instance=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=problem_data,
        headers={"Retry-After": "30"},
        media_type=PROBLEM_JSON,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert request validation errors into RFC 7807 with field details."""
    validation_errors = [
        FieldError(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            type=error["type"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(validation_errors),
        },
    )

    problem = ValidationProblemDetails(
        type="validation-error",
        title="Validation Error",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Request validation failed for {len(validation_errors)} field(s)",
        instance=request.url.path,
        errors=validation_errors,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=problem.model_dump(mode="json", exclude_none=True),
        media_type=PROBLEM_JSON,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log the traceback, return a generic 500."""
    logger.error(
        "Unexpected exception occurred",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
        exc_info=exc,
    )

    problem_data = _create_problem_detail(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred while processing your request",
        type_="internal-error",
        title="Internal Server Error",
        instance=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=problem_data,
        media_type=PROBLEM_JSON,
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """Register the handlers that turn exceptions into problem details.

    Example:
            app = FastAPI()
        configure_exception_handlers(app)
    """
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(NotFoundError, not_found_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StorageError, storage_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.debug("Exception handlers configured")
