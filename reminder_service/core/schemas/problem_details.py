"""RFC 7807 Problem Details schema for error responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    404: "Not Found",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def default_title(status_code: int) -> str:
    """Standard title for an HTTP status code."""
    return DEFAULT_TITLES.get(status_code, "Error")


class ProblemDetails(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See: https://datatracker.ietf.org/doc/html/rfc7807

    Example:
            return JSONResponse(
            status_code=401,
            content=ProblemDetails(
                type="unauthorized",
                title="Unauthorized",
                status=401,
                detail="Invalid sweep secret",
                instance="/api/v1/reminders/process"
            ).model_dump(exclude_none=True)
        )
    """

    type: str = Field(
        default="about:blank",
        min_length=1,
        max_length=200,
        description="URI reference identifying the problem type",
    )
    title: str = Field(
        min_length=1, max_length=200, description="Short, human-readable summary of the problem"
    )
    status: int = Field(ge=100, le=599, description="HTTP status code")
    detail: str | None = Field(
        default=None,
        max_length=2000,
        description="Human-readable explanation specific to this occurrence",
    )
    instance: str | None = Field(
        default=None,
        max_length=500,
        description="URI reference identifying the specific occurrence",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "unauthorized",
                "title": "Unauthorized",
                "status": 401,
                "detail": "Invalid sweep secret",
                "instance": "/api/v1/reminders/process",
            }
        },
        str_strip_whitespace=True,
    )


class FieldError(BaseModel):
    """One failed field of a request body or query."""

    field: str
    message: str
    type: str
    value: Any = None


class ValidationProblemDetails(ProblemDetails):
    """Problem details carrying field-level validation errors."""

    errors: list[FieldError] = Field(default_factory=list)
