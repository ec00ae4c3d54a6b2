"""Helpers to sanitize environment variable values before validation."""

from __future__ import annotations

from typing import Any


def strip_inline_comment(value: str) -> str:
    """Remove inline comments of the form "value  # comment".

    Some env-file parsers keep inline comments, so values like
    ``300  # 5 minutes`` show up in the process environment. The comment
    is only stripped when the ``#`` follows whitespace, so ``foo#bar``
    stays intact.
    """

    idx = value.find("#")
    if idx == -1:
        return value.strip()
    if idx == 0:
        return ""  # comment-only string
    if not value[idx - 1].isspace():
        return value.strip()
    return value[:idx].strip()


def sanitize_inline_numeric(value: Any) -> Any:
    """Normalize numeric env vars that may include inline comments."""

    if isinstance(value, str):
        cleaned = strip_inline_comment(value)
        if cleaned:
            return cleaned
    return value
