"""Reminder delivery collaborators.

The sweep decides that and when a reminder goes out; a notifier decides
how. Notifiers implement ``ReminderNotifier.send`` and report the outcome
as a ``NotificationResult``. Raising is allowed too: the sweep records any
exception as a failed delivery.

Usage:
    notifier = get_notifier()
    result = await notifier.send(
        to="ada@example.com",
        task_title="File taxes",
        deadline_at=deadline,
        notes=None,
        tags=["finance"],
        interval_label="1 week before deadline",
    )
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from reminder_service.core.settings.reminders import ReminderSettings

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"
NOT_CONFIGURED_ERROR = "Email provider not configured"


class DeliveryError(Exception):
    """A notifier could not deliver a reminder.

    The bundled notifiers report failures through ``NotificationResult``;
    this is for provider-backed notifiers that prefer to raise. The sweep
    records it like any other notifier exception, as a failed delivery.
    """


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one delivery attempt.

    Attributes:
        success: Whether delivery succeeded
        message_id: Provider-assigned message ID (for tracking)
        error: Error message if failed
    """

    success: bool
    message_id: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        """Failed results always carry an error message."""
        if not self.success and not self.error:
            object.__setattr__(self, "error", UNKNOWN_ERROR)

    @classmethod
    def success_result(cls, message_id: str | None) -> NotificationResult:
        """Create a successful delivery result."""
        return cls(success=True, message_id=message_id)

    @classmethod
    def failure_result(cls, error: str) -> NotificationResult:
        """Create a failed delivery result."""
        return cls(success=False, error=error)


@dataclass(frozen=True)
class ReminderMessage:
    """Rendered reminder email."""

    to: str
    subject: str
    body: str


@runtime_checkable
class ReminderNotifier(Protocol):
    """Delivery contract used by the due-reminder sweep."""

    async def send(
        self,
        *,
        to: str,
        task_title: str,
        deadline_at: datetime,
        notes: str | None,
        tags: Sequence[str],
        interval_label: str,
    ) -> NotificationResult:
        """Deliver one reminder."""
        ...


def format_deadline(deadline_at: datetime) -> str:
    """Long-form date, e.g. ``Friday, March 6, 2026``."""
    return f"{deadline_at:%A, %B} {deadline_at.day}, {deadline_at.year}"


def render_reminder_message(
    *,
    to: str,
    task_title: str,
    deadline_at: datetime,
    notes: str | None,
    tags: Sequence[str],
    interval_label: str,
) -> ReminderMessage:
    """Build the subject and plain-text body of a reminder."""
    tags_line = ", ".join(tags) if tags else "None"
    lines = [
        f"Task Reminder: {task_title}",
        "",
        f"Deadline: {format_deadline(deadline_at)}",
    ]
    if notes:
        lines.append(f"Notes: {notes}")
    lines.extend(
        [
            f"Tags: {tags_line}",
            "",
            f"This is a {interval_label} reminder.",
            "Please ensure this task is completed by the deadline.",
        ]
    )
    return ReminderMessage(
        to=to,
        subject=f"Reminder: {task_title} - {interval_label}",
        body="\n".join(lines),
    )


class ConsoleNotifier:
    """Development notifier that logs reminders instead of sending them.

    Always succeeds and returns a ``console-<uuid>`` message id.
    """

    provider_name = "console"

    async def send(
        self,
        *,
        to: str,
        task_title: str,
        deadline_at: datetime,
        notes: str | None,
        tags: Sequence[str],
        interval_label: str,
    ) -> NotificationResult:
        """Log the rendered reminder."""
        message = render_reminder_message(
            to=to,
            task_title=task_title,
            deadline_at=deadline_at,
            notes=notes,
            tags=tags,
            interval_label=interval_label,
        )
        message_id = f"console-{uuid.uuid4()}"
        logger.info(
            "Reminder email (console)",
            extra={
                "to": message.to,
                "subject": message.subject,
                "body": message.body,
                "message_id": message_id,
            },
        )
        return NotificationResult.success_result(message_id)


class DisabledNotifier:
    """Notifier used when no delivery provider is configured.

    Every attempt fails, so reminders end up ``failed`` with a clear error
    rather than silently marked as sent.
    """

    provider_name = "disabled"

    async def send(
        self,
        *,
        to: str,
        task_title: str,
        deadline_at: datetime,
        notes: str | None,
        tags: Sequence[str],
        interval_label: str,
    ) -> NotificationResult:
        """Refuse delivery."""
        _ = to, task_title, deadline_at, notes, tags, interval_label
        return NotificationResult.failure_result(NOT_CONFIGURED_ERROR)


def get_notifier(settings: ReminderSettings | None = None) -> ReminderNotifier:
    """Build the notifier selected by ``REMINDER_NOTIFIER_BACKEND``."""
    if settings is None:
        from reminder_service.core.settings import get_reminder_settings

        settings = get_reminder_settings()

    if settings.notifier_backend == "console":
        return ConsoleNotifier()
    return DisabledNotifier()


__all__ = [
    "NOT_CONFIGURED_ERROR",
    "UNKNOWN_ERROR",
    "ConsoleNotifier",
    "DeliveryError",
    "DisabledNotifier",
    "NotificationResult",
    "ReminderMessage",
    "ReminderNotifier",
    "format_deadline",
    "get_notifier",
    "render_reminder_message",
]
