"""Shared-secret check for the sweep trigger."""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from reminder_service.core.exceptions import UnauthorizedException

if TYPE_CHECKING:
    from reminder_service.core.settings.reminders import ReminderSettings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def verify_sweep_authorization(authorization: str | None, settings: ReminderSettings) -> None:
    """Require ``Authorization: Bearer <REMINDER_SWEEP_SECRET>``.

    Fails closed: with no secret configured every trigger is rejected.
    The token comparison is constant-time.

    Raises:
        UnauthorizedException: If the header is missing or wrong, or no
            secret is configured.
    """
    if not settings.is_sweep_secret_configured:
        logger.warning(
            "Sweep trigger rejected: no sweep secret configured",
            extra={"operation": "reminders.authorize"},
        )
        raise UnauthorizedException(
            detail="Reminder sweep is not configured",
            extra={"auth_method": "bearer"},
        )

    if not authorization or not authorization[: len(BEARER_PREFIX)].lower() == BEARER_PREFIX:
        raise UnauthorizedException(
            detail="Missing bearer token",
            extra={"auth_method": "bearer"},
        )

    token = authorization[len(BEARER_PREFIX) :].strip()
    expected = settings.sweep_secret.get_secret_value()  # type: ignore[union-attr]
    if not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning(
            "Sweep trigger rejected: invalid secret",
            extra={"operation": "reminders.authorize"},
        )
        raise UnauthorizedException(
            detail="Invalid sweep secret",
            extra={"auth_method": "bearer"},
        )
