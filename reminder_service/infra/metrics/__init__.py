"""Metrics infrastructure."""

from __future__ import annotations

from prometheus_client import generate_latest

from .prometheus import (
    REGISTRY,
    reminder_deliveries_total,
    reminder_sweep_duration_seconds,
    reminders_canceled_total,
    reminders_scheduled_total,
)

__all__ = [
    "REGISTRY",
    "generate_latest",
    "reminder_deliveries_total",
    "reminder_sweep_duration_seconds",
    "reminders_canceled_total",
    "reminders_scheduled_total",
]
