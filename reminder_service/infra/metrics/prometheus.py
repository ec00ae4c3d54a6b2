"""Prometheus metrics for the reminder engine."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram

# Custom registry so /metrics only exposes what this service defines
REGISTRY = CollectorRegistry()

SWEEP_DURATION_BUCKETS = (
    0.01,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
)

reminders_scheduled_total = Counter(
    "reminders_scheduled_total",
    "Reminders created in pending state",
    registry=REGISTRY,
)

reminders_canceled_total = Counter(
    "reminders_canceled_total",
    "Reminders moved to canceled",
    ["source"],  # canceller | sweep
    registry=REGISTRY,
)

reminder_deliveries_total = Counter(
    "reminder_deliveries_total",
    "Reminder delivery attempts by outcome",
    ["status"],  # sent | failed | skipped | timed_out
    registry=REGISTRY,
)

reminder_sweep_duration_seconds = Histogram(
    "reminder_sweep_duration_seconds",
    "Duration of a due-reminder sweep in seconds",
    buckets=SWEEP_DURATION_BUCKETS,
    registry=REGISTRY,
)
