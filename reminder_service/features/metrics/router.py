"""Prometheus metrics endpoint.

Endpoints:
    GET /metrics - Prometheus scrape endpoint

Metrics Exposed:
    - reminders_scheduled_total - Reminders created in pending state
    - reminders_canceled_total{source} - Cancellations by the canceller or the sweep
    - reminder_deliveries_total{status} - Sweep outcomes (sent, failed, skipped, timed_out)
    - reminder_sweep_duration_seconds - Sweep latency histogram

Example Prometheus Configuration:
    ```yaml
    scrape_configs:
      - job_name: 'reminder-service'
        static_configs:
          - targets: ['localhost:8000']
        metrics_path: '/metrics'
        scrape_interval: 15s
    ```
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from reminder_service.infra.metrics import REGISTRY, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics")
async def metrics() -> Response:
    """Expose the service registry in Prometheus text format."""
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
