"""Integration tests for the sweep trigger and metrics endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from reminder_service.features.reminders.models import ReminderStatus

if TYPE_CHECKING:
    from httpx import AsyncClient

PROCESS_PATH = "/api/v1/reminders/process"


async def test_sweep_requires_bearer_secret(client: AsyncClient):
    """Missing credentials get a problem+json 401 with a Bearer challenge."""
    response = await client.post(PROCESS_PATH)

    assert response.status_code == 401
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.headers["www-authenticate"] == "Bearer"
    data = response.json()
    assert data["status"] == 401
    assert data["type"] == "unauthorized"
    assert data["instance"] == PROCESS_PATH


async def test_sweep_rejects_wrong_secret(client: AsyncClient):
    response = await client.post(PROCESS_PATH, headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid sweep secret"


async def test_sweep_returns_report(
    client: AsyncClient, authorization: str, notifier, user, make_task, make_reminder, reload
):
    """An authorized trigger processes due reminders and reports outcomes."""
    current = datetime.now(UTC)
    task = await make_task(user, deadline_at=current + timedelta(days=1, minutes=1))
    reminder = await make_reminder(task, scheduled_for=current + timedelta(minutes=1))

    response = await client.post(PROCESS_PATH, headers={"Authorization": authorization})

    assert response.status_code == 200
    data = response.json()
    assert data["processed"] == 1
    assert data["results"] == [
        {
            "reminder_id": str(reminder.id),
            "status": "sent",
            "reason": None,
            "message_id": "msg-1",
            "error": None,
        }
    ]
    assert len(notifier.calls) == 1
    assert (await reload(reminder.id)).status == ReminderStatus.SENT


async def test_sweep_with_nothing_due(client: AsyncClient, authorization: str):
    response = await client.post(PROCESS_PATH, headers={"Authorization": authorization})

    assert response.status_code == 200
    assert response.json()["processed"] == 0


async def test_metrics_endpoint(client: AsyncClient, authorization: str):
    await client.post(PROCESS_PATH, headers={"Authorization": authorization})

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "reminder_sweep_duration_seconds" in response.text
    assert "reminders_scheduled_total" in response.text
