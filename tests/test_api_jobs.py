"""
HTTP tests for /api/v1/jobs against a scheduler backed by a temporary
database.
"""
import uuid

import pytest
from httpx import AsyncClient, ASGITransport

from app.api.deps import get_scheduler
from app.jobs.definitions import JobType
from app.main import app

from tests.helpers import insert_schedule

BASE = "/api/v1/jobs"


@pytest.fixture
async def client(job_scheduler):
    await job_scheduler.initialize()
    app.dependency_overrides[get_scheduler] = lambda: job_scheduler
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def test_list_schedules(client):
    response = await client.get(f"{BASE}/schedules")

    assert response.status_code == 200
    data = response.json()
    assert len(data) == len(JobType)
    active = [s["job_type"] for s in data if s["is_active"]]
    assert active == ["customer_sync"]


async def test_run_now_then_history(client, job_scheduler):
    response = await client.post(f"{BASE}/run/Order_Sync")

    assert response.status_code == 202
    item = response.json()
    assert item["job_type"] == "order_sync"
    assert item["source"] == "manual"
    assert item["priority"] == "high"

    await job_scheduler.processor.wait_idle()
    runs = (await client.get(f"{BASE}/runs", params={"limit": 10})).json()
    assert len(runs) == 1
    assert runs[0]["status"] == "completed"
    assert runs[0]["queue_item_id"] == item["id"]


async def test_run_unknown_type(client):
    response = await client.post(f"{BASE}/run/menu_sync")
    assert response.status_code == 422


async def test_enqueue_with_priority(client, job_scheduler):
    response = await client.post(
        f"{BASE}/enqueue",
        json={"job_type": "inventory_sync", "priority": "critical", "source": "pos"},
    )

    assert response.status_code == 202
    assert response.json()["priority"] == "critical"
    assert response.json()["source"] == "pos"
    await job_scheduler.processor.wait_idle()


async def test_enqueue_rejects_bad_priority(client):
    response = await client.post(f"{BASE}/enqueue", json={"job_type": "order_sync", "priority": "urgent"})
    assert response.status_code == 422


async def test_patch_schedule(client, job_scheduler):
    schedules = (await client.get(f"{BASE}/schedules")).json()
    order = next(s for s in schedules if s["job_type"] == "order_sync")

    response = await client.patch(
        f"{BASE}/schedules/{order['id']}",
        json={"is_active": True, "interval_minutes": 20},
    )

    assert response.status_code == 200
    assert response.json()["interval_minutes"] == 20
    assert job_scheduler.timer_bank.armed()["order_sync"] == 20


async def test_patch_schedule_errors(client):
    missing = await client.patch(f"{BASE}/schedules/{uuid.uuid4()}", json={"is_active": True})
    assert missing.status_code == 404

    schedules = (await client.get(f"{BASE}/schedules")).json()
    empty = await client.patch(f"{BASE}/schedules/{schedules[0]['id']}", json={})
    assert empty.status_code == 400

    invalid = await client.patch(f"{BASE}/schedules/{schedules[0]['id']}", json={"interval_minutes": 0})
    assert invalid.status_code == 422


async def test_cleanup_and_reset(client, job_scheduler):
    await insert_schedule(job_scheduler.schedule_store, JobType.ORDER_SYNC)

    cleanup = await client.post(f"{BASE}/schedules/cleanup")
    assert cleanup.status_code == 200
    assert cleanup.json()["removed"] == 1
    assert cleanup.json()["duplicates_found"] == {"order_sync": 1}

    reset = await client.post(f"{BASE}/schedules/reset")
    assert reset.status_code == 200
    assert reset.json()["active_job_types"] == ["customer_sync"]


async def test_reset_failure_is_500(client, job_scheduler):
    async def broken(**kwargs):
        raise RuntimeError("write conflict")

    job_scheduler.schedule_store.apply_batch = broken
    response = await client.post(f"{BASE}/schedules/reset")

    assert response.status_code == 500
    assert "write conflict" in response.json()["detail"]


async def test_queue_and_automation_status(client):
    queue = await client.get(f"{BASE}/queue")
    assert queue.status_code == 200
    assert queue.json()["pending_count"] == 0
    assert queue.json()["processing"] is None

    automation = await client.get(f"{BASE}/automation")
    assert automation.status_code == 200
    body = automation.json()
    assert body["total_schedules"] == len(JobType)
    assert body["armed_timers"] == {"customer_sync": 5}
    assert body["canonical_intervals"]["online_order_sync"] == 2


async def test_queue_item_runs(client, job_scheduler):
    item = (await client.post(f"{BASE}/run/inventory_sync")).json()
    await job_scheduler.processor.wait_idle()

    response = await client.get(f"{BASE}/queue/{item['id']}/runs")

    assert response.status_code == 200
    runs = response.json()
    assert [r["status"] for r in runs] == ["completed"]
    assert runs[0]["queue_item_id"] == item["id"]

    unknown = await client.get(f"{BASE}/queue/{'0' * 32}/runs")
    assert unknown.json() == []


async def test_patch_schedule_priority_drives_timer_items(client, job_scheduler):
    schedules = (await client.get(f"{BASE}/schedules")).json()
    pos = next(s for s in schedules if s["job_type"] == "pos_order_sync")

    response = await client.patch(f"{BASE}/schedules/{pos['id']}", json={"priority": "low", "max_retries": 2})
    assert response.status_code == 200
    assert response.json()["priority"] == "low"

    await job_scheduler.timer_bank.fire(JobType.POS_ORDER_SYNC)
    await job_scheduler.processor.wait_idle()

    runs = (await client.get(f"{BASE}/runs")).json()
    assert [(r["job_type"], r["source"], r["priority"]) for r in runs] == [("pos_order_sync", "system", "low")]
