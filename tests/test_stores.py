"""
Tests for the SQL-backed schedule and run-history stores.
"""
import uuid

import pytest

from app.jobs.definitions import JobType

from tests.helpers import insert_schedule


class TestSqlScheduleStore:

    async def test_list_by_type_and_delete(self, schedule_store):
        first = await insert_schedule(schedule_store, JobType.ORDER_SYNC)
        second = await insert_schedule(schedule_store, JobType.ORDER_SYNC)
        await insert_schedule(schedule_store, JobType.CUSTOMER_SYNC)

        assert [s.id for s in await schedule_store.list_by_type("order_sync")] == [first.id, second.id]

        assert await schedule_store.delete(second.id) is True
        assert await schedule_store.delete(second.id) is False
        assert await schedule_store.delete("not-a-uuid") is False
        assert len(await schedule_store.list()) == 2

    async def test_update_unknown_returns_none(self, schedule_store):
        assert await schedule_store.update(uuid.uuid4(), {"is_active": True}) is None
        assert await schedule_store.get("not-a-uuid") is None

    async def test_batch_is_all_or_nothing(self, schedule_store):
        existing = await insert_schedule(schedule_store, JobType.ORDER_SYNC, interval_minutes=15)

        with pytest.raises(LookupError):
            await schedule_store.apply_batch(
                inserts=[{"job_type": "inventory_sync", "interval_minutes": 30}],
                updates=[(existing.id, {"interval_minutes": 1}), (uuid.uuid4(), {"is_active": True})],
            )

        schedules = await schedule_store.list()
        assert [s.job_type for s in schedules] == ["order_sync"]
        assert schedules[0].interval_minutes == 15

    async def test_batch_applies_everything(self, schedule_store):
        keep = await insert_schedule(schedule_store, JobType.ORDER_SYNC)
        drop = await insert_schedule(schedule_store, JobType.ORDER_SYNC)

        await schedule_store.apply_batch(
            inserts=[{"job_type": "pos_order_sync", "interval_minutes": 2, "priority": "critical"}],
            updates=[(keep.id, {"is_active": True})],
            deletes=[drop.id],
        )

        schedules = {s.job_type: s for s in await schedule_store.list()}
        assert set(schedules) == {"order_sync", "pos_order_sync"}
        assert schedules["order_sync"].is_active is True
        assert schedules["pos_order_sync"].priority == "critical"


class TestSqlRunHistoryStore:

    async def test_patch_ignores_terminal_records(self, run_store):
        record_id = await run_store.append({"job_type": "order_sync", "status": "running"})
        await run_store.patch(record_id, {"status": "completed", "records_processed": 3})
        await run_store.patch(record_id, {"status": "failed", "error": "late"})

        [record] = await run_store.query()
        assert record.status == "completed"
        assert record.records_processed == 3
        assert record.error is None

    async def test_patch_unknown_record_is_dropped(self, run_store):
        await run_store.patch(uuid.uuid4(), {"status": "completed"})
        assert await run_store.query() == []

    async def test_query_newest_first_with_limit(self, run_store):
        for job_type in ("order_sync", "customer_sync", "inventory_sync"):
            await run_store.append({"job_type": job_type, "status": "running"})

        records = await run_store.query(limit=2)

        assert [r.job_type for r in records] == ["inventory_sync", "customer_sync"]
