"""
Tests for schedule seeding/reconciliation and the timer bank.
"""
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from app.jobs.definitions import JobType, JOB_DEFINITIONS
from app.jobs.registry import ScheduleRegistry, plan_default_schedules
from app.jobs.timer_bank import TimerBank

from tests.helpers import insert_schedule


@pytest.fixture
def fired():
    return []


@pytest.fixture
def timer_bank(aps_scheduler, fired):
    return TimerBank(aps_scheduler, fired.append)


@pytest.fixture
def registry(schedule_store, timer_bank):
    return ScheduleRegistry(schedule_store, timer_bank, default_active_type=JobType.CUSTOMER_SYNC)


class TestTimerBank:

    def test_arm_replaces_existing_timer(self, timer_bank, aps_scheduler):
        timer_bank.arm(JobType.ORDER_SYNC, 15)
        timer_bank.arm(JobType.ORDER_SYNC, 10)

        jobs = aps_scheduler.get_jobs()
        assert len(jobs) == 1
        assert jobs[0].id == TimerBank.timer_id(JobType.ORDER_SYNC)
        assert jobs[0].trigger.interval == timedelta(minutes=10)
        assert timer_bank.armed() == {"order_sync": 10}

    def test_arm_rejects_bad_interval(self, timer_bank):
        with pytest.raises(ValueError):
            timer_bank.arm(JobType.ORDER_SYNC, 0)
        assert not timer_bank.is_armed(JobType.ORDER_SYNC)

    def test_disarm_all(self, timer_bank, aps_scheduler):
        timer_bank.arm("customer_sync", 5)
        timer_bank.arm("inventory_sync", 30)

        assert timer_bank.disarm_all() == 2
        assert timer_bank.armed() == {}
        assert aps_scheduler.get_jobs() == []

    def test_disarm_unknown_timer(self, timer_bank):
        assert timer_bank.disarm(JobType.POS_ORDER_SYNC) is False

    async def test_fire_hands_job_type_to_callback(self, timer_bank, fired):
        await timer_bank.fire("online_order_sync")
        assert fired == [JobType.ONLINE_ORDER_SYNC]

    async def test_fire_swallows_callback_errors(self, aps_scheduler):
        bank = TimerBank(aps_scheduler, Mock(side_effect=RuntimeError("queue gone")))
        await bank.fire(JobType.ORDER_SYNC)


class TestScheduleRegistry:

    async def test_seeds_one_schedule_per_type(self, registry, schedule_store):
        summary = await registry.ensure_default_schedules()

        schedules = await schedule_store.list()
        assert summary == {"created": len(JobType), "updated": 0}
        assert sorted(s.job_type for s in schedules) == sorted(t.value for t in JobType)
        assert [s.job_type for s in schedules if s.is_active] == ["customer_sync"]
        for schedule in schedules:
            definition = JOB_DEFINITIONS[JobType(schedule.job_type)]
            assert schedule.interval_minutes == definition.interval_minutes
            assert schedule.priority == definition.priority.value
            assert schedule.max_retries == definition.max_retries

    async def test_seeding_is_idempotent(self, registry, schedule_store):
        await registry.ensure_default_schedules()
        summary = await registry.ensure_default_schedules()

        assert summary == {"created": 0, "updated": 0}
        assert len(await schedule_store.list()) == len(JobType)

    async def test_reconciles_drift(self, registry, schedule_store):
        drifted = await insert_schedule(schedule_store, JobType.ORDER_SYNC, interval_minutes=1, is_active=True)
        inactive_default = await insert_schedule(schedule_store, JobType.CUSTOMER_SYNC, is_active=False)

        summary = await registry.ensure_default_schedules()

        assert summary["updated"] == 2
        assert summary["created"] == len(JobType) - 2
        order = await schedule_store.get(drifted.id)
        assert order.interval_minutes == 15
        assert order.is_active is False
        assert (await schedule_store.get(inactive_default.id)).is_active is True

    async def test_operator_overrides_survive_reconcile(self, registry, schedule_store):
        await registry.ensure_default_schedules()
        order = next(s for s in await schedule_store.list() if s.job_type == "order_sync")
        await schedule_store.update(order.id, {"priority": "low", "max_retries": 7, "interval_minutes": 1})

        summary = await registry.ensure_default_schedules()

        assert summary == {"created": 0, "updated": 1}
        order = await schedule_store.get(order.id)
        assert order.interval_minutes == 15
        assert order.priority == "low"
        assert order.max_retries == 7

    async def test_store_errors_are_swallowed(self, timer_bank):
        store = AsyncMock()
        store.list.side_effect = ConnectionError("database unreachable")
        registry = ScheduleRegistry(store, timer_bank)

        assert await registry.ensure_default_schedules() == {"created": 0, "updated": 0}
        assert await registry.start_active_jobs() == []

    async def test_start_active_jobs_arms_only_active(self, registry, timer_bank, aps_scheduler):
        await registry.ensure_default_schedules()

        assert await registry.start_active_jobs() == ["customer_sync"]
        assert await registry.start_active_jobs() == ["customer_sync"]

        assert timer_bank.armed() == {"customer_sync": 5}
        assert len(aps_scheduler.get_jobs()) == 1

    def test_plan_skips_unknown_types(self):
        stranger = Mock(id="x", job_type="menu_sync")
        inserts, updates = plan_default_schedules([stranger], JobType.CUSTOMER_SYNC)
        assert updates == []
        assert len(inserts) == len(JobType)
