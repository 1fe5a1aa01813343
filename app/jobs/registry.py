"""
Schedule Registry

Keeps the schedule store holding one canonical JobSchedule per job type:

- first boot: seed one schedule per type, only the default type active
- later boots: reconcile interval and active-flag drift and insert any
  type added since the store was seeded; priority and retry ceiling are
  operator-editable and survive restarts (reset restores them)

Store errors here are logged and swallowed so a bad store never blocks
startup; the scheduler proceeds with whatever state it could read.
"""

import logging
from typing import Any, Dict, List, Sequence, Tuple

from app.jobs.definitions import JobType, JOB_DEFINITIONS, parse_job_type
from app.jobs.exceptions import UnknownJobTypeError
from app.jobs.stores import ScheduleStore
from app.jobs.timer_bank import TimerBank
from app.models.job import JobSchedule

logger = logging.getLogger(__name__)


def default_schedule_values(job_type: JobType, default_active_type: JobType) -> Dict[str, Any]:
    definition = JOB_DEFINITIONS[job_type]
    return {
        "job_type": job_type.value,
        "interval_minutes": definition.interval_minutes,
        "is_active": job_type == default_active_type,
        "priority": definition.priority.value,
        "max_retries": definition.max_retries,
        "retry_count": 0,
    }


BOOT_RECONCILED_FIELDS = ("interval_minutes", "is_active")
RESET_FIELDS = ("interval_minutes", "is_active", "priority", "max_retries")


def plan_default_schedules(
    schedules: Sequence[JobSchedule],
    default_active_type: JobType,
    fields: Sequence[str] = RESET_FIELDS,
) -> Tuple[List[Dict[str, Any]], List[Tuple[Any, Dict[str, Any]]]]:
    """
    Work out the inserts and updates that bring the store to defaults.

    Only the given fields are compared on existing rows; inserted rows
    always get every default.

    Returns:
        (inserts, updates) where updates is a list of (schedule_id, changes)
        holding only the fields that drifted.
    """
    inserts: List[Dict[str, Any]] = []
    updates: List[Tuple[Any, Dict[str, Any]]] = []
    seen = set()

    for schedule in schedules:
        try:
            job_type = parse_job_type(schedule.job_type)
        except UnknownJobTypeError:
            logger.warning(f"Ignoring schedule {schedule.id} with unknown job type '{schedule.job_type}'")
            continue
        seen.add(job_type)

        canonical = default_schedule_values(job_type, default_active_type)
        changes = {
            field: canonical[field]
            for field in fields
            if getattr(schedule, field) != canonical[field]
        }
        if changes:
            updates.append((schedule.id, changes))

    for job_type in JOB_DEFINITIONS:
        if job_type not in seen:
            inserts.append(default_schedule_values(job_type, default_active_type))

    return inserts, updates


class ScheduleRegistry:
    def __init__(
        self,
        store: ScheduleStore,
        timer_bank: TimerBank,
        default_active_type: JobType = JobType.CUSTOMER_SYNC,
    ):
        self.store = store
        self.timer_bank = timer_bank
        self.default_active_type = parse_job_type(default_active_type)

    async def ensure_default_schedules(self) -> Dict[str, int]:
        """Seed or reconcile schedules. Idempotent; never raises."""
        summary = {"created": 0, "updated": 0}
        try:
            schedules = await self.store.list()
            inserts, updates = plan_default_schedules(
                schedules, self.default_active_type, fields=BOOT_RECONCILED_FIELDS,
            )
            if inserts or updates:
                await self.store.apply_batch(inserts=inserts, updates=updates)

            summary = {"created": len(inserts), "updated": len(updates)}
            if not schedules:
                logger.info(
                    f"Created {len(inserts)} default job schedules "
                    f"({self.default_active_type.value} active)"
                )
            elif inserts or updates:
                logger.info(
                    f"Reconciled job schedules: {len(updates)} updated, {len(inserts)} created"
                )
        except Exception as e:
            logger.error(f"Error ensuring default schedules: {e}")
        return summary

    async def start_active_jobs(self) -> List[str]:
        """Arm a timer for every active schedule. Safe to call repeatedly."""
        started: List[str] = []
        try:
            schedules = await self.store.list()
        except Exception as e:
            logger.error(f"Error starting active jobs: {e}")
            return started

        for schedule in schedules:
            if not schedule.is_active or schedule.job_type in started:
                continue
            try:
                self.timer_bank.arm(schedule.job_type, schedule.interval_minutes)
                started.append(schedule.job_type)
            except (UnknownJobTypeError, ValueError) as e:
                logger.error(f"Cannot start timer for schedule {schedule.id}: {e}")
        return started

    async def rearm(self) -> List[str]:
        """Drop every timer and arm again from the store."""
        self.timer_bank.disarm_all()
        return await self.start_active_jobs()
