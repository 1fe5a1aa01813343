"""
Automation Facade

Administrative operations over the schedule registry:
status introspection, reset to defaults, duplicate cleanup and schedule
edits. Unlike registry reconciliation, failures here are logged AND
re-raised: these are operator actions and should fail visibly.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, List

from app.jobs.definitions import (
    JobPriority, canonical_intervals, parse_job_type,
)
from app.jobs.exceptions import ScheduleNotFoundError
from app.jobs.queue import PriorityJobQueue
from app.jobs.registry import ScheduleRegistry, plan_default_schedules
from app.models.job import JobSchedule

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("interval_minutes", "is_active", "priority", "max_retries")


def _validate_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update schedule fields: {', '.join(sorted(unknown))}")

    clean: Dict[str, Any] = {}
    if updates.get("interval_minutes") is not None:
        interval = int(updates["interval_minutes"])
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        clean["interval_minutes"] = interval
    if updates.get("is_active") is not None:
        clean["is_active"] = bool(updates["is_active"])
    if updates.get("priority") is not None:
        clean["priority"] = JobPriority(updates["priority"]).value
    if updates.get("max_retries") is not None:
        max_retries = int(updates["max_retries"])
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        clean["max_retries"] = max_retries
    return clean


class AutomationFacade:
    def __init__(self, registry: ScheduleRegistry, queue: PriorityJobQueue):
        self.registry = registry
        self.store = registry.store
        self.timer_bank = registry.timer_bank
        self.queue = queue

    async def get_automation_status(self) -> Dict[str, Any]:
        schedules = await self.store.list()
        active_types: List[str] = []
        for schedule in schedules:
            if schedule.is_active and schedule.job_type not in active_types:
                active_types.append(schedule.job_type)

        return {
            "total_schedules": len(schedules),
            "active_schedules": sum(1 for s in schedules if s.is_active),
            "active_job_types": active_types,
            "default_active_type": self.registry.default_active_type.value,
            "canonical_intervals": canonical_intervals(),
            "armed_timers": self.timer_bank.armed(),
            "pending_queue_items": len(self.queue),
        }

    async def reset_to_default_schedules(self) -> Dict[str, Any]:
        """Canonical intervals, only the default type active, timers re-armed."""
        try:
            schedules = await self.store.list()
            inserts, updates = plan_default_schedules(schedules, self.registry.default_active_type)
            await self.store.apply_batch(inserts=inserts, updates=updates)
            active = await self.registry.rearm()
        except Exception as e:
            logger.error(f"Error resetting job schedules to defaults: {e}")
            raise

        logger.info(
            f"Reset job schedules to defaults: {len(updates)} updated, "
            f"{len(inserts)} created, active: {', '.join(active) or 'none'}"
        )
        return {
            "updated": len(updates),
            "created": len(inserts),
            "active_job_types": active,
        }

    async def cleanup_duplicate_schedules(self) -> Dict[str, Any]:
        """Keep the first schedule per type (store order), delete the rest."""
        try:
            schedules = await self.store.list()
            by_type: "OrderedDict[str, List[JobSchedule]]" = OrderedDict()
            for schedule in schedules:
                by_type.setdefault(schedule.job_type, []).append(schedule)

            to_delete = []
            duplicates_found: Dict[str, int] = {}
            for job_type, group in by_type.items():
                if len(group) > 1:
                    duplicates_found[job_type] = len(group) - 1
                    to_delete.extend(s.id for s in group[1:])

            if not to_delete:
                logger.info("No duplicate job schedules found")
                return {"removed": 0, "kept": len(by_type), "duplicates_found": {}}

            await self.store.apply_batch(deletes=to_delete)
            # A deleted duplicate may have been the active one
            await self.registry.rearm()
        except Exception as e:
            logger.error(f"Error cleaning up duplicate schedules: {e}")
            raise

        logger.info(
            f"Removed {len(to_delete)} duplicate job schedules: "
            + ", ".join(f"{t} x{n}" for t, n in duplicates_found.items())
        )
        return {"removed": len(to_delete), "kept": len(by_type), "duplicates_found": duplicates_found}

    async def update_job_schedule(self, schedule_id, updates: Dict[str, Any]) -> JobSchedule:
        """Partial update; re-arms or disarms the type's timer to match."""
        try:
            clean = _validate_updates(updates)
            schedule = await self.store.update(schedule_id, clean)
            if schedule is None:
                raise ScheduleNotFoundError(schedule_id)

            job_type = parse_job_type(schedule.job_type)
            if schedule.is_active:
                self.timer_bank.arm(job_type, schedule.interval_minutes)
            else:
                others_active = [
                    s for s in await self.store.list_by_type(schedule.job_type)
                    if s.is_active and s.id != schedule.id
                ]
                if not others_active:
                    self.timer_bank.disarm(job_type)
        except Exception as e:
            logger.error(f"Error updating job schedule {schedule_id}: {e}")
            raise

        logger.info(f"Updated job schedule: {schedule_id}")
        return schedule
