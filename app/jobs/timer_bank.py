"""
Timer Bank

One APScheduler interval job per active job type. A timer never runs job
logic; firing only hands the job type to the enqueue callback, which keeps
execution serialized through the queue processor.

Timers are keyed by job type (APScheduler job id "sync:<job_type>"), so
re-arming after an interval change is a replace, never a duplicate.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Union

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.jobs.definitions import JobType, parse_job_type

logger = logging.getLogger(__name__)

TIMER_ID_PREFIX = "sync:"

FireCallback = Callable[[JobType], Union[Any, Awaitable[Any]]]


class TimerBank:
    def __init__(self, scheduler: AsyncIOScheduler, on_fire: FireCallback):
        self._scheduler = scheduler
        self._on_fire = on_fire
        self._armed: Dict[JobType, int] = {}

    @staticmethod
    def timer_id(job_type: JobType) -> str:
        return f"{TIMER_ID_PREFIX}{job_type.value}"

    def arm(self, job_type: Union[str, JobType], interval_minutes: int) -> None:
        """Install or replace the periodic timer for job_type."""
        job_type = parse_job_type(job_type)
        if interval_minutes <= 0:
            raise ValueError(f"Interval must be positive, got {interval_minutes}")

        self._scheduler.add_job(
            self.fire,
            'interval',
            minutes=interval_minutes,
            args=[job_type.value],
            id=self.timer_id(job_type),
            name=f"[Sync] {job_type.value}",
            replace_existing=True,
        )
        self._armed[job_type] = interval_minutes
        logger.info(f"Started {job_type.value} job with {interval_minutes} minute interval")

    def disarm(self, job_type: Union[str, JobType]) -> bool:
        job_type = parse_job_type(job_type)
        self._armed.pop(job_type, None)
        try:
            self._scheduler.remove_job(self.timer_id(job_type))
        except JobLookupError:
            return False
        logger.info(f"Stopped {job_type.value} job timer")
        return True

    def disarm_all(self) -> int:
        count = 0
        for job_type in list(self._armed):
            if self.disarm(job_type):
                count += 1
        self._armed.clear()
        return count

    def armed(self) -> Dict[str, int]:
        """Armed job types mapped to their interval in minutes."""
        return {job_type.value: minutes for job_type, minutes in self._armed.items()}

    def is_armed(self, job_type: Union[str, JobType]) -> bool:
        return parse_job_type(job_type) in self._armed

    async def fire(self, job_type: Union[str, JobType]) -> None:
        """What a timer tick does: hand the job type to the enqueue callback."""
        job_type = parse_job_type(job_type)
        logger.debug(f"Timer fired for {job_type.value}")
        try:
            result = self._on_fire(job_type)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Timer callback for {job_type.value} failed: {e}")
