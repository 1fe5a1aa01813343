"""
APScheduler-backed Sync Job Scheduler

Owns all in-process scheduler state: the timer bank, the priority queue,
the queue processor and the draining flag.

Architecture:
- Timer bank arms one interval job per active schedule
- Timer firings and manual requests only enqueue
- A single queue processor drains the queue, one item at a time
- A periodic kick wakes the processor if an enqueue missed its kick
- Schedule registry seeds/reconciles schedules on startup
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.jobs.automation import AutomationFacade
from app.jobs.definitions import (
    JobPriority, JobSource, JobType, get_definition, parse_job_type,
)
from app.jobs.executors import ExecutorRegistry, get_default_registry
from app.jobs.processor import CompletionNotifier, QueueProcessor
from app.jobs.queue import PriorityJobQueue, QueueItem
from app.jobs.registry import ScheduleRegistry
from app.jobs.stores import (
    RunHistoryStore, ScheduleStore, SqlRunHistoryStore, SqlScheduleStore,
)
from app.jobs.timer_bank import TimerBank
from app.models.job import JobRun, JobSchedule

logger = logging.getLogger(__name__)

QUEUE_KICK_JOB_ID = "queue:kick"


def create_apscheduler(timezone: Optional[str] = None) -> AsyncIOScheduler:
    return AsyncIOScheduler(
        jobstores={
            'default': MemoryJobStore()
        },
        executors={
            'default': AsyncIOExecutor(),
        },
        job_defaults={
            'coalesce': True,  # Combine multiple pending executions into one
            'max_instances': 1,  # Only one instance of each job at a time
            'misfire_grace_time': 60,  # Allow 60 seconds grace time for misfires
        },
        timezone=timezone or settings.SCHEDULER_TIMEZONE,
    )


class JobScheduler:
    """
    Recurring sync job scheduler with a priority work queue.

    Args:
        session_factory: Async session factory backing the default SQL stores
        executors: Executor per job type (defaults to the built-in sync jobs)
        notifier: Optional completion notifier, called once per completed run
        scheduler: APScheduler instance (one is created if omitted)
        schedule_store / run_store: Override the SQL stores
        default_active_type: Only type active after seeding/reset
        execution_timeout: Per-attempt executor deadline in seconds
        kick_interval_seconds: Period of the idle-queue safety kick
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        executors: Optional[ExecutorRegistry] = None,
        notifier: Optional[CompletionNotifier] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        schedule_store: Optional[ScheduleStore] = None,
        run_store: Optional[RunHistoryStore] = None,
        default_active_type: Union[str, JobType, None] = None,
        execution_timeout: Optional[float] = None,
        kick_interval_seconds: Optional[int] = None,
    ):
        if session_factory is None and (schedule_store is None or run_store is None):
            from app.database import async_session_factory
            session_factory = async_session_factory

        self.schedule_store = schedule_store or SqlScheduleStore(session_factory)
        self.run_store = run_store or SqlRunHistoryStore(session_factory)
        self.executors = executors or get_default_registry()

        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or create_apscheduler()
        self.kick_interval_seconds = kick_interval_seconds or settings.QUEUE_KICK_INTERVAL_SECONDS

        self.queue = PriorityJobQueue()
        self.timer_bank = TimerBank(self.scheduler, self._enqueue_scheduled)
        self.registry = ScheduleRegistry(
            self.schedule_store,
            self.timer_bank,
            default_active_type=default_active_type or settings.DEFAULT_ACTIVE_JOB_TYPE,
        )
        self.automation = AutomationFacade(self.registry, self.queue)
        self.processor = QueueProcessor(
            self.queue,
            self.executors,
            self.run_store,
            self.schedule_store,
            notifier=notifier,
            execution_timeout=(
                execution_timeout if execution_timeout is not None
                else settings.JOB_EXECUTION_TIMEOUT_SECONDS
            ),
        )
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ==================== Lifecycle ====================

    async def initialize(self) -> None:
        """Seed schedules, arm timers and start the periodic kick. Idempotent."""
        if self._initialized:
            return

        self.executors.validate()
        self.processor.bind_loop()
        if not self.scheduler.running:
            self.scheduler.start()

        await self.registry.ensure_default_schedules()
        started = await self.registry.start_active_jobs()

        self.scheduler.add_job(
            self.processor.kick_if_idle,
            'interval',
            seconds=self.kick_interval_seconds,
            id=QUEUE_KICK_JOB_ID,
            name='[Queue] Wake idle processor',
            replace_existing=True,
        )

        self._initialized = True
        logger.info(f"Job Scheduler initialized ({len(started)} active: {', '.join(started) or 'none'})")

    async def destroy(self) -> None:
        """Disarm timers, drop pending work and reset the draining flag."""
        self.timer_bank.disarm_all()
        try:
            self.scheduler.remove_job(QUEUE_KICK_JOB_ID)
        except JobLookupError:
            pass

        await self.processor.stop()
        dropped = self.queue.clear()

        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        self._initialized = False
        logger.info(f"Job Scheduler destroyed ({dropped} pending items dropped)")

    # ==================== Enqueue ====================

    def _enqueue(
        self,
        job_type: JobType,
        source: JobSource,
        priority: Optional[JobPriority] = None,
        max_retries: Optional[int] = None,
    ) -> QueueItem:
        definition = get_definition(job_type)
        item = QueueItem(
            job_type=job_type,
            priority=priority or definition.priority,
            source=source,
            max_retries=definition.max_retries if max_retries is None else max_retries,
        )
        self.queue.push(item)
        logger.debug(
            f"Queued {job_type.value} item {item.id} "
            f"(priority={item.priority.value}, source={source.value}, pending={len(self.queue)})"
        )
        self.processor.kick()
        return item

    async def _schedule_policy(self, job_type: JobType) -> Tuple[Optional[JobPriority], Optional[int]]:
        """Priority and retry ceiling from the type's active schedule row."""
        try:
            schedules = await self.schedule_store.list_by_type(job_type.value)
        except Exception as e:
            logger.error(f"Error reading schedule for {job_type.value}, using defaults: {e}")
            return None, None

        active = [s for s in schedules if s.is_active] or schedules
        if not active:
            return None, None
        schedule = active[0]
        try:
            priority = JobPriority(schedule.priority) if schedule.priority else None
        except ValueError:
            logger.warning(f"Schedule {schedule.id} has unknown priority '{schedule.priority}', using default")
            priority = None
        return priority, schedule.max_retries

    async def _enqueue_scheduled(self, job_type: JobType) -> Optional[QueueItem]:
        # Coalesce: a timer tick adds nothing if the same type is still waiting
        if self.queue.has_queued(job_type):
            logger.info(f"Skipping scheduled {job_type.value}: already queued")
            return None

        priority, max_retries = await self._schedule_policy(job_type)

        if self.queue.has_queued(job_type):
            logger.info(f"Skipping scheduled {job_type.value}: already queued")
            return None
        return self._enqueue(job_type, JobSource.SYSTEM, priority=priority, max_retries=max_retries)

    def submit(
        self,
        job_type: Union[str, JobType],
        priority: Union[str, JobPriority, None] = None,
        source: Union[str, JobSource] = JobSource.MANUAL,
        max_retries: Optional[int] = None,
    ) -> QueueItem:
        """
        Queue a one-off run. Safe to call from any thread, e.g. an inbound
        order webhook worker; the drain is woken on the scheduler's loop.
        """
        job_type = parse_job_type(job_type)
        return self._enqueue(
            job_type,
            JobSource(source),
            priority=JobPriority(priority) if priority is not None else None,
            max_retries=max_retries,
        )

    async def run_manual_job(
        self,
        job_type: Union[str, JobType],
        source: Union[str, JobSource] = JobSource.MANUAL,
    ) -> QueueItem:
        """Queue a one-off run at the job type's own priority."""
        job_type = parse_job_type(job_type)
        logger.info(f"Running manual {job_type.value} job...")
        return self._enqueue(job_type, JobSource(source))

    async def add_manual_job(
        self,
        job_type: Union[str, JobType],
        priority: Union[str, JobPriority, None] = None,
        source: Union[str, JobSource] = JobSource.MANUAL,
        max_retries: Optional[int] = None,
    ) -> QueueItem:
        """Queue a one-off run with an explicit priority (e.g. an inbound online order)."""
        return self.submit(job_type, priority=priority, source=source, max_retries=max_retries)

    # ==================== Queries ====================

    async def get_job_status(self, limit: Optional[int] = None) -> List[JobRun]:
        try:
            return await self.run_store.query(limit or settings.JOB_STATUS_DEFAULT_LIMIT)
        except Exception as e:
            logger.error(f"Error fetching job status: {e}")
            return []

    async def get_job_schedules(self) -> List[JobSchedule]:
        try:
            return await self.schedule_store.list()
        except Exception as e:
            logger.error(f"Error fetching job schedules: {e}")
            return []

    async def get_item_runs(self, queue_item_id: str) -> List[JobRun]:
        """Every run record written for one queue item, oldest first."""
        try:
            return list(await self.run_store.for_queue_item(queue_item_id))
        except Exception as e:
            logger.error(f"Error fetching runs for queue item {queue_item_id}: {e}")
            return []

    def get_queue_status(self) -> Dict[str, Any]:
        in_flight = self.queue.in_flight
        pending = self.queue.pending()
        return {
            "pending_count": len(pending),
            "pending": [item.to_dict() for item in pending],
            "processing": in_flight.to_dict() if in_flight else None,
            "is_draining": self.processor.is_draining,
            "stats": dict(self.processor.stats),
        }

    # ==================== Administration ====================

    async def update_job_schedule(self, schedule_id, updates: Dict[str, Any]) -> JobSchedule:
        return await self.automation.update_job_schedule(schedule_id, updates)

    async def reset_to_default_schedules(self) -> Dict[str, Any]:
        return await self.automation.reset_to_default_schedules()

    async def cleanup_duplicate_schedules(self) -> Dict[str, Any]:
        return await self.automation.cleanup_duplicate_schedules()

    async def get_automation_status(self) -> Dict[str, Any]:
        return await self.automation.get_automation_status()


# Global scheduler instance
_job_scheduler: Optional[JobScheduler] = None


def get_job_scheduler() -> JobScheduler:
    """Get or create the global job scheduler."""
    global _job_scheduler
    if _job_scheduler is None:
        notifier = None
        if settings.JOB_NOTIFICATIONS_ENABLED:
            from app.services.notification_service import NotificationService
            notifier = NotificationService().notify_job_complete
        _job_scheduler = JobScheduler(notifier=notifier)
    return _job_scheduler


async def start_scheduler() -> JobScheduler:
    """Start the background job scheduler."""
    job_scheduler = get_job_scheduler()
    await job_scheduler.initialize()

    for job in job_scheduler.scheduler.get_jobs():
        logger.info(f"Scheduled job: {job.name} - Next run: {job.next_run_time}")
    return job_scheduler


async def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    global _job_scheduler
    if _job_scheduler is not None:
        await _job_scheduler.destroy()
        _job_scheduler = None
        logger.info("Background job scheduler stopped")
