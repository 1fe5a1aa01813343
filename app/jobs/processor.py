"""
Queue Processor

Single serialized drain loop over the PriorityJobQueue.

For every popped item:
1. append a JobRun record with status "running"
2. run the executor (bounded by the execution timeout)
3. success  -> patch the record to "completed" with counts and duration,
               update schedule last_run/next_run for system-sourced items,
               notify the completion notifier
   failure  -> patch the record to "pending" with the error,
               re-queue while retry_count < max_retries,
               otherwise append a terminal "failed" record

Background failures (executor errors, store errors, notifier errors) are
logged and never escape the loop.
"""

import asyncio
import inspect
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from app.jobs.definitions import (
    JobRunStatus, JobSource, QueueItemStatus, get_interval,
)
from app.jobs.executors import ExecutorRegistry, JobResult
from app.jobs.queue import PriorityJobQueue, QueueItem
from app.jobs.stores import RunHistoryStore, ScheduleStore

logger = logging.getLogger(__name__)

CompletionNotifier = Callable[[Dict[str, Any]], Optional[Awaitable[Any]]]


class QueueProcessor:
    def __init__(
        self,
        queue: PriorityJobQueue,
        executors: ExecutorRegistry,
        run_store: RunHistoryStore,
        schedule_store: ScheduleStore,
        notifier: Optional[CompletionNotifier] = None,
        execution_timeout: Optional[float] = None,
    ):
        self._queue = queue
        self._executors = executors
        self._run_store = run_store
        self._schedule_store = schedule_store
        self._notifier = notifier
        self._execution_timeout = execution_timeout

        self._draining = False
        self._drain_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()

        self.stats = {"completed": 0, "failed": 0, "retried": 0}

    @property
    def is_draining(self) -> bool:
        return self._draining

    # ==================== Drain Control ====================

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Remember the loop that off-thread kicks should hop onto."""
        self._loop = loop or asyncio.get_running_loop()

    def kick(self) -> Optional[asyncio.Task]:
        """Start a drain loop unless one is running or nothing is pending."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called off the event loop thread: hop onto the loop we know
            if self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self.kick)
            else:
                logger.debug("No event loop available; relying on periodic kick")
            return None

        self._loop = loop
        with self._lock:
            if self._draining or len(self._queue) == 0:
                return None
            self._draining = True

        self._drain_task = loop.create_task(self._drain_loop())
        return self._drain_task

    async def kick_if_idle(self) -> Optional[asyncio.Task]:
        """Periodic safety net for enqueues that missed their kick."""
        if not self._draining and len(self._queue) > 0:
            logger.info(f"Queue has {len(self._queue)} pending items with no drain running; waking processor")
            return self.kick()
        return None

    async def drain(self) -> int:
        """Drain inline until the queue is empty. Returns items finished."""
        with self._lock:
            if self._draining:
                return 0
            self._draining = True
        return await self._drain_loop()

    async def wait_idle(self) -> None:
        """Wait for the current background drain (and any it chains into)."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)

    async def stop(self) -> None:
        """Cancel an in-progress drain and reset the draining flag."""
        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._drain_task = None
        with self._lock:
            self._draining = False

    def _next_item(self) -> Optional[QueueItem]:
        # Pop and flag reset happen under one lock so an enqueue cannot slip
        # between "queue looked empty" and "drain stopped"
        with self._lock:
            item = self._queue.pop()
            if item is None:
                self._draining = False
            return item

    async def _drain_loop(self) -> int:
        finished = 0
        try:
            while True:
                item = self._next_item()
                if item is None:
                    break
                await self._process(item)
                if item.status in (QueueItemStatus.COMPLETED, QueueItemStatus.FAILED):
                    finished += 1
        finally:
            with self._lock:
                self._draining = False
        return finished

    # ==================== Execution ====================

    async def _process(self, item: QueueItem) -> None:
        attempt = item.retry_count + 1
        logger.info(
            f"Starting {item.job_type.value} job {item.id} "
            f"(priority={item.priority.value}, source={item.source.value}, attempt={attempt})"
        )

        start_time = datetime.now(timezone.utc)
        record_id = await self._append_record({
            "job_type": item.job_type.value,
            "status": JobRunStatus.RUNNING.value,
            "priority": item.priority.value,
            "source": item.source.value,
            "queue_item_id": item.id,
            "attempt": attempt,
            "start_time": start_time,
        })

        started = time.monotonic()
        try:
            result = await self._executors.execute(item.job_type, timeout=self._execution_timeout)
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            await self._handle_failure(item, record_id, e, start_time, duration_ms)
            return

        duration_ms = int((time.monotonic() - started) * 1000)
        await self._handle_success(item, record_id, result, duration_ms)

    async def _handle_success(
        self,
        item: QueueItem,
        record_id,
        result: JobResult,
        duration_ms: int,
    ) -> None:
        item.status = QueueItemStatus.COMPLETED
        item.error = None
        self._queue.finish(item)
        self.stats["completed"] += 1

        if record_id is not None:
            await self._patch_record(record_id, {
                "status": JobRunStatus.COMPLETED.value,
                "end_time": item.completed_at,
                "duration_ms": duration_ms,
                "records_processed": result.processed,
                "records_failed": result.failed,
            })

        if item.source == JobSource.SYSTEM:
            await self._update_schedule_last_run(item)

        logger.info(
            f"{item.job_type.value} job completed: {result.processed} records processed, "
            f"{result.failed} failed in {duration_ms}ms"
        )

        await self._notify({
            "job_type": item.job_type.value,
            "record_id": str(record_id) if record_id is not None else None,
            "processed": result.processed,
            "failed": result.failed,
            "duration": duration_ms,
            "source": item.source.value,
        })

    async def _handle_failure(
        self,
        item: QueueItem,
        record_id,
        error: Exception,
        start_time: datetime,
        duration_ms: int,
    ) -> None:
        message = str(error) or type(error).__name__
        item.retry_count += 1
        item.error = message
        end_time = datetime.now(timezone.utc)

        if record_id is not None:
            await self._patch_record(record_id, {
                "status": JobRunStatus.PENDING.value,
                "end_time": end_time,
                "duration_ms": duration_ms,
                "error": message,
            })

        if item.retry_count < item.max_retries:
            self._queue.requeue(item)
            self.stats["retried"] += 1
            logger.warning(
                f"{item.job_type.value} job {item.id} failed "
                f"(retry {item.retry_count}/{item.max_retries}): {message}"
            )
            return

        item.status = QueueItemStatus.FAILED
        self._queue.finish(item)
        self.stats["failed"] += 1
        logger.error(
            f"Error running {item.job_type.value} job {item.id}, giving up after "
            f"{item.retry_count} attempts: {message}"
        )

        await self._append_record({
            "job_type": item.job_type.value,
            "status": JobRunStatus.FAILED.value,
            "priority": item.priority.value,
            "source": item.source.value,
            "queue_item_id": item.id,
            "attempt": item.retry_count,
            "start_time": start_time,
            "end_time": end_time,
            "duration_ms": duration_ms,
            "error": message,
        })

    # ==================== Side Effects ====================

    async def _append_record(self, values: Dict[str, Any]):
        try:
            return await self._run_store.append(values)
        except Exception as e:
            logger.error(f"Error writing {values.get('status')} run record for {values.get('job_type')}: {e}")
            return None

    async def _patch_record(self, record_id, values: Dict[str, Any]) -> None:
        try:
            await self._run_store.patch(record_id, values)
        except Exception as e:
            logger.error(f"Error updating run record {record_id}: {e}")

    async def _update_schedule_last_run(self, item: QueueItem) -> None:
        try:
            schedules = await self._schedule_store.list_by_type(item.job_type.value)
            if not schedules:
                return
            schedule = schedules[0]
            now = datetime.now(timezone.utc)
            interval = schedule.interval_minutes or get_interval(item.job_type)
            await self._schedule_store.update(schedule.id, {
                "last_run": now,
                "next_run": now + timedelta(minutes=interval),
                "retry_count": 0,
            })
        except Exception as e:
            logger.error(f"Error updating schedule last run for {item.job_type.value}: {e}")

    async def _notify(self, payload: Dict[str, Any]) -> None:
        if self._notifier is None:
            return
        try:
            result = self._notifier(payload)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Completion notifier failed for {payload.get('job_type')}: {e}")
