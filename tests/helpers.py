"""Test helpers: recording executors and record factories."""
from typing import Dict, List, Union

from sqlalchemy import select

from app.jobs.definitions import JobType, JobSource, get_definition
from app.jobs.executors import ExecutorRegistry, JobResult
from app.jobs.queue import QueueItem
from app.jobs.stores import SqlScheduleStore
from app.models.notifications import Notification


class RecordingExecutors:
    """
    Executor for every job type that records calls.

    script[job_type] is a list of outcomes consumed one per call: an
    exception instance is raised, anything else is returned. Once the
    script runs out the executor returns JobResult(processed=1).
    """

    def __init__(self):
        self.calls: List[JobType] = []
        self.script: Dict[JobType, List[Union[BaseException, JobResult]]] = {}
        self.registry = ExecutorRegistry({job_type: self.run for job_type in JobType})

    async def run(self, job_type: JobType):
        self.calls.append(job_type)
        outcomes = self.script.get(job_type)
        if outcomes:
            outcome = outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return JobResult(processed=1)


def make_item(job_type: JobType, source: JobSource = JobSource.SYSTEM, **overrides) -> QueueItem:
    definition = get_definition(job_type)
    values = {
        "job_type": job_type,
        "priority": definition.priority,
        "source": source,
        "max_retries": definition.max_retries,
    }
    values.update(overrides)
    return QueueItem(**values)


async def insert_schedule(store: SqlScheduleStore, job_type: JobType, **overrides):
    definition = get_definition(job_type)
    values = {
        "job_type": job_type.value,
        "interval_minutes": definition.interval_minutes,
        "is_active": False,
        "priority": definition.priority.value,
        "max_retries": definition.max_retries,
    }
    values.update(overrides)
    return await store.insert(values)


async def recent_notifications(session_factory, limit: int = 20) -> List[Notification]:
    async with session_factory() as session:
        result = await session.execute(
            select(Notification).order_by(Notification.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
