"""
Job Executor Registry

Maps every JobType to the callable that does the actual synchronization
work. Executors are registered with the @job_executor decorator (default
registry) or directly on an ExecutorRegistry instance.

An executor receives the JobType and returns processed/failed counts in
any of these shapes, or raises:
    JobResult(processed=10, failed=1)
    {"processed": 10, "failed": 1}
    (10, 1)
    10
Coroutine functions are awaited; plain functions run in a worker thread.

Usage:
    @job_executor(JobType.INVENTORY_SYNC)
    async def sync_inventory(job_type: JobType) -> JobResult:
        ...
        return JobResult(processed=len(items))
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from app.jobs.definitions import JobType, JOB_DEFINITIONS, parse_job_type
from app.jobs.exceptions import (
    ExecutorResultError, JobSchedulerError, JobTimeoutError, UnknownJobTypeError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobResult:
    processed: int = 0
    failed: int = 0

    @classmethod
    def coerce(cls, value: Any) -> "JobResult":
        if isinstance(value, JobResult):
            return value
        if value is None:
            return cls()
        if isinstance(value, bool):
            raise ExecutorResultError(f"Executor returned a bool: {value!r}")
        if isinstance(value, int):
            return cls(processed=value)
        if isinstance(value, dict):
            return cls(
                processed=int(value.get("processed", 0) or 0),
                failed=int(value.get("failed", 0) or 0),
            )
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(processed=int(value[0]), failed=int(value[1]))
        raise ExecutorResultError(
            f"Executor returned unsupported result {type(value).__name__}: {value!r}"
        )


JobExecutor = Callable[[JobType], Union[Any, Awaitable[Any]]]


class ExecutorRegistry:
    """One executor per job type."""

    def __init__(self, executors: Optional[Dict[JobType, JobExecutor]] = None):
        self._executors: Dict[JobType, JobExecutor] = {}
        for job_type, func in (executors or {}).items():
            self.register(job_type, func)

    def register(self, job_type: Union[str, JobType], func: JobExecutor) -> JobExecutor:
        job_type = parse_job_type(job_type)
        if job_type in self._executors:
            logger.debug(f"Replacing executor for {job_type.value}")
        self._executors[job_type] = func
        return func

    def get(self, job_type: Union[str, JobType]) -> JobExecutor:
        job_type = parse_job_type(job_type)
        try:
            return self._executors[job_type]
        except KeyError:
            raise UnknownJobTypeError(job_type.value) from None

    def __contains__(self, job_type) -> bool:
        try:
            return parse_job_type(job_type) in self._executors
        except UnknownJobTypeError:
            return False

    def missing(self) -> List[JobType]:
        return [t for t in JOB_DEFINITIONS if t not in self._executors]

    def validate(self) -> None:
        """Every known job type must have an executor."""
        missing = self.missing()
        if missing:
            raise JobSchedulerError(
                f"No executor registered for: {', '.join(t.value for t in missing)}"
            )

    def copy(self) -> "ExecutorRegistry":
        return ExecutorRegistry(dict(self._executors))

    async def execute(self, job_type: JobType, timeout: Optional[float] = None) -> JobResult:
        """Run the executor for job_type, bounded by timeout seconds."""
        func = self.get(job_type)

        if inspect.iscoroutinefunction(func):
            call = func(job_type)
        else:
            call = asyncio.to_thread(func, job_type)

        try:
            if timeout:
                value = await asyncio.wait_for(call, timeout=timeout)
            else:
                value = await call
        except asyncio.TimeoutError:
            raise JobTimeoutError(job_type.value, timeout) from None

        if inspect.isawaitable(value):
            value = await value
        return JobResult.coerce(value)


# Registry populated by @job_executor
_default_registry = ExecutorRegistry()


def job_executor(job_type: Union[str, JobType]):
    """Decorator registering an executor on the default registry."""
    def decorator(func: JobExecutor) -> JobExecutor:
        _default_registry.register(job_type, func)
        logger.debug(f"Registered job executor: {parse_job_type(job_type).value}")
        return func
    return decorator


def get_default_registry() -> ExecutorRegistry:
    """Copy of the default registry with the built-in sync jobs loaded."""
    # This import triggers @job_executor decorators
    from app.jobs import sync_jobs  # noqa: F401

    return _default_registry.copy()
