"""
Background Jobs Module

Recurring and on-demand synchronization jobs:
- Customer statistics reconciliation
- Order / online order / POS order sync
- Inventory sync

All work flows through one priority queue drained by a single worker.
"""

from app.jobs.definitions import JobType, JobPriority, JobSource
from app.jobs.executors import ExecutorRegistry, JobResult, job_executor
from app.jobs.scheduler import (
    JobScheduler,
    get_job_scheduler,
    start_scheduler,
    shutdown_scheduler,
)

__all__ = [
    "JobType",
    "JobPriority",
    "JobSource",
    "ExecutorRegistry",
    "JobResult",
    "job_executor",
    "JobScheduler",
    "get_job_scheduler",
    "start_scheduler",
    "shutdown_scheduler",
]
