"""
Job Type Definitions

Closed set of synchronization job types and the per-type constants the
scheduler needs: canonical interval, dispatch priority and retry ceiling.

Adding a job type means adding an enum member AND a JOB_DEFINITIONS entry;
the executor registry refuses to start if any type is left without an
executor.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union

from app.jobs.exceptions import UnknownJobTypeError


class JobType(str, Enum):
    """Synchronization job types."""
    ORDER_SYNC = "order_sync"
    CUSTOMER_SYNC = "customer_sync"
    INVENTORY_SYNC = "inventory_sync"
    ONLINE_ORDER_SYNC = "online_order_sync"
    POS_ORDER_SYNC = "pos_order_sync"


class JobPriority(str, Enum):
    """Queue dispatch priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class QueueItemStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobRunStatus(str, Enum):
    """Status of a run-history record.

    PENDING marks an attempt that failed but will be retried.
    """
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobSource(str, Enum):
    """Who asked for the work (informational only)."""
    ONLINE = "online"
    POS = "pos"
    SYSTEM = "system"
    MANUAL = "manual"


PRIORITY_RANK: Dict[JobPriority, int] = {
    JobPriority.LOW: 1,
    JobPriority.MEDIUM: 2,
    JobPriority.HIGH: 3,
    JobPriority.CRITICAL: 4,
}

DEFAULT_MAX_RETRIES = 3
CRITICAL_MAX_RETRIES = 5


@dataclass(frozen=True)
class JobDefinition:
    job_type: JobType
    interval_minutes: int
    priority: JobPriority
    max_retries: int
    description: str = ""


JOB_DEFINITIONS: Dict[JobType, JobDefinition] = {
    JobType.ORDER_SYNC: JobDefinition(
        job_type=JobType.ORDER_SYNC,
        interval_minutes=15,
        priority=JobPriority.HIGH,
        max_retries=DEFAULT_MAX_RETRIES,
        description="Propagate order state to downstream systems",
    ),
    JobType.CUSTOMER_SYNC: JobDefinition(
        job_type=JobType.CUSTOMER_SYNC,
        interval_minutes=5,
        priority=JobPriority.MEDIUM,
        max_retries=DEFAULT_MAX_RETRIES,
        description="Reconcile customer order counts and totals",
    ),
    JobType.INVENTORY_SYNC: JobDefinition(
        job_type=JobType.INVENTORY_SYNC,
        interval_minutes=30,
        priority=JobPriority.MEDIUM,
        max_retries=DEFAULT_MAX_RETRIES,
        description="Propagate inventory levels",
    ),
    JobType.ONLINE_ORDER_SYNC: JobDefinition(
        job_type=JobType.ONLINE_ORDER_SYNC,
        interval_minutes=2,
        priority=JobPriority.CRITICAL,
        max_retries=CRITICAL_MAX_RETRIES,
        description="Pull newly placed online orders",
    ),
    JobType.POS_ORDER_SYNC: JobDefinition(
        job_type=JobType.POS_ORDER_SYNC,
        interval_minutes=2,
        priority=JobPriority.CRITICAL,
        max_retries=CRITICAL_MAX_RETRIES,
        description="Pull orders rung up at the point of sale",
    ),
}


def parse_job_type(value: Union[str, JobType]) -> JobType:
    """Convert a tag to JobType, raising UnknownJobTypeError for strangers."""
    if isinstance(value, JobType):
        return value
    try:
        return JobType(str(value).strip().lower())
    except ValueError:
        raise UnknownJobTypeError(value) from None


def get_definition(job_type: Union[str, JobType]) -> JobDefinition:
    return JOB_DEFINITIONS[parse_job_type(job_type)]


def get_priority(job_type: Union[str, JobType]) -> JobPriority:
    return get_definition(job_type).priority


def get_max_retries(job_type: Union[str, JobType]) -> int:
    return get_definition(job_type).max_retries


def get_interval(job_type: Union[str, JobType]) -> int:
    return get_definition(job_type).interval_minutes


def canonical_intervals() -> Dict[str, int]:
    return {t.value: d.interval_minutes for t, d in JOB_DEFINITIONS.items()}
