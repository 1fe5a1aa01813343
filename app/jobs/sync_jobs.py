"""
Built-in Sync Job Executors

Default executor per job type. The reconciliation logic itself lives with
the business modules that own the data; these defaults only mark the run
and report zero records, so a fresh install has a working scheduler.
Hosts replace them with ExecutorRegistry.register().
"""

import logging

from app.jobs.definitions import JobType
from app.jobs.executors import JobResult, job_executor

logger = logging.getLogger(__name__)


@job_executor(JobType.CUSTOMER_SYNC)
async def customer_sync(job_type: JobType) -> JobResult:
    """Recompute per-customer order count, total spent and last order date."""
    logger.info("Running customer sync job...")
    return JobResult()


@job_executor(JobType.ORDER_SYNC)
async def order_sync(job_type: JobType) -> JobResult:
    logger.info("Running order sync job...")
    return JobResult()


@job_executor(JobType.INVENTORY_SYNC)
async def inventory_sync(job_type: JobType) -> JobResult:
    logger.info("Running inventory sync job...")
    return JobResult()


@job_executor(JobType.ONLINE_ORDER_SYNC)
async def online_order_sync(job_type: JobType) -> JobResult:
    logger.info("Running online order sync job...")
    return JobResult()


@job_executor(JobType.POS_ORDER_SYNC)
async def pos_order_sync(job_type: JobType) -> JobResult:
    logger.info("Running POS order sync job...")
    return JobResult()
