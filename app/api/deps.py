from typing import Annotated

from fastapi import Depends

from app.jobs.scheduler import JobScheduler, get_job_scheduler


def get_scheduler() -> JobScheduler:
    """Dependency returning the process-wide job scheduler."""
    return get_job_scheduler()


Scheduler = Annotated[JobScheduler, Depends(get_scheduler)]
