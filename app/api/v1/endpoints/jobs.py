"""API endpoints for the background job scheduler."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import Scheduler
from app.jobs.exceptions import ScheduleNotFoundError, UnknownJobTypeError
from app.schemas.job import (
    JobScheduleResponse, JobScheduleUpdate, JobRunResponse,
    ManualJobRequest, QueueItemResponse, QueueStatusResponse,
    AutomationStatusResponse, ResetSchedulesResponse, CleanupSchedulesResponse,
)

router = APIRouter()


# ==================== Run History ====================

@router.get("/runs", response_model=List[JobRunResponse])
async def get_job_runs(
    scheduler: Scheduler,
    limit: Optional[int] = Query(None, ge=1, le=500),
):
    """Most recent job run records, newest first."""
    return await scheduler.get_job_status(limit)


# ==================== Schedules ====================

@router.get("/schedules", response_model=List[JobScheduleResponse])
async def get_job_schedules(scheduler: Scheduler):
    """List all job schedules."""
    return await scheduler.get_job_schedules()


@router.patch("/schedules/{schedule_id}", response_model=JobScheduleResponse)
async def update_job_schedule(
    schedule_id: UUID,
    data: JobScheduleUpdate,
    scheduler: Scheduler,
):
    """Change a schedule's interval, active flag, priority or retry ceiling."""
    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    try:
        return await scheduler.update_job_schedule(schedule_id, updates)
    except ScheduleNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job schedule not found"
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )


@router.post("/schedules/reset", response_model=ResetSchedulesResponse)
async def reset_job_schedules(scheduler: Scheduler):
    """Restore canonical intervals with only the default job type active."""
    try:
        return await scheduler.reset_to_default_schedules()
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to reset job schedules: {e}"
        )


@router.post("/schedules/cleanup", response_model=CleanupSchedulesResponse)
async def cleanup_job_schedules(scheduler: Scheduler):
    """Delete duplicate schedules, keeping the first one per job type."""
    try:
        return await scheduler.cleanup_duplicate_schedules()
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clean up job schedules: {e}"
        )


# ==================== Queue ====================

@router.get("/queue", response_model=QueueStatusResponse)
async def get_queue_status(scheduler: Scheduler):
    """Pending items in dispatch order plus the item being processed."""
    return scheduler.get_queue_status()


@router.get("/queue/{item_id}/runs", response_model=List[JobRunResponse])
async def get_queue_item_runs(item_id: str, scheduler: Scheduler):
    """Run records for one queue item, one per attempt plus any terminal failure."""
    return await scheduler.get_item_runs(item_id)


@router.post("/run/{job_type}", response_model=QueueItemResponse, status_code=status.HTTP_202_ACCEPTED)
async def run_job_now(job_type: str, scheduler: Scheduler):
    """Queue a job type to run as soon as the queue reaches it."""
    try:
        item = await scheduler.run_manual_job(job_type)
    except UnknownJobTypeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )
    return item.to_dict()


@router.post("/enqueue", response_model=QueueItemResponse, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_job(data: ManualJobRequest, scheduler: Scheduler):
    """Queue a job with an explicit priority and source."""
    try:
        item = await scheduler.add_manual_job(data.job_type, priority=data.priority, source=data.source)
    except UnknownJobTypeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )
    return item.to_dict()


# ==================== Automation ====================

@router.get("/automation", response_model=AutomationStatusResponse)
async def get_automation_status(scheduler: Scheduler):
    """Schedule counts, active job types and canonical intervals."""
    return await scheduler.get_automation_status()
