"""Pydantic schemas for the job scheduler API."""
from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import UUID
from pydantic import BaseModel, Field

from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from app.jobs.definitions import JobPriority, JobSource


# ==================== Schedule Schemas ====================

class JobScheduleResponse(BaseResponseSchema):
    """Response schema for JobSchedule."""
    id: UUID
    job_type: str
    interval_minutes: int
    is_active: bool
    priority: str
    max_retries: int
    retry_count: int = 0
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobScheduleUpdate(BaseUpdateSchema):
    """Partial schedule update."""
    interval_minutes: Optional[int] = Field(None, gt=0, le=7 * 24 * 60)
    is_active: Optional[bool] = None
    priority: Optional[JobPriority] = None
    max_retries: Optional[int] = Field(None, ge=0, le=20)


# ==================== Run History Schemas ====================

class JobRunResponse(BaseResponseSchema):
    """Response schema for a run-history record."""
    id: UUID
    job_type: str
    status: str
    priority: Optional[str] = None
    source: Optional[str] = None
    queue_item_id: Optional[str] = None
    attempt: int = 1
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_ms: Optional[int] = None
    records_processed: Optional[int] = None
    records_failed: Optional[int] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None


# ==================== Queue Schemas ====================

class ManualJobRequest(BaseCreateSchema):
    """Queue a job outside its schedule."""
    job_type: str = Field(..., min_length=1, max_length=50)
    priority: Optional[JobPriority] = None
    source: JobSource = JobSource.MANUAL


class QueueItemResponse(BaseModel):
    id: str
    job_type: str
    priority: str
    source: str
    status: str
    retry_count: int
    max_retries: int
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class QueueStatusResponse(BaseModel):
    pending_count: int
    pending: List[QueueItemResponse]
    processing: Optional[QueueItemResponse] = None
    is_draining: bool
    stats: Dict[str, int]


# ==================== Automation Schemas ====================

class AutomationStatusResponse(BaseModel):
    total_schedules: int
    active_schedules: int
    active_job_types: List[str]
    default_active_type: str
    canonical_intervals: Dict[str, int]
    armed_timers: Dict[str, int]
    pending_queue_items: int


class ResetSchedulesResponse(BaseModel):
    updated: int
    created: int
    active_job_types: List[str]


class CleanupSchedulesResponse(BaseModel):
    removed: int
    kept: int
    duplicates_found: Dict[str, Any]
