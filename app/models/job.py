import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Integer, Boolean, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobSchedule(Base):
    """
    Recurring policy for one job type.
    At steady state there is exactly one row per job_type; duplicates are
    repaired by the automation cleanup.
    """
    __tablename__ = "job_schedules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    # Not unique on purpose: duplicates can exist and get cleaned up
    job_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # Types: order_sync, customer_sync, inventory_sync, online_order_sync, pos_order_sync

    interval_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    priority: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
    # Priorities: low, medium, high, critical

    max_retries: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    last_run: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_run: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<JobSchedule(type='{self.job_type}', interval={self.interval_minutes}, "
            f"active={self.is_active})>"
        )


class JobRun(Base):
    """
    Append-only audit entry for one execution attempt of a queue item.
    """
    __tablename__ = "job_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    job_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="running")
    # Statuses: pending (attempt failed, will retry), running, completed, failed

    priority: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Queue bookkeeping
    queue_item_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    attempt: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    records_processed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    records_failed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True
    )

    __table_args__ = (
        Index('ix_job_runs_type_status', 'job_type', 'status'),
    )

    def __repr__(self) -> str:
        return f"<JobRun(type='{self.job_type}', status='{self.status}', attempt={self.attempt})>"
