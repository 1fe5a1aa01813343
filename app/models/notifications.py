"""Database models for Notifications module."""
from datetime import datetime, timezone
from uuid import uuid4
from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, Boolean, Index

from app.database import Base
from app.db_types import UUIDType, JSONType


class NotificationType(str, Enum):
    """Types of notifications."""
    JOB_COMPLETE = "JOB_COMPLETE"


class NotificationPriority(str, Enum):
    """Priority levels for notifications."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Notification(Base):
    """
    Notification model - stores back-office notifications for completed jobs.
    """
    __tablename__ = "notifications"

    id = Column(UUIDType, primary_key=True, default=uuid4)

    # Notification content
    notification_type = Column(String(50), nullable=False, index=True, comment="JOB_COMPLETE")
    priority = Column(String(20), default="MEDIUM", nullable=False, comment="LOW, MEDIUM, HIGH, URGENT")

    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    # Reference to related entity
    entity_type = Column(String(50))  # e.g., "job_run"
    entity_id = Column(String(64))

    # Additional data as JSON
    extra_data = Column(JSONType, default=dict)

    # Status
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime(timezone=True))

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        Index('ix_notifications_type_unread', 'notification_type', 'is_read'),
        Index('ix_notifications_created', 'created_at'),
    )
