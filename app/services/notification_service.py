"""
Back-office Notification Service

Persists in-app notifications for job lifecycle events. Used as the job
scheduler's completion notifier.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.notifications import Notification, NotificationType, NotificationPriority


logger = logging.getLogger(__name__)


JOB_TITLES = {
    "customer_sync": "Customer Sync",
    "order_sync": "Order Sync",
    "inventory_sync": "Inventory Sync",
    "online_order_sync": "Online Order Sync",
    "pos_order_sync": "POS Order Sync",
}


class NotificationService:
    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_factory is None:
            from app.database import async_session_factory
            session_factory = async_session_factory
        self._session_factory = session_factory

    async def create_notification(
        self,
        notification_type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        async with self._session_factory() as session:
            notification = Notification(
                notification_type=notification_type.value,
                priority=priority.value,
                title=title,
                message=message,
                entity_type=entity_type,
                entity_id=entity_id,
                extra_data=extra_data or {},
            )
            session.add(notification)
            await session.commit()
            return notification

    async def notify_job_complete(self, payload: Dict[str, Any]) -> Notification:
        """
        Record a completed job run.

        Args:
            payload: {job_type, record_id, processed, failed, duration, source}
        """
        job_type = payload.get("job_type", "")
        job_name = JOB_TITLES.get(job_type, job_type)
        notification = await self.create_notification(
            NotificationType.JOB_COMPLETE,
            title="Job Completed",
            message=f"{job_name} has been completed successfully",
            priority=NotificationPriority.LOW,
            entity_type="job_run",
            entity_id=payload.get("record_id"),
            extra_data={"job_data": payload},
        )
        logger.debug(f"Job completion notification created for {job_type}")
        return notification
