"""Job completion notifications."""
from app.jobs.definitions import JobType
from app.jobs.processor import QueueProcessor
from app.models.notifications import NotificationType
from app.services.notification_service import NotificationService

from tests.helpers import make_item, recent_notifications


async def test_notify_job_complete_persists_row(session_factory):
    service = NotificationService(session_factory)

    await service.notify_job_complete({
        "job_type": "pos_order_sync",
        "record_id": "abc",
        "processed": 4,
        "failed": 0,
        "duration": 12,
        "source": "system",
    })

    [notification] = await recent_notifications(session_factory)
    assert notification.notification_type == NotificationType.JOB_COMPLETE.value
    assert notification.title == "Job Completed"
    assert notification.message == "POS Order Sync has been completed successfully"
    assert notification.entity_id == "abc"
    assert notification.extra_data["job_data"]["processed"] == 4


async def test_processor_notifies_once_per_completed_run(
    session_factory, queue, executors, run_store, schedule_store,
):
    service = NotificationService(session_factory)
    processor = QueueProcessor(
        queue, executors.registry, run_store, schedule_store,
        notifier=service.notify_job_complete,
    )
    executors.script[JobType.INVENTORY_SYNC] = [RuntimeError("timeout talking to warehouse")]
    queue.push(make_item(JobType.INVENTORY_SYNC))
    queue.push(make_item(JobType.CUSTOMER_SYNC))

    await processor.drain()

    notifications = await recent_notifications(session_factory)
    assert sorted(n.extra_data["job_data"]["job_type"] for n in notifications) == [
        "customer_sync", "inventory_sync",
    ]
