# Models module
from app.models.job import JobSchedule, JobRun
from app.models.notifications import Notification, NotificationType, NotificationPriority

__all__ = [
    "JobSchedule",
    "JobRun",
    "Notification",
    "NotificationType",
    "NotificationPriority",
]
