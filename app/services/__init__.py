# Services module
from app.services.notification_service import NotificationService

__all__ = ["NotificationService"]
