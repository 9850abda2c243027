from services.communication.notification_service import (
    NotificationDispatcher,
    NotificationService,
    notification_dispatcher,
)

__all__ = [
    "NotificationDispatcher",
    "NotificationService",
    "notification_dispatcher",
]
