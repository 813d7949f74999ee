from app.models.notification_history import NotificationHistory
from app.models.push_recipient import PushRecipient

__all__ = [
    "NotificationHistory",
    "PushRecipient",
]
