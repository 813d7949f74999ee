from app.services.publish_handler import PublishEventHandler
from app.services.scheduled_dispatch import ScheduledDispatchJob

__all__ = ["PublishEventHandler", "ScheduledDispatchJob"]
