"""
Scheduled push: each run serves one quarter-hour slot.

1. Round "now" (settings.notification_timezone) to the nearest quarter hour -> effective slot.
2. Load projects published in the last RECENT_WINDOW_HOURS, newest first.
3. Load enabled recipients whose preferred time is within ±7 minutes of the slot.
4. Per recipient: newest project not yet in notification_history -> one push -> record on "ok".

The ±7 window plus rounding tolerates trigger jitter; the history lookup is what prevents repeats.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.constants import SLOT_MINUTES
from app.services.delivery_ledger import notified_project_ids, pending_items, record_delivery
from app.services.push import PushSender, is_delivered
from app.services.recipients import has_push_token, list_recipients_for_slot
from app.services.throttle import DispatchThrottle
from app.services.types import ContentItem

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    def recent_items(self, since: datetime) -> list[ContentItem]:
        """Projects published at or after `since`, newest first. [] on failure."""
        ...


def effective_slot(hour: int, minute: int) -> tuple[int, int]:
    """
    Round to the nearest quarter hour, carrying into the next hour.
    0-7 -> :00, 8-22 -> :15, 23-37 -> :30, 38-52 -> :45, 53-59 -> next hour :00.
    """
    rounded = (minute + SLOT_MINUTES // 2) // SLOT_MINUTES * SLOT_MINUTES
    if rounded == 60:
        return (hour + 1) % 24, 0
    return hour, rounded


def format_slot(hour: int, minute: int, tz_name: str) -> str:
    return f"{hour}:{minute:02d} {tz_name}"


class ScheduledDispatchJob:
    def __init__(
        self,
        db: Session,
        gateway: PushSender,
        content_store: ContentStore,
        throttle: DispatchThrottle,
        *,
        tz_name: str | None = None,
        recent_window_hours: int | None = None,
    ) -> None:
        self.db = db
        self.gateway = gateway
        self.content_store = content_store
        self.throttle = throttle
        self.tz_name = tz_name or settings.notification_timezone
        self.recent_window_hours = recent_window_hours or settings.recent_window_hours

    def run(self, now: datetime | None = None) -> dict[str, Any]:
        """
        One run for the slot containing `now` (default: current time).
        Raises RecipientStoreError when the slot's recipients cannot be loaded.
        """
        now = now or datetime.now(timezone.utc)
        local = now.astimezone(ZoneInfo(self.tz_name))
        hour, minute = effective_slot(local.hour, local.minute)
        slot = format_slot(hour, minute, self.tz_name)
        logger.info("Scheduled push started at %s; serving slot %s", now.isoformat(), slot)

        projects = self.content_store.recent_items(now - timedelta(hours=self.recent_window_hours))
        if not projects:
            logger.info("Scheduled push: no projects published in the last %sh", self.recent_window_hours)
            return {"message": "No new projects to notify about", "time": slot}

        users = list_recipients_for_slot(self.db, hour, minute)
        if not users:
            logger.info("Scheduled push: no users scheduled for %s (%s projects available)", slot, len(projects))
            return {
                "message": "No users scheduled for notifications at this time",
                "time": slot,
                "projects_available": len(projects),
            }

        project_ids = [p.id for p in projects]
        sent = already_notified = errors = 0
        for user in users:
            try:
                notified = notified_project_ids(self.db, user.user_id, project_ids)
            except SQLAlchemyError as e:
                logger.error("Error reading notification history for user %s: %s", user.user_id, e)
                self.db.rollback()
                errors += 1
                continue
            pending = pending_items(projects, notified)
            if not pending:
                logger.debug("User %s already notified of all projects", user.user_id)
                already_notified += 1
                continue
            if not has_push_token(user):
                logger.warning("User %s is scheduled but has no push token", user.user_id)
                errors += 1
                continue

            project = pending[0]
            try:
                result = self.throttle.run(self.gateway.send, user.push_token, project)
            except Exception as e:
                logger.warning("Push to user %s raised: %s", user.user_id, e, exc_info=True)
                errors += 1
                continue
            if not is_delivered(result):
                logger.error("Failed to send to user %s: %s", user.user_id, result)
                errors += 1
                continue
            record_delivery(self.db, user.user_id, project.id)
            sent += 1
            logger.info("Sent notification to user %s about %r", user.user_id, project.title)

        logger.info(
            "Scheduled push %s: projects=%s users=%s sent=%s already_notified=%s errors=%s",
            slot, len(projects), len(users), sent, already_notified, errors,
        )
        return {
            "success": True,
            "time": slot,
            "projects_available": len(projects),
            "users_scheduled": len(users),
            "notifications_sent": sent,
            "already_notified": already_notified,
            "errors": errors,
        }
