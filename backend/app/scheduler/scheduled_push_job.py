"""Runs every SCHEDULED_DISPATCH_INTERVAL_MINUTES when the in-process scheduler is enabled: same work as the cron endpoint."""
import logging

from app.db.session import SessionLocal
from app.services.contentful import get_content_store
from app.services.push import get_push_gateway
from app.services.scheduled_dispatch import ScheduledDispatchJob
from app.services.throttle import get_dispatch_throttle

logger = logging.getLogger(__name__)


def run_scheduled_push_job() -> None:
    db = SessionLocal()
    try:
        ScheduledDispatchJob(
            db,
            get_push_gateway(),
            get_content_store(),
            get_dispatch_throttle(),
        ).run()
    except Exception as e:
        logger.exception("Scheduled push job failed: %s", e)
        db.rollback()
    finally:
        db.close()
