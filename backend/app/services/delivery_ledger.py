"""
Delivery ledger (notification_history): which projects each user was already pushed.

Append-only, read-before-write. Two runs racing on the same (user, project) can both insert;
lookups return a set so duplicates are harmless.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.notification_history import NotificationHistory

logger = logging.getLogger(__name__)


def notified_project_ids(db: Session, user_id: str, project_ids: Iterable[str]) -> set[str]:
    """Subset of project_ids already recorded for user_id. SQLAlchemyError propagates."""
    ids = list(project_ids)
    if not ids:
        return set()
    rows = (
        db.query(NotificationHistory.project_id)
        .filter(NotificationHistory.user_id == user_id, NotificationHistory.project_id.in_(ids))
        .all()
    )
    return {r.project_id for r in rows}


def pending_items(items, notified: set[str]) -> list:
    """Items (any objects with .id) not in notified, input order kept."""
    return [i for i in items if i.id not in notified]


def record_delivery(db: Session, user_id: str, project_id: str, *, now: datetime | None = None) -> bool:
    """
    Append one record after a confirmed send. Returns False (logged, rolled back) on failure:
    the push already went out, so there is nothing to undo.
    """
    try:
        db.add(
            NotificationHistory(
                user_id=user_id,
                project_id=project_id,
                notified_at=now or datetime.now(timezone.utc),
            )
        )
        db.commit()
        return True
    except SQLAlchemyError as e:
        logger.error("Failed to record notification for user %s project %s: %s", user_id, project_id, e)
        db.rollback()
        return False
