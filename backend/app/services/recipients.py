"""
Recipient store: who gets pushes, and for which projects.

Read-only. Rows come back in the order the database returns them; callers process them in that order.
A failed query raises RecipientStoreError because without it the recipient set is unknown.

Queries return plain Recipient snapshots, not ORM rows: dispatch loops commit and roll back the
same session per send, and a rollback expires every loaded row.
"""
import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import SLOT_TOLERANCE_MINUTES
from app.core.errors import RecipientStoreError
from app.models.push_recipient import PushRecipient
from app.services.types import ContentItem, normalize_categories

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    user_id: str
    push_token: str | None
    categories: tuple[str, ...] = ()

    @classmethod
    def from_row(cls, row: PushRecipient) -> "Recipient":
        return cls(
            user_id=row.user_id,
            push_token=row.push_token,
            categories=normalize_categories(row.category_preferences),
        )


def list_enabled_recipients(db: Session) -> list[Recipient]:
    try:
        rows = db.query(PushRecipient).filter(PushRecipient.notifications_enabled.is_(True)).all()
        return [Recipient.from_row(r) for r in rows]
    except SQLAlchemyError as e:
        logger.exception("Error fetching enabled recipients: %s", e)
        raise RecipientStoreError("Could not load recipients") from e


def list_recipients_for_slot(
    db: Session,
    hour: int,
    minute: int,
    tolerance: int = SLOT_TOLERANCE_MINUTES,
) -> list[Recipient]:
    """Enabled recipients whose preferred time is `hour` and minute within [minute - tolerance, minute + tolerance]."""
    try:
        rows = (
            db.query(PushRecipient)
            .filter(
                PushRecipient.notifications_enabled.is_(True),
                PushRecipient.notification_hour == hour,
                PushRecipient.notification_minute >= minute - tolerance,
                PushRecipient.notification_minute <= minute + tolerance,
            )
            .all()
        )
        return [Recipient.from_row(r) for r in rows]
    except SQLAlchemyError as e:
        logger.exception("Error fetching recipients for %02d:%02d: %s", hour, minute, e)
        raise RecipientStoreError("Could not load recipients") from e


def matches_categories(preferences: Iterable[str], item: ContentItem) -> bool:
    """No preference = every project. Otherwise at least one shared tag."""
    prefs = set(preferences)
    if not prefs:
        return True
    return bool(prefs.intersection(item.categories))


def has_push_token(recipient: Recipient) -> bool:
    return bool((recipient.push_token or "").strip())
