"""
Contentful publish webhook -> immediate push to every interested recipient.

Processed only when all three hold: topic is Entry.publish, content type is the notifiable one,
and the entry's sendNotification field is true. Anything else is an intentional no-op.
"""
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.config import settings
from app.core.constants import (
    CONTENTFUL_PUBLISH_TOPIC,
    DEFAULT_WEBHOOK_TITLE,
    FIELD_ARCHITECT,
    FIELD_CASE_NUMBER,
    FIELD_CATEGORIES,
    FIELD_SEND_NOTIFICATION,
    FIELD_SLUG,
    FIELD_TITLE,
)
from app.core.errors import InvalidPayloadError
from app.services.delivery_ledger import record_delivery
from app.services.push import PushSender, is_delivered
from app.services.recipients import has_push_token, list_enabled_recipients, matches_categories
from app.services.throttle import DispatchThrottle
from app.services.types import ContentItem, localized, normalize_categories, parse_case_number

logger = logging.getLogger(__name__)


def _ignored(reason: str) -> dict[str, Any]:
    return {"success": True, "message": "Ignored", "reason": reason}


def _content_type_id(sys: dict[str, Any]) -> str | None:
    content_type = sys.get("contentType")
    if not isinstance(content_type, dict):
        return None
    return (content_type.get("sys") or {}).get("id")


def item_from_payload(sys: dict[str, Any], fields: dict[str, Any]) -> ContentItem:
    """Webhook entry -> ContentItem. Missing title -> placeholder, missing categories -> ()."""
    entry_id = sys.get("id")
    if not entry_id:
        raise InvalidPayloadError("Entry payload has no sys.id")
    title = str(localized(fields, FIELD_TITLE, "") or "").strip() or DEFAULT_WEBHOOK_TITLE
    architect = str(localized(fields, FIELD_ARCHITECT, "") or "").strip() or None
    return ContentItem(
        id=str(entry_id),
        title=title,
        architect=architect,
        categories=normalize_categories(localized(fields, FIELD_CATEGORIES)),
        case_number=parse_case_number(localized(fields, FIELD_CASE_NUMBER)),
        slug=localized(fields, FIELD_SLUG) or None,
    )


class PublishEventHandler:
    def __init__(
        self,
        db: Session,
        gateway: PushSender,
        throttle: DispatchThrottle,
        *,
        content_type: str | None = None,
    ) -> None:
        self.db = db
        self.gateway = gateway
        self.throttle = throttle
        self.content_type = content_type or settings.contentful_content_type

    def handle(self, topic: str | None, payload: Any) -> dict[str, Any]:
        """
        Process one webhook delivery. Returns the response summary.
        Raises InvalidPayloadError (400) for a body that is not a JSON object, or a publish
        event without a sys object; RecipientStoreError (500) when recipients cannot be read.
        """
        if not isinstance(payload, dict):
            raise InvalidPayloadError("Webhook body must be a JSON object")
        if topic != CONTENTFUL_PUBLISH_TOPIC:
            logger.debug("Webhook ignored: topic %s", topic)
            return _ignored("topic")
        if not isinstance(payload.get("sys"), dict):
            raise InvalidPayloadError("Publish event body must have a sys object")
        sys = payload["sys"]
        fields = payload.get("fields") if isinstance(payload.get("fields"), dict) else {}

        if _content_type_id(sys) != self.content_type:
            logger.debug("Webhook ignored: content type %s", _content_type_id(sys))
            return _ignored("content_type")
        if localized(fields, FIELD_SEND_NOTIFICATION) is not True:
            logger.info("Webhook ignored: sendNotification not set on entry %s", sys.get("id"))
            return _ignored("send_notification_disabled")

        item = item_from_payload(sys, fields)
        recipients = list_enabled_recipients(self.db)

        sent = skipped = errors = 0
        for recipient in recipients:
            if not matches_categories(recipient.categories, item):
                skipped += 1
                continue
            if not has_push_token(recipient):
                logger.debug("Recipient %s has no push token; skipping", recipient.user_id)
                skipped += 1
                continue
            try:
                result = self.throttle.run(self.gateway.send, recipient.push_token, item)
            except Exception as e:
                logger.warning("Push to user %s raised: %s", recipient.user_id, e, exc_info=True)
                errors += 1
                continue
            if not is_delivered(result):
                logger.warning("Failed to send to user %s: %s", recipient.user_id, result)
                errors += 1
                continue
            sent += 1
            record_delivery(self.db, recipient.user_id, item.id)

        logger.info(
            "Webhook push for project %s (%s): sent=%s skipped=%s errors=%s",
            item.id, item.title, sent, skipped, errors,
        )
        return {
            "success": True,
            "sent": sent,
            "skipped": skipped,
            "errors": errors,
            "project": item.summary(),
        }
