"""Contentful webhook: push newly published projects to every interested recipient."""
import logging
from json import JSONDecodeError
from typing import Any, NoReturn

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.core.constants import CONTENTFUL_TOPIC_HEADER
from app.core.errors import InvalidPayloadError, dispatch_error_to_http
from app.db.session import get_db
from app.services.publish_handler import PublishEventHandler
from app.services.push import PushSender, get_push_gateway
from app.services.throttle import DispatchThrottle, get_dispatch_throttle

router = APIRouter()
logger = logging.getLogger(__name__)


def _handle_webhook_error(exc: Exception) -> NoReturn:
    if isinstance(exc, InvalidPayloadError):
        logger.warning("Webhook rejected: %s", exc)
    else:
        logger.exception("Webhook error")
    raise dispatch_error_to_http(exc) from exc


@router.post("/contentful")
async def contentful_webhook(
    request: Request,
    topic: str | None = Header(None, alias=CONTENTFUL_TOPIC_HEADER),
    db: Session = Depends(get_db),
    gateway: PushSender = Depends(get_push_gateway),
    throttle: DispatchThrottle = Depends(get_dispatch_throttle),
) -> dict[str, Any]:
    """
    Contentful publish webhook. 200 for processed or ignored events (wrong topic, other content
    type, sendNotification off), 400 for a missing/unparseable body, 500 when recipients can't be read.
    """
    try:
        payload = await request.json()
    except (JSONDecodeError, UnicodeDecodeError) as e:
        _handle_webhook_error(InvalidPayloadError(f"Invalid JSON body: {e}"))
    sys = payload.get("sys") if isinstance(payload, dict) else None
    logger.info("Webhook received: topic=%s entry=%s", topic, sys.get("id") if isinstance(sys, dict) else None)

    handler = PublishEventHandler(db, gateway, throttle)
    try:
        return await run_in_threadpool(handler.handle, topic, payload)
    except Exception as e:  # noqa: BLE001
        _handle_webhook_error(e)
