"""External cron trigger for the scheduled push (e.g. every 15 minutes)."""
import hmac
import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import MSG_UNAUTHORIZED, STATUS_UNAUTHORIZED, dispatch_error_to_http
from app.db.session import get_db
from app.services.contentful import get_content_store
from app.services.push import PushSender, get_push_gateway
from app.services.scheduled_dispatch import ContentStore, ScheduledDispatchJob
from app.services.throttle import DispatchThrottle, get_dispatch_throttle

router = APIRouter()
logger = logging.getLogger(__name__)


def is_authorized(authorization: str | None, secret: str) -> bool:
    """Authorization must be exactly "Bearer <secret>". An empty secret authorizes nothing."""
    if not secret or not authorization:
        return False
    return hmac.compare_digest(authorization.encode(), f"Bearer {secret}".encode())


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    if not is_authorized(authorization, settings.cron_secret):
        logger.warning("Scheduled push trigger rejected: bad or missing credential")
        raise HTTPException(status_code=STATUS_UNAUTHORIZED, detail=MSG_UNAUTHORIZED)


@router.api_route(
    "/send-scheduled-notifications",
    methods=["GET", "POST"],
    dependencies=[Depends(require_cron_secret)],
)
def send_scheduled_notifications(
    db: Session = Depends(get_db),
    gateway: PushSender = Depends(get_push_gateway),
    content_store: ContentStore = Depends(get_content_store),
    throttle: DispatchThrottle = Depends(get_dispatch_throttle),
) -> dict[str, Any]:
    """
    Push the newest unseen project to every user whose preferred time is the current quarter-hour slot.
    Requires Authorization: Bearer CRON_SECRET. 500 when recipients can't be read.
    """
    job = ScheduledDispatchJob(db, gateway, content_store, throttle)
    try:
        return job.run()
    except Exception as e:  # noqa: BLE001
        logger.exception("Scheduled push failed")
        raise dispatch_error_to_http(e) from e
