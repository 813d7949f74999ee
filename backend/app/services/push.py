"""
Send push notifications via the Expo push service.
One JSON POST per device token; Expo answers {"data": {"status": "ok" | "error", ...}}.
EXPO_ACCESS_TOKEN is only required when enhanced push security is turned on for the project.

The gateway never raises and never touches the database: callers decide what a response means
(see is_delivered) and whether to record it.
"""
import logging
from functools import lru_cache
from typing import Any, Protocol

import httpx

from app.config import settings
from app.core.constants import PUSH_BADGE, PUSH_SCREEN, PUSH_SOUND, PUSH_TITLE
from app.services.types import ContentItem

logger = logging.getLogger(__name__)


def build_message(token: str, item: ContentItem) -> dict[str, Any]:
    """Expo message for one device: title/body from the project, projectId + screen for deep-linking."""
    body = f"{item.title} by {item.architect}" if item.architect else item.title
    return {
        "to": token,
        "sound": PUSH_SOUND,
        "title": PUSH_TITLE,
        "body": body,
        "data": {
            "projectId": item.id,
            "screen": PUSH_SCREEN,
        },
        "badge": PUSH_BADGE,
    }


def is_delivered(response: dict[str, Any] | None) -> bool:
    """True only for an explicit per-message "ok" ticket. None, errors and odd shapes are failures."""
    if not isinstance(response, dict):
        return False
    data = response.get("data")
    return isinstance(data, dict) and data.get("status") == "ok"


class PushSender(Protocol):
    """Interface the webhook and the scheduled job dispatch through."""

    def send(self, token: str, item: ContentItem) -> dict[str, Any] | None:
        """Send one push. Parsed gateway response, or None on failure. Never raises."""
        ...


class ExpoPushGateway:
    """Expo push client. transport is for tests (httpx.MockTransport)."""

    def __init__(
        self,
        *,
        url: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url or settings.expo_push_url
        self._access_token = (access_token if access_token is not None else settings.expo_access_token).strip()
        self._timeout = timeout if timeout is not None else settings.push_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def send(self, token: str, item: ContentItem) -> dict[str, Any] | None:
        """
        Send one push to one device. Returns Expo's parsed JSON, or None on transport,
        HTTP or parse failure (already logged). Callers treat None like a non-"ok" ticket.
        """
        message = build_message(token, item)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                resp = client.post(self._url, json=message, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("Expo push request failed for token %s...: %s", token[:20], e)
            return None
        if not resp.is_success:
            logger.warning("Expo push returned %s for token %s...: %s", resp.status_code, token[:20], resp.text[:500])
            return None
        try:
            return resp.json()
        except ValueError as e:
            logger.warning("Expo push response was not JSON for token %s...: %s", token[:20], e)
            return None


@lru_cache(maxsize=1)
def get_push_gateway() -> ExpoPushGateway:
    """Process-wide gateway built from settings on first use."""
    return ExpoPushGateway()
