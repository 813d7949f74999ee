"""Contentful Content Delivery API client: recently published projects for the scheduled job.

Delivery-API entries carry resolved field values (no locale nesting), unlike webhook payloads.
Credentials from CONTENTFUL_SPACE_ID / CONTENTFUL_ACCESS_TOKEN or constructor args.
"""
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import httpx

from app.config import settings
from app.core.constants import (
    DEFAULT_DELIVERY_TITLE,
    FIELD_ARCHITECT,
    FIELD_CASE_NUMBER,
    FIELD_CATEGORIES,
    FIELD_SLUG,
    FIELD_TITLE,
)
from app.services.types import ContentItem, normalize_categories, parse_case_number

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://cdn.contentful.com"
ENTRIES_LIMIT = 100


def _parse_datetime(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def entry_to_item(entry: dict[str, Any]) -> ContentItem:
    """Delivery-API entry -> ContentItem. Missing title gets a placeholder."""
    sys = entry.get("sys") or {}
    fields = entry.get("fields") or {}
    architect = (fields.get(FIELD_ARCHITECT) or "").strip() or None
    return ContentItem(
        id=str(sys.get("id") or ""),
        title=(fields.get(FIELD_TITLE) or "").strip() or DEFAULT_DELIVERY_TITLE,
        architect=architect,
        categories=normalize_categories(fields.get(FIELD_CATEGORIES)),
        case_number=parse_case_number(fields.get(FIELD_CASE_NUMBER)),
        slug=fields.get(FIELD_SLUG) or None,
        published_at=_parse_datetime(sys.get("createdAt")),
    )


class ContentfulClient:
    """Read-only project lookups. transport is for tests (httpx.MockTransport)."""

    def __init__(
        self,
        *,
        space_id: str | None = None,
        access_token: str | None = None,
        environment: str | None = None,
        content_type: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.space_id = (space_id or settings.contentful_space_id).strip()
        self.access_token = (access_token or settings.contentful_access_token).strip()
        self.environment = environment or settings.contentful_environment
        self.content_type = content_type or settings.contentful_content_type
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.space_id and self.access_token)

    def recent_items(self, since: datetime) -> list[ContentItem]:
        """
        Projects created at or after `since`, newest first.
        Any failure (config, transport, HTTP, parse) is logged and returns [] so the job no-ops.
        """
        if not self.is_configured():
            logger.warning("Contentful not configured (CONTENTFUL_SPACE_ID / CONTENTFUL_ACCESS_TOKEN); no projects")
            return []
        url = f"{self.base_url}/spaces/{self.space_id}/environments/{self.environment}/entries"
        params = {
            "content_type": self.content_type,
            "sys.createdAt[gte]": since.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
            "order": "-sys.createdAt",
            "limit": ENTRIES_LIMIT,
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as c:
                r = c.get(url, params=params, headers=headers)
            r.raise_for_status()
            items = r.json().get("items") or []
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error fetching projects from Contentful: %s", e)
            return []
        return [entry_to_item(entry) for entry in items if (entry.get("sys") or {}).get("id")]


@lru_cache(maxsize=1)
def get_content_store() -> ContentfulClient:
    return ContentfulClient()
