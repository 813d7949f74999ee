"""Content item shape shared by the webhook, the scheduled job and the push gateway."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.core.constants import CONTENTFUL_LOCALE


def localized(fields: dict[str, Any], name: str, default: Any = None, locale: str = CONTENTFUL_LOCALE) -> Any:
    """Read one field from a management-API payload: {name: {locale: value}}. default if missing or null."""
    value = fields.get(name)
    if not isinstance(value, dict):
        return default
    v = value.get(locale)
    return default if v is None else v


def normalize_categories(raw: Any) -> tuple[str, ...]:
    """Scalar, list or missing -> ordered tuple of non-empty tag strings."""
    if raw is None:
        return ()
    items = raw if isinstance(raw, (list, tuple)) else [raw]
    return tuple(s for s in (str(i).strip() for i in items if i is not None) if s)


def parse_case_number(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class ContentItem:
    """One published project as far as notifications care. Immutable once read."""

    id: str
    title: str
    architect: str | None = None
    categories: tuple[str, ...] = ()
    case_number: int | None = None
    slug: str | None = None
    published_at: datetime | None = None

    def summary(self) -> dict[str, Any]:
        """Identifying fields echoed back in webhook responses."""
        return {
            "id": self.id,
            "title": self.title,
            "case_number": self.case_number,
            "slug": self.slug,
        }
