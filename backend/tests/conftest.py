# backend/tests/conftest.py
"""
Pytest configuration for the project notify backend tests.

- Ensures that the project root (backend/) is added to sys.path
  so that `import app.*` works correctly in tests.
- Sets safe dummy environment variables before app.config is imported.
- Provides an in-memory SQLite session, a fake push gateway and a fake content store.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

import pytest


def _ensure_project_root_in_sys_path() -> None:
    # This file is located at: backend/tests/conftest.py
    # parents[1] -> backend/
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)

    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)


def _ensure_test_env_vars() -> None:
    """
    Set dummy environment variables required for tests.

    These values are only for local testing and do NOT contain real secrets.
    """
    os.environ.setdefault("DATABASE_URL", "sqlite://")
    os.environ.setdefault("CRON_SECRET", "test-cron-secret")
    os.environ.setdefault("CONTENTFUL_SPACE_ID", "test-space")
    os.environ.setdefault("CONTENTFUL_ACCESS_TOKEN", "test-delivery-token")
    os.environ.setdefault("SCHEDULED_DISPATCH_ENABLED", "false")


_ensure_project_root_in_sys_path()
_ensure_test_env_vars()

from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.db.base import Base  # noqa: E402
from app.models import NotificationHistory, PushRecipient  # noqa: E402
from app.services.throttle import DispatchThrottle  # noqa: E402
from app.services.types import ContentItem  # noqa: E402

CRON_SECRET = os.environ["CRON_SECRET"]

OK_TICKET = {"data": {"status": "ok", "id": "ticket-1"}}
ERROR_TICKET = {"data": {"status": "error", "message": "DeviceNotRegistered"}}


class FakePushGateway:
    """Records every send; returns `response` (or per-token overrides)."""

    def __init__(self, response: Optional[dict] = None, per_token: Optional[dict] = None) -> None:
        self.response = OK_TICKET if response is None else response
        self.per_token = per_token or {}
        self.calls: List[tuple] = []

    def send(self, token: str, item: ContentItem) -> Any:
        self.calls.append((token, item))
        if token in self.per_token:
            outcome = self.per_token[token]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return self.response


class FakeContentStore:
    def __init__(self, items: Optional[List[ContentItem]] = None) -> None:
        self.items = list(items or [])
        self.calls: List[datetime] = []

    def recent_items(self, since: datetime) -> List[ContentItem]:
        self.calls.append(since)
        return list(self.items)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


class DatabaseOutage:
    """
    before_cursor_execute hook. Once `down` is set every statement fails; with
    `trip_on_insert` the first INSERT takes the database down.
    """

    def __init__(self) -> None:
        self.down = False
        self.trip_on_insert = False
        self.statements: List[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)
        if self.trip_on_insert and statement.lstrip().upper().startswith("INSERT"):
            self.down = True
        if self.down:
            raise OperationalError(statement, parameters, Exception("database is down"))

    def selects_from(self, table: str) -> int:
        return sum(
            1 for s in self.statements if s.lstrip().upper().startswith("SELECT") and f"FROM {table}" in s
        )


@pytest.fixture
def db_outage(engine):
    outage = DatabaseOutage()
    event.listen(engine, "before_cursor_execute", outage)
    yield outage
    event.remove(engine, "before_cursor_execute", outage)


@pytest.fixture
def gateway() -> FakePushGateway:
    return FakePushGateway()


@pytest.fixture
def content_store() -> FakeContentStore:
    return FakeContentStore()


@pytest.fixture
def throttle() -> DispatchThrottle:
    return DispatchThrottle(0)


@pytest.fixture
def add_recipient(db_session):
    def _add(
        user_id: str,
        *,
        token: Optional[str] = None,
        enabled: bool = True,
        categories: Optional[list] = None,
        hour: Optional[int] = None,
        minute: Optional[int] = None,
    ) -> PushRecipient:
        row = PushRecipient(
            user_id=user_id,
            push_token=f"ExponentPushToken[{user_id}]" if token is None else token,
            notifications_enabled=enabled,
            category_preferences=categories,
            notification_hour=hour,
            notification_minute=minute,
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _add


@pytest.fixture
def history_rows(db_session):
    def _rows(user_id: Optional[str] = None) -> List[NotificationHistory]:
        q = db_session.query(NotificationHistory)
        if user_id is not None:
            q = q.filter(NotificationHistory.user_id == user_id)
        return q.all()

    return _rows


def make_item(item_id: str, title: str = "North Tower", **kwargs) -> ContentItem:
    kwargs.setdefault("published_at", datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc))
    return ContentItem(id=item_id, title=title, **kwargs)
