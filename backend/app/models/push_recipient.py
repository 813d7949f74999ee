"""Push recipient: one row per app user, written by the app's registration flow, read-only here.

category_preferences: JSON list of category tags; NULL or [] means every project qualifies.
notification_hour / notification_minute: preferred delivery slot for the scheduled job
(in settings.notification_timezone); NULL means the user only gets publish-time pushes.
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, false
from sqlalchemy.sql import func

from app.db.base import Base


class PushRecipient(Base):
    __tablename__ = "user_push_tokens"
    __table_args__ = (
        Index("ix_user_push_tokens_schedule", "notifications_enabled", "notification_hour", "notification_minute"),
    )

    user_id = Column(String(64), primary_key=True)
    push_token = Column(String(256), nullable=False)
    notifications_enabled = Column(Boolean, nullable=False, default=False, server_default=false(), index=True)
    category_preferences = Column(JSON, nullable=True)
    notification_hour = Column(Integer, nullable=True)
    notification_minute = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
