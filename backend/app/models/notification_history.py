"""Delivery ledger: one row per (user, project) push that the gateway accepted.

Append-only. No unique constraint on (user_id, project_id): concurrent runs may both insert,
readers treat the rows as a set.
"""
from sqlalchemy import Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func

from app.db.base import Base


class NotificationHistory(Base):
    __tablename__ = "notification_history"
    __table_args__ = (Index("ix_notification_history_user_project", "user_id", "project_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(64), nullable=False)
    notified_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
