"""Per-user notification switches. One row per user, created lazily with everything on.

Quiet hours are "HH:MM" UTC wall-clock strings; the window may wrap midnight.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import false, func, true

from kreels.db.base import Base


class NotificationSettings(Base):
    __tablename__ = "notification_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    push_enabled = Column(Boolean, nullable=False, default=True, server_default=true())
    push_follows = Column(Boolean, nullable=False, default=True, server_default=true())
    push_likes = Column(Boolean, nullable=False, default=True, server_default=true())
    push_comments = Column(Boolean, nullable=False, default=True, server_default=true())
    push_gifts = Column(Boolean, nullable=False, default=True, server_default=true())
    push_challenges = Column(Boolean, nullable=False, default=True, server_default=true())
    push_live_streams = Column(Boolean, nullable=False, default=True, server_default=true())
    push_wallet = Column(Boolean, nullable=False, default=True, server_default=true())
    push_profile_reminders = Column(Boolean, nullable=False, default=True, server_default=true())
    in_app_enabled = Column(Boolean, nullable=False, default=True, server_default=true())
    quiet_hours_enabled = Column(Boolean, nullable=False, default=False, server_default=false())
    quiet_hours_start = Column(String(5), nullable=True)  # "22:00"
    quiet_hours_end = Column(String(5), nullable=True)  # "07:00"
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
