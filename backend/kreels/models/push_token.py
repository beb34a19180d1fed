"""Device push token (Expo). Deactivated on logout or DeviceNotRegistered, never deleted."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func, true

from kreels.db.base import Base


class PushToken(Base):
    __tablename__ = "push_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(256), nullable=False, unique=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(16), nullable=False, server_default="unknown")
    device_id = Column(String(128), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    last_used_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
