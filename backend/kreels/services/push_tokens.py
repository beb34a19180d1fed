"""
Push token registry: device tokens per user.

Tokens are upserted on registration and deactivated (not deleted) on logout or when
the push provider reports the device is gone.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Sequence

from sqlalchemy.orm import Session

from kreels.core.errors import InvalidPushTokenError
from kreels.models.push_token import PushToken
from kreels.services.push import is_expo_push_token

logger = logging.getLogger(__name__)


def register_push_token(
    db: Session,
    user_id: str,
    token: str,
    platform: str | None = None,
    device_id: str | None = None,
) -> PushToken:
    """
    Register a device for push. Idempotent: the same token is re-assigned to this user,
    reactivated and its last_used_at refreshed.
    """
    token = (token or "").strip()
    if not is_expo_push_token(token):
        raise InvalidPushTokenError(token)
    now = datetime.now(timezone.utc)
    row = db.query(PushToken).filter(PushToken.token == token).first()
    if row:
        row.user_id = user_id
        row.platform = platform or "unknown"
        row.device_id = device_id
        row.is_active = True
        row.last_used_at = now
    else:
        row = PushToken(
            token=token,
            user_id=user_id,
            platform=platform or "unknown",
            device_id=device_id,
            is_active=True,
            last_used_at=now,
        )
        db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Registered push token for user=%s platform=%s", user_id, row.platform)
    return row


def deactivate_push_token(db: Session, token: str) -> int:
    """Deactivate one token (logout). Unknown token is a no-op. Returns rows changed."""
    return deactivate_push_tokens(db, [token])


def deactivate_push_tokens(db: Session, tokens: Sequence[str]) -> int:
    tokens = [t.strip() for t in tokens if t and t.strip()]
    if not tokens:
        return 0
    updated = (
        db.query(PushToken)
        .filter(PushToken.token.in_(tokens), PushToken.is_active.is_(True))
        .update({PushToken.is_active: False}, synchronize_session=False)
    )
    db.commit()
    if updated:
        logger.info("Deactivated %s push token(s)", updated)
    return updated


def active_tokens_for_user(db: Session, user_id: str) -> list[str]:
    rows = (
        db.query(PushToken.token)
        .filter(PushToken.user_id == user_id, PushToken.is_active.is_(True))
        .all()
    )
    return [r.token for r in rows]


def deactivate_stale_tokens(db: Session, unused_for_days: int) -> int:
    """Deactivate active tokens not registered/used for unused_for_days (uninstalled apps)."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=unused_for_days)
    updated = (
        db.query(PushToken)
        .filter(PushToken.is_active.is_(True), PushToken.last_used_at < cutoff)
        .update({PushToken.is_active: False}, synchronize_session=False)
    )
    db.commit()
    if updated:
        logger.info("Deactivated %s push tokens unused for %s days", updated, unused_for_days)
    return updated
