"""
Inbox side of notifications: list, unread count, mark read, delete, retention prune.

Unread count is always a live COUNT over unread rows; there is no cached counter.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.orm import Session

from kreels.core.errors import NotificationNotFoundError
from kreels.models.notification import Notification

logger = logging.getLogger(__name__)


def serialize_actor(actor) -> dict[str, Any] | None:
    if actor is None:
        return None
    return {
        "id": actor.id,
        "display_name": actor.display_name,
        "avatar": actor.avatar,
        "username": actor.username,
    }


def serialize_notification(row: Notification) -> dict[str, Any]:
    return {
        "id": row.id,
        "type": row.type,
        "title": row.title,
        "body": row.body,
        "data": row.data or {},
        "image_url": row.image_url,
        "actor_id": row.actor_id,
        "target_id": row.target_id,
        "target_type": row.target_type,
        "is_read": bool(row.is_read),
        "read_at": row.read_at.isoformat() if row.read_at else None,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "actor": serialize_actor(row.actor),
    }


def unread_count(db: Session, user_id: str) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def list_notifications(
    db: Session,
    user_id: str,
    page: int = 1,
    limit: int = 20,
    unread_only: bool = False,
) -> tuple[list[Notification], int, int]:
    """Newest first. Returns (rows for the page, total matching, unread count)."""
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    total = q.count()
    rows = (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total, unread_count(db, user_id)


def mark_read(db: Session, user_id: str, notification_id: int) -> Notification:
    """Idempotent: read_at is set on the first transition only."""
    row = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not row:
        raise NotificationNotFoundError(notification_id)
    if not row.is_read:
        row.is_read = True
        row.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(row)
    return row


def mark_all_read(db: Session, user_id: str) -> int:
    """Mark every unread notification read. Already-read rows keep their read_at."""
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update(
            {Notification.is_read: True, Notification.read_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
    )
    db.commit()
    return updated


def delete_notification(db: Session, user_id: str, notification_id: int) -> bool:
    deleted = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted > 0


def prune_read_notifications(db: Session, older_than_days: int) -> int:
    """Delete read notifications created more than older_than_days ago. Unread rows are kept."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
    deleted = (
        db.query(Notification)
        .filter(Notification.is_read.is_(True), Notification.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("Pruned %s read notifications older than %s days", deleted, older_than_days)
    return deleted
