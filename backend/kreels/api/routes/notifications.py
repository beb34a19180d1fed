"""
Notifications API: inbox, read state and per-user settings.

All routes need a Bearer token; the recipient is always the authenticated user.
Supports: list (paged, unread filter), unread count, mark one read, mark all read, delete,
get settings (created on first read), update settings (partial).
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from kreels.api.deps import current_user_id
from kreels.core.constants import NOTIFICATIONS_DEFAULT_LIMIT, NOTIFICATIONS_MAX_LIMIT
from kreels.core.errors import NotificationNotFoundError, error_to_http
from kreels.db.session import get_db
from kreels.services import notification_inbox, preferences
from kreels.services.notification_inbox import serialize_notification

router = APIRouter()
logger = logging.getLogger(__name__)


# --- List ---


@router.get("")
def list_notifications(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
    page: int = Query(1, ge=1),
    limit: int = Query(NOTIFICATIONS_DEFAULT_LIMIT, ge=1),
    unread_only: bool = Query(False, alias="unreadOnly"),
) -> dict[str, Any]:
    """List notifications newest first. Limit is capped at 50."""
    limit = min(limit, NOTIFICATIONS_MAX_LIMIT)
    try:
        rows, total, unread = notification_inbox.list_notifications(
            db, user_id, page=page, limit=limit, unread_only=unread_only
        )
    except Exception as e:
        logger.exception("Error fetching notifications: %s", e)
        raise error_to_http(e, "Failed to fetch notifications")
    return {
        "success": True,
        "data": [serialize_notification(r) for r in rows],
        "unread_count": unread,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        },
    }


@router.get("/unread-count")
def get_unread_count(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    try:
        count = notification_inbox.unread_count(db, user_id)
    except Exception as e:
        logger.exception("Error getting unread count: %s", e)
        raise error_to_http(e, "Failed to get unread count")
    return {"success": True, "data": {"count": count}}


# --- Read state ---


@router.put("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Mark all unread notifications read (e.g. 'Clear all' in UI)."""
    try:
        marked = notification_inbox.mark_all_read(db, user_id)
    except Exception as e:
        logger.exception("Error marking all notifications as read: %s", e)
        raise error_to_http(e, "Failed to mark notifications as read")
    return {"success": True, "data": {"marked_count": marked, "unread_count": 0}}


@router.put("/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Mark a single notification read. Marking it again keeps the first read_at."""
    try:
        row = notification_inbox.mark_read(db, user_id, notification_id)
        unread = notification_inbox.unread_count(db, user_id)
    except NotificationNotFoundError as e:
        raise error_to_http(e)
    except Exception as e:
        logger.exception("Error marking notification as read: %s", e)
        raise error_to_http(e, "Failed to mark notification as read")
    return {"success": True, "data": {"notification": serialize_notification(row), "unread_count": unread}}


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    try:
        deleted = notification_inbox.delete_notification(db, user_id, notification_id)
    except Exception as e:
        logger.exception("Error deleting notification: %s", e)
        raise error_to_http(e, "Failed to delete notification")
    return {"success": True, "data": {"deleted": deleted}}


# --- Settings ---


class SettingsBody(BaseModel):
    push_enabled: bool | None = None
    push_follows: bool | None = None
    push_likes: bool | None = None
    push_comments: bool | None = None
    push_gifts: bool | None = None
    push_challenges: bool | None = None
    push_live_streams: bool | None = None
    push_wallet: bool | None = None
    push_profile_reminders: bool | None = None
    in_app_enabled: bool | None = None
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    quiet_hours_end: str | None = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


def _serialize_settings(row) -> dict[str, Any]:
    data = {f: getattr(row, f) for f in preferences.EDITABLE_FIELDS}
    data["user_id"] = row.user_id
    return data


@router.get("/settings")
def get_notification_settings(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    try:
        row = preferences.get_or_create_settings(db, user_id)
    except Exception as e:
        logger.exception("Error getting notification settings: %s", e)
        raise error_to_http(e, "Failed to get notification settings")
    return {"success": True, "data": _serialize_settings(row)}


@router.put("/settings")
def update_notification_settings(
    body: SettingsBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Partial update: only fields present in the body change."""
    try:
        row = preferences.update_settings(db, user_id, body.model_dump(exclude_unset=True))
    except Exception as e:
        logger.exception("Error updating notification settings: %s", e)
        raise error_to_http(e, "Failed to update notification settings")
    return {"success": True, "data": _serialize_settings(row)}
