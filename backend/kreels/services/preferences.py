"""
Notification preference store: per-user switches and the gates built on them.

No settings row means everything is enabled. Rows are created lazily on first read
(GET /api/notifications/settings) and only changed by their owner.
"""
import logging
from datetime import datetime, time, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kreels.core.categories import push_setting_for
from kreels.models.notification_settings import NotificationSettings

logger = logging.getLogger(__name__)

# Fields a user may change through PUT /settings
EDITABLE_FIELDS = (
    "push_enabled",
    "push_follows",
    "push_likes",
    "push_comments",
    "push_gifts",
    "push_challenges",
    "push_live_streams",
    "push_wallet",
    "push_profile_reminders",
    "in_app_enabled",
    "quiet_hours_enabled",
    "quiet_hours_start",
    "quiet_hours_end",
)
# Nullable fields; every switch keeps its value when sent as null
CLEARABLE_FIELDS = ("quiet_hours_start", "quiet_hours_end")


def get_settings(db: Session, user_id: str) -> NotificationSettings | None:
    return db.query(NotificationSettings).filter(NotificationSettings.user_id == user_id).first()


def get_or_create_settings(db: Session, user_id: str) -> NotificationSettings:
    """Return the user's settings, creating the all-enabled default row on first read."""
    row = get_settings(db, user_id)
    if row:
        return row
    row = NotificationSettings(user_id=user_id)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent first read created it; unique(user_id) keeps one row
        db.rollback()
        return get_settings(db, user_id)
    db.refresh(row)
    return row


def update_settings(db: Session, user_id: str, changes: dict[str, Any]) -> NotificationSettings:
    """Apply only the fields present in changes. Creates the row if missing.

    None clears quiet_hours_start/end and is ignored for the boolean switches.
    """
    row = get_or_create_settings(db, user_id)
    for field in EDITABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if value is None and field not in CLEARABLE_FIELDS:
            continue
        setattr(row, field, value)
    db.commit()
    db.refresh(row)
    return row


def is_in_app_enabled(settings: NotificationSettings | None, category: str) -> bool:
    """In-app gate. Every category is stored unless the user turned in-app notifications off."""
    return settings is None or bool(settings.in_app_enabled)


def is_category_enabled(settings: NotificationSettings | None, category: str) -> bool:
    """Per-category push switch. Unknown or unswitched categories are enabled."""
    if settings is None:
        return True
    field = push_setting_for(category)
    if field is None:
        return True
    return getattr(settings, field) is not False


def _parse_hhmm(value: str | None) -> time | None:
    if not value:
        return None
    try:
        hours, minutes = value.split(":", 1)
        return time(int(hours), int(minutes))
    except ValueError:
        logger.warning("Ignoring malformed quiet hours value %r", value)
        return None


def in_quiet_hours(settings: NotificationSettings | None, now: datetime | None = None) -> bool:
    """True when quiet hours are on and now (UTC) falls in [start, end). Window may wrap midnight."""
    if settings is None or not settings.quiet_hours_enabled:
        return False
    start = _parse_hhmm(settings.quiet_hours_start)
    end = _parse_hhmm(settings.quiet_hours_end)
    if start is None or end is None or start == end:
        return False
    current = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).time()
    if start < end:
        return start <= current < end
    return current >= start or current < end


def is_push_enabled(
    settings: NotificationSettings | None,
    category: str,
    now: datetime | None = None,
) -> bool:
    """Push gate: global switch, then category switch, then quiet hours."""
    if settings is None:
        return True
    if not settings.push_enabled:
        return False
    if not is_category_enabled(settings, category):
        return False
    return not in_quiet_hours(settings, now)
