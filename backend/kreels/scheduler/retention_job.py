"""
Daily retention: delete old read notifications and deactivate push tokens no device has
refreshed in a long time. Unread notifications are never pruned.
"""
import logging

from sqlalchemy.orm import sessionmaker

from kreels.config import Settings, settings
from kreels.services.notification_inbox import prune_read_notifications
from kreels.services.push_tokens import deactivate_stale_tokens

logger = logging.getLogger(__name__)


def run_retention_job(session_factory: sessionmaker, app_settings: Settings = settings) -> None:
    db = session_factory()
    try:
        pruned = prune_read_notifications(db, app_settings.notification_retention_days)
        stale = deactivate_stale_tokens(db, app_settings.push_token_stale_days)
        logger.info("Retention job: pruned %s notifications, deactivated %s stale tokens", pruned, stale)
    except Exception as e:
        logger.exception("Retention job failed: %s", e)
        db.rollback()
    finally:
        db.close()
