"""
Notification pipeline: write -> (push dispatch || realtime relay), per recipient.

- write: in-app gate, persist (unknown actor_id stored as NULL), load actor, recount unread.
  Raises on persistence errors.
- dispatch_push: push gate, active tokens, Expo send. Never raises.
- create_notification: write, then push and relay concurrently; a push/relay failure never
  touches the stored row.
- notify_user: single-recipient entry point for action handlers; logs and swallows everything.
- notify_followers / notify_club_members: one task per recipient, joined with settle semantics.

Database work runs in worker threads (asyncio.to_thread), one session per unit of work.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from sqlalchemy.orm import sessionmaker

from kreels.core.constants import EXPO_MAX_CHUNK_SIZE, NOTIFICATION_EVENT
from kreels.models.notification import Notification
from kreels.models.user import ClubMember, Follow, User
from kreels.services.notification_inbox import serialize_notification, unread_count
from kreels.services.preferences import get_settings, is_in_app_enabled, is_push_enabled
from kreels.services.push import PushResult, PushSender, send_push_notifications
from kreels.services.push_tokens import active_tokens_for_user, deactivate_push_tokens
from kreels.services.realtime import ConnectionManager

logger = logging.getLogger(__name__)


def _type_value(category: str | Enum) -> str:
    return category.value if isinstance(category, Enum) else str(category)


@dataclass
class FanoutResult:
    """Per-recipient outcome of a fan-out: written, gated off (in-app disabled), or failed."""

    delivered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.delivered) + len(self.skipped) + len(self.failed)


class NotificationService:
    def __init__(
        self,
        session_factory: sessionmaker,
        push_sender: PushSender | None = None,
        relay: ConnectionManager | None = None,
        push_chunk_size: int = EXPO_MAX_CHUNK_SIZE,
    ):
        self._session_factory = session_factory
        self._push_sender = push_sender
        self._relay = relay
        self._push_chunk_size = push_chunk_size

    # --- Writer ---

    def _write_sync(
        self,
        user_id: str,
        category: str,
        title: str,
        body: str,
        data: dict[str, Any] | None,
        image_url: str | None,
        actor_id: str | None,
        target_id: str | None,
        target_type: str | None,
    ) -> dict[str, Any] | None:
        with self._session_factory() as db:
            settings = get_settings(db, user_id)
            if not is_in_app_enabled(settings, category):
                logger.debug("In-app notifications off for user=%s; skipping %s", user_id, category)
                return None
            if actor_id is not None and db.get(User, actor_id) is None:
                # Deleted or unknown actor: keep the notification, drop the reference
                actor_id = None
            row = Notification(
                user_id=user_id,
                type=category,
                title=title,
                body=body,
                data=data,
                image_url=image_url,
                actor_id=actor_id,
                target_id=target_id,
                target_type=target_type,
                is_read=False,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return {
                "notification": serialize_notification(row),
                "unread_count": unread_count(db, user_id),
            }

    async def write(
        self,
        user_id: str,
        type: str | Enum,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
        image_url: str | None = None,
        actor_id: str | None = None,
        target_id: str | None = None,
        target_type: str | None = None,
    ) -> dict[str, Any] | None:
        """
        Persist one notification if the recipient's in-app gate is open.
        Returns {"notification": {...}, "unread_count": n}, or None when gated off.
        """
        return await asyncio.to_thread(
            self._write_sync,
            user_id,
            _type_value(type),
            title,
            body,
            data,
            image_url,
            actor_id,
            target_id,
            target_type,
        )

    # --- Push dispatcher ---

    def _push_targets_sync(self, user_id: str, category: str) -> tuple[list[str], int] | None:
        with self._session_factory() as db:
            if not is_push_enabled(get_settings(db, user_id), category):
                return None
            return active_tokens_for_user(db, user_id), unread_count(db, user_id)

    def _deactivate_sync(self, tokens: Sequence[str]) -> int:
        with self._session_factory() as db:
            return deactivate_push_tokens(db, tokens)

    async def dispatch_push(
        self,
        user_id: str,
        type: str | Enum,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
        image_url: str | None = None,
    ) -> PushResult | None:
        """Best-effort push to the user's active devices. Never raises; None when nothing was attempted."""
        category = _type_value(type)
        if self._push_sender is None:
            return None
        try:
            targets = await asyncio.to_thread(self._push_targets_sync, user_id, category)
            if targets is None:
                logger.debug("Push off for user=%s category=%s", user_id, category)
                return None
            tokens, badge = targets
            if not tokens:
                return None
            payload_data = {"type": category, **(data or {})}
            if image_url:
                payload_data.setdefault("image_url", image_url)
            result = await send_push_notifications(
                self._push_sender,
                tokens,
                title,
                body,
                data=payload_data,
                badge=badge,
                chunk_size=self._push_chunk_size,
            )
            if result.unregistered_tokens:
                await asyncio.to_thread(self._deactivate_sync, result.unregistered_tokens)
            return result
        except Exception as e:
            logger.error("Error sending push notification to user=%s: %s", user_id, e, exc_info=True)
            return None

    # --- Realtime relay ---

    async def relay(self, user_id: str, payload: dict[str, Any]) -> None:
        if self._relay is None:
            return
        try:
            await self._relay.emit(user_id, NOTIFICATION_EVENT, payload)
        except Exception as e:
            logger.warning("Realtime relay to user=%s failed: %s", user_id, e)

    # --- Per recipient ---

    async def create_notification(
        self,
        user_id: str,
        type: str | Enum,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
        image_url: str | None = None,
        actor_id: str | None = None,
        target_id: str | None = None,
        target_type: str | None = None,
    ) -> dict[str, Any] | None:
        """Write, then push and relay in parallel. Persistence errors propagate to the caller."""
        payload = await self.write(
            user_id,
            type,
            title,
            body,
            data=data,
            image_url=image_url,
            actor_id=actor_id,
            target_id=target_id,
            target_type=target_type,
        )
        if payload is None:
            return None
        await asyncio.gather(
            self.dispatch_push(user_id, type, title, body, data=data, image_url=image_url),
            self.relay(user_id, payload),
            return_exceptions=True,
        )
        return payload

    async def notify_user(self, user_id: str, type: str | Enum, title: str, body: str, **kwargs: Any) -> dict[str, Any] | None:
        """Entry point for action handlers: the triggering action never sees a notification error."""
        try:
            return await self.create_notification(user_id, type, title, body, **kwargs)
        except Exception as e:
            logger.error("Error creating %s notification for user=%s: %s", _type_value(type), user_id, e, exc_info=True)
            return None

    # --- Fan-out ---

    async def _fan_out(self, recipient_ids: Sequence[str], type: str | Enum, title: str, body: str, **kwargs: Any) -> FanoutResult:
        results = await asyncio.gather(
            *(self.create_notification(rid, type, title, body, **kwargs) for rid in recipient_ids),
            return_exceptions=True,
        )
        outcome = FanoutResult()
        for rid, res in zip(recipient_ids, results):
            if isinstance(res, BaseException):
                logger.error("Fan-out %s to user=%s failed: %s", _type_value(type), rid, res, exc_info=res)
                outcome.failed.append(rid)
            elif res is None:
                outcome.skipped.append(rid)
            else:
                outcome.delivered.append(rid)
        logger.info(
            "Fan-out %s: %s delivered, %s skipped, %s failed",
            _type_value(type),
            len(outcome.delivered),
            len(outcome.skipped),
            len(outcome.failed),
        )
        return outcome

    def _follower_ids_sync(self, creator_id: str) -> list[str]:
        with self._session_factory() as db:
            rows = db.query(Follow.follower_id).filter(Follow.following_id == creator_id).all()
            return [r.follower_id for r in rows]

    def _club_member_ids_sync(self, club_id: str, exclude_user_id: str | None) -> list[str]:
        with self._session_factory() as db:
            q = db.query(ClubMember.user_id).filter(ClubMember.club_id == club_id)
            if exclude_user_id:
                q = q.filter(ClubMember.user_id != exclude_user_id)
            return [r.user_id for r in q.all()]

    async def notify_followers(
        self,
        creator_id: str,
        type: str | Enum,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
        image_url: str | None = None,
    ) -> FanoutResult:
        """Notify everyone following creator_id (new video, going live). Creator is the actor."""
        try:
            follower_ids = await asyncio.to_thread(self._follower_ids_sync, creator_id)
        except Exception as e:
            logger.error("Error loading followers of %s: %s", creator_id, e, exc_info=True)
            return FanoutResult()
        return await self._fan_out(
            follower_ids, type, title, body, data=data, image_url=image_url, actor_id=creator_id
        )

    async def notify_club_members(
        self,
        club_id: str,
        exclude_user_id: str | None,
        type: str | Enum,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> FanoutResult:
        """Notify every member of a club except exclude_user_id (usually the poster)."""
        try:
            member_ids = await asyncio.to_thread(self._club_member_ids_sync, club_id, exclude_user_id)
        except Exception as e:
            logger.error("Error loading members of club %s: %s", club_id, e, exc_info=True)
            return FanoutResult()
        return await self._fan_out(member_ids, type, title, body, data=data)

    # --- Lookups for message builders ---

    def _user_sync(self, user_id: str) -> dict[str, Any] | None:
        with self._session_factory() as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            return {
                "id": user.id,
                "display_name": user.display_name,
                "username": user.username,
                "avatar": user.avatar,
            }

    async def user_info(self, user_id: str) -> dict[str, Any] | None:
        """Display info for an actor, or None (missing user or lookup failure)."""
        try:
            return await asyncio.to_thread(self._user_sync, user_id)
        except Exception as e:
            logger.warning("Could not load user %s: %s", user_id, e)
            return None
