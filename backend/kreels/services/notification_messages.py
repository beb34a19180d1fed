"""
Notification text for social actions (like, comment, reply, follow, gift, live, new video).

Action handlers call these after their own write succeeded; every helper is best-effort and
returns None instead of raising, so the action itself never fails because of a notification.
Self-actions (actor == recipient) notify nobody.
"""
from typing import Any

from kreels.core.categories import NotificationType
from kreels.core.constants import BODY_PREVIEW_ELLIPSIS, BODY_PREVIEW_LENGTH
from kreels.services.notification_service import FanoutResult, NotificationService


def truncate_preview(text: str, limit: int = BODY_PREVIEW_LENGTH) -> str:
    """First `limit` characters plus an ellipsis when the text is longer."""
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + BODY_PREVIEW_ELLIPSIS


def display_name(user: dict[str, Any] | None) -> str:
    if not user:
        return "Someone"
    return user.get("display_name") or user.get("username") or "Someone"


def _avatar(user: dict[str, Any] | None) -> str | None:
    return user.get("avatar") if user else None


async def notify_followed(service: NotificationService, followed_id: str, follower_id: str) -> dict[str, Any] | None:
    if followed_id == follower_id:
        return None
    follower = await service.user_info(follower_id)
    return await service.notify_user(
        followed_id,
        NotificationType.FOLLOW,
        "New Follower",
        f"{display_name(follower)} started following you",
        actor_id=follower_id,
        target_id=follower_id,
        target_type="user",
        data={"user_id": follower_id},
        image_url=_avatar(follower),
    )


async def notify_video_liked(
    service: NotificationService,
    creator_id: str,
    liker_id: str,
    video_id: str,
    thumbnail: str | None = None,
) -> dict[str, Any] | None:
    if creator_id == liker_id:
        return None
    liker = await service.user_info(liker_id)
    return await service.notify_user(
        creator_id,
        NotificationType.LIKE,
        "New Like",
        f"{display_name(liker)} liked your video",
        actor_id=liker_id,
        target_id=video_id,
        target_type="video",
        data={"video_id": video_id},
        image_url=thumbnail or _avatar(liker),
    )


async def notify_video_commented(
    service: NotificationService,
    creator_id: str,
    commenter_id: str,
    video_id: str,
    comment_id: str,
    content: str,
    thumbnail: str | None = None,
) -> dict[str, Any] | None:
    if creator_id == commenter_id:
        return None
    commenter = await service.user_info(commenter_id)
    return await service.notify_user(
        creator_id,
        NotificationType.COMMENT,
        "New Comment",
        f'{display_name(commenter)}: "{truncate_preview(content)}"',
        actor_id=commenter_id,
        target_id=comment_id,
        target_type="comment",
        data={"video_id": video_id, "comment_id": comment_id},
        image_url=_avatar(commenter) or thumbnail,
    )


async def notify_comment_replied(
    service: NotificationService,
    parent_author_id: str,
    replier_id: str,
    video_id: str,
    comment_id: str,
    parent_comment_id: str,
    content: str,
) -> dict[str, Any] | None:
    if parent_author_id == replier_id:
        return None
    replier = await service.user_info(replier_id)
    return await service.notify_user(
        parent_author_id,
        NotificationType.COMMENT_REPLY,
        "New Reply",
        f'{display_name(replier)} replied: "{truncate_preview(content)}"',
        actor_id=replier_id,
        target_id=comment_id,
        target_type="comment",
        data={"video_id": video_id, "comment_id": comment_id, "parent_comment_id": parent_comment_id},
        image_url=_avatar(replier),
    )


async def notify_gift_received(
    service: NotificationService,
    recipient_id: str,
    sender_id: str,
    gift_name: str,
    coins: int,
    live_stream_id: str | None = None,
) -> dict[str, Any] | None:
    if recipient_id == sender_id:
        return None
    sender = await service.user_info(sender_id)
    data: dict[str, Any] = {"gift_name": gift_name, "coins": coins}
    if live_stream_id:
        data["live_stream_id"] = live_stream_id
    return await service.notify_user(
        recipient_id,
        NotificationType.GIFT_RECEIVED,
        "Gift Received",
        f"{display_name(sender)} sent you {gift_name} ({coins} coins)",
        actor_id=sender_id,
        target_id=live_stream_id,
        target_type="live" if live_stream_id else None,
        data=data,
        image_url=_avatar(sender),
    )


async def notify_live_starting(
    service: NotificationService,
    creator_id: str,
    live_stream_id: str,
    stream_title: str,
) -> FanoutResult:
    creator = await service.user_info(creator_id)
    return await service.notify_followers(
        creator_id,
        NotificationType.LIVE_STARTING,
        "Live Now",
        f"{display_name(creator)} is live: {truncate_preview(stream_title)}",
        data={"live_stream_id": live_stream_id},
        image_url=_avatar(creator),
    )


async def notify_new_video(
    service: NotificationService,
    creator_id: str,
    video_id: str,
    video_title: str,
    thumbnail: str | None = None,
) -> FanoutResult:
    creator = await service.user_info(creator_id)
    return await service.notify_followers(
        creator_id,
        NotificationType.NEW_VIDEO,
        "New Video",
        f"{display_name(creator)} posted: {truncate_preview(video_title)}",
        data={"video_id": video_id},
        image_url=thumbnail or _avatar(creator),
    )


async def notify_club_post(
    service: NotificationService,
    club_id: str,
    author_id: str,
    post_id: str,
    club_name: str,
    content: str,
) -> FanoutResult:
    author = await service.user_info(author_id)
    return await service.notify_club_members(
        club_id,
        author_id,
        NotificationType.CLUB_POST,
        f"New post in {club_name}",
        f'{display_name(author)}: "{truncate_preview(content)}"',
        data={"club_id": club_id, "post_id": post_id},
    )
