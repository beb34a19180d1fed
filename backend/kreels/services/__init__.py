from kreels.services.notification_messages import (
    notify_club_post,
    notify_comment_replied,
    notify_followed,
    notify_gift_received,
    notify_live_starting,
    notify_new_video,
    notify_video_commented,
    notify_video_liked,
)
from kreels.services.notification_service import FanoutResult, NotificationService
from kreels.services.push import ExpoPushClient, PushMessage, PushSender, PushTicket

__all__ = [
    "FanoutResult",
    "NotificationService",
    "ExpoPushClient",
    "PushMessage",
    "PushSender",
    "PushTicket",
    "notify_club_post",
    "notify_comment_replied",
    "notify_followed",
    "notify_gift_received",
    "notify_live_starting",
    "notify_new_video",
    "notify_video_commented",
    "notify_video_liked",
]
