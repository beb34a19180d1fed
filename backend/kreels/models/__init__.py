from kreels.models.notification import Notification
from kreels.models.notification_settings import NotificationSettings
from kreels.models.push_token import PushToken
from kreels.models.user import ClubMember, Follow, User

__all__ = [
    "ClubMember",
    "Follow",
    "Notification",
    "NotificationSettings",
    "PushToken",
    "User",
]
