"""
Notification categories and the push switch each one is gated by.

PUSH_SETTING_BY_TYPE must list every NotificationType; a new category without an
entry fails at import time. Map a category to None when it has no dedicated
switch (only the global push_enabled applies).
"""
from enum import Enum


class NotificationType(str, Enum):
    FOLLOW = "FOLLOW"
    LIKE = "LIKE"
    COMMENT = "COMMENT"
    COMMENT_REPLY = "COMMENT_REPLY"
    MENTION = "MENTION"
    GIFT_RECEIVED = "GIFT_RECEIVED"
    CHALLENGE_NEW = "CHALLENGE_NEW"
    CHALLENGE_ENTRY = "CHALLENGE_ENTRY"
    CHALLENGE_VOTE = "CHALLENGE_VOTE"
    CHALLENGE_WIN = "CHALLENGE_WIN"
    CHALLENGE_ENDING = "CHALLENGE_ENDING"
    LIVE_STARTING = "LIVE_STARTING"
    WALLET_CREDIT = "WALLET_CREDIT"
    WALLET_DEBIT = "WALLET_DEBIT"
    REWARD_EARNED = "REWARD_EARNED"
    PROFILE_INCOMPLETE = "PROFILE_INCOMPLETE"
    BADGE_EARNED = "BADGE_EARNED"
    LEVEL_UP = "LEVEL_UP"
    NEW_VIDEO = "NEW_VIDEO"
    CLUB_POST = "CLUB_POST"
    SYSTEM = "SYSTEM"


PUSH_SETTING_BY_TYPE: dict[NotificationType, str | None] = {
    NotificationType.FOLLOW: "push_follows",
    NotificationType.LIKE: "push_likes",
    NotificationType.COMMENT: "push_comments",
    NotificationType.COMMENT_REPLY: "push_comments",
    NotificationType.MENTION: "push_comments",
    NotificationType.GIFT_RECEIVED: "push_gifts",
    NotificationType.CHALLENGE_NEW: "push_challenges",
    NotificationType.CHALLENGE_ENTRY: "push_challenges",
    NotificationType.CHALLENGE_VOTE: "push_challenges",
    NotificationType.CHALLENGE_WIN: "push_challenges",
    NotificationType.CHALLENGE_ENDING: "push_challenges",
    NotificationType.LIVE_STARTING: "push_live_streams",
    NotificationType.WALLET_CREDIT: "push_wallet",
    NotificationType.WALLET_DEBIT: "push_wallet",
    NotificationType.REWARD_EARNED: "push_wallet",
    NotificationType.PROFILE_INCOMPLETE: "push_profile_reminders",
    NotificationType.BADGE_EARNED: "push_wallet",
    NotificationType.LEVEL_UP: "push_wallet",
    NotificationType.NEW_VIDEO: None,
    NotificationType.CLUB_POST: None,
    NotificationType.SYSTEM: None,
}

_missing = set(NotificationType) - set(PUSH_SETTING_BY_TYPE)
assert not _missing, f"PUSH_SETTING_BY_TYPE has no entry for {sorted(t.value for t in _missing)}"


def push_setting_for(category: str) -> str | None:
    """Settings field gating push for this category; None for unknown or unswitched categories."""
    try:
        return PUSH_SETTING_BY_TYPE[NotificationType(category)]
    except ValueError:
        return None
