import asyncio

from conftest import VALID_TOKEN
from kreels.models.notification import Notification
from kreels.services.notification_messages import (
    display_name,
    notify_club_post,
    notify_comment_replied,
    notify_followed,
    notify_gift_received,
    notify_live_starting,
    notify_video_commented,
    notify_video_liked,
    truncate_preview,
)
from kreels.services.preferences import update_settings
from kreels.services.push_tokens import register_push_token


def test_truncate_preview():
    assert truncate_preview("Great job!") == "Great job!"
    assert truncate_preview("x" * 50) == "x" * 50
    long_text = "This is a really long comment that keeps going well past sixty chars"
    assert truncate_preview(long_text) == long_text[:50] + "…"
    assert len(truncate_preview(long_text)) == 51


def test_display_name_fallbacks():
    assert display_name({"display_name": "Sam", "username": "sam"}) == "Sam"
    assert display_name({"display_name": None, "username": "sam"}) == "sam"
    assert display_name(None) == "Someone"


def test_long_comment_body_is_truncated(service, db, make_user):
    make_user("creator")
    make_user("fan", display_name="Fan")
    content = "Great job! " * 6  # 66 characters
    payload = asyncio.run(notify_video_commented(service, "creator", "fan", "v1", "c1", content))
    assert payload["notification"]["body"] == f'Fan: "{content[:50]}…"'
    assert payload["notification"]["target_type"] == "comment"
    assert payload["notification"]["data"] == {"video_id": "v1", "comment_id": "c1"}


def test_like_notifies_creator(service, make_user):
    make_user("creator")
    make_user("fan", display_name="Fan", avatar="https://cdn.test/fan.png")
    payload = asyncio.run(notify_video_liked(service, "creator", "fan", "v1", thumbnail="https://cdn.test/v1.jpg"))
    notification = payload["notification"]
    assert notification["title"] == "New Like"
    assert notification["body"] == "Fan liked your video"
    assert notification["image_url"] == "https://cdn.test/v1.jpg"
    assert notification["actor_id"] == "fan"


def test_self_actions_notify_nobody(service, db, make_user):
    make_user("creator")
    assert asyncio.run(notify_video_liked(service, "creator", "creator", "v1")) is None
    assert asyncio.run(notify_followed(service, "creator", "creator")) is None
    assert db.query(Notification).count() == 0


def test_follow_respects_push_switch(service, push_sender, db, make_user):
    make_user("a", display_name="A")
    make_user("b")
    update_settings(db, "b", {"push_follows": False})
    register_push_token(db, "b", VALID_TOKEN)
    payload = asyncio.run(notify_followed(service, "b", "a"))
    assert payload["notification"]["body"] == "A started following you"
    assert push_sender.chunks == []


def test_reply_and_gift(service, make_user):
    make_user("author")
    make_user("replier", username="rep")
    reply = asyncio.run(notify_comment_replied(service, "author", "replier", "v1", "c2", "c1", "thanks"))
    assert reply["notification"]["type"] == "COMMENT_REPLY"
    assert reply["notification"]["body"] == 'rep replied: "thanks"'
    gift = asyncio.run(notify_gift_received(service, "author", "replier", "Rose", 10, live_stream_id="live-1"))
    assert gift["notification"]["type"] == "GIFT_RECEIVED"
    assert gift["notification"]["data"] == {"gift_name": "Rose", "coins": 10, "live_stream_id": "live-1"}


def test_unknown_actor_still_notifies(service, db, make_user):
    make_user("creator")
    payload = asyncio.run(notify_video_liked(service, "creator", "ghost", "v1"))
    assert payload["notification"]["body"] == "Someone liked your video"
    assert payload["notification"]["actor_id"] is None
    assert payload["notification"]["actor"] is None
    [row] = db.query(Notification).all()
    assert row.user_id == "creator"
    assert row.actor_id is None


def test_live_starting_fans_out_to_followers(service, db, make_user, follow):
    make_user("star", display_name="Star")
    make_user("f1")
    make_user("f2")
    follow("f1", "star")
    follow("f2", "star")
    result = asyncio.run(notify_live_starting(service, "star", "live-9", "Friday jam"))
    assert sorted(result.delivered) == ["f1", "f2"]
    bodies = {r.body for r in db.query(Notification).all()}
    assert bodies == {"Star is live: Friday jam"}


def test_club_post_skips_author(service, db, make_user, join_club):
    for uid in ("author", "m1"):
        make_user(uid)
        join_club("club-1", uid)
    result = asyncio.run(notify_club_post(service, "club-1", "author", "p1", "Runners", "Morning run?"))
    assert result.delivered == ["m1"]
    [row] = db.query(Notification).all()
    assert row.title == "New post in Runners"
