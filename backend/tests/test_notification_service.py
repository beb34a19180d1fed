import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from conftest import VALID_TOKEN, FakePushSender, FakeWebSocket
from kreels.core.categories import NotificationType
from kreels.models.notification import Notification
from kreels.models.push_token import PushToken
from kreels.services.notification_inbox import mark_read
from kreels.services.notification_service import NotificationService
from kreels.services.preferences import update_settings
from kreels.services.push_tokens import active_tokens_for_user, deactivate_push_token, register_push_token


def _run(coro):
    return asyncio.run(coro)


@pytest.fixture
def alice_and_bob(make_user):
    make_user("alice", display_name="Alice", avatar="https://cdn.test/alice.png")
    make_user("bob", display_name="Bob")


def test_write_persists_and_returns_payload(service, db, alice_and_bob):
    payload = _run(
        service.write(
            "bob",
            NotificationType.LIKE,
            "New Like",
            "Alice liked your video",
            data={"video_id": "v1"},
            actor_id="alice",
            target_id="v1",
            target_type="video",
        )
    )
    notification = payload["notification"]
    assert notification["type"] == "LIKE"
    assert notification["is_read"] is False
    assert notification["data"] == {"video_id": "v1"}
    assert notification["actor"] == {
        "id": "alice",
        "display_name": "Alice",
        "avatar": "https://cdn.test/alice.png",
        "username": "alice",
    }
    assert payload["unread_count"] == 1
    assert db.query(Notification).filter(Notification.user_id == "bob").count() == 1


def test_in_app_disabled_creates_nothing(service, push_sender, db, alice_and_bob):
    update_settings(db, "bob", {"in_app_enabled": False})
    register_push_token(db, "bob", VALID_TOKEN)
    for category in NotificationType:
        assert _run(service.create_notification("bob", category, "t", "b")) is None
    assert db.query(Notification).count() == 0
    assert push_sender.chunks == []


def test_unread_count_tracks_live_rows(service, db, alice_and_bob):
    first = _run(service.write("bob", "LIKE", "t", "b"))
    second = _run(service.write("bob", "COMMENT", "t", "b"))
    assert second["unread_count"] == 2
    mark_read(db, "bob", first["notification"]["id"])
    third = _run(service.write("bob", "FOLLOW", "t", "b"))
    assert third["unread_count"] == 2


def test_follow_with_push_follows_off_stores_but_does_not_push(service, push_sender, db, alice_and_bob):
    update_settings(db, "bob", {"push_follows": False})
    register_push_token(db, "bob", VALID_TOKEN)
    payload = _run(service.create_notification("bob", NotificationType.FOLLOW, "New Follower", "Alice started following you", actor_id="alice"))
    assert payload["notification"]["type"] == "FOLLOW"
    assert db.query(Notification).filter(Notification.user_id == "bob", Notification.type == "FOLLOW").count() == 1
    assert push_sender.chunks == []


def test_push_sent_with_type_and_badge(service, push_sender, db, alice_and_bob):
    register_push_token(db, "bob", VALID_TOKEN)
    _run(service.create_notification("bob", "LIKE", "New Like", "Alice liked your video", data={"video_id": "v1"}))
    [message] = push_sender.messages
    assert message.to == VALID_TOKEN
    assert message.title == "New Like"
    assert message.data == {"type": "LIKE", "video_id": "v1"}
    assert message.badge == 1


def test_no_active_tokens_means_no_push(service, push_sender, db, alice_and_bob):
    register_push_token(db, "bob", VALID_TOKEN)
    deactivate_push_token(db, VALID_TOKEN)
    result = _run(service.dispatch_push("bob", "LIKE", "t", "b"))
    assert result is None
    assert push_sender.chunks == []


def test_push_failure_keeps_notification(session_factory, db, alice_and_bob):
    sender = FakePushSender(fail_chunks=1)
    service = NotificationService(session_factory, push_sender=sender)
    register_push_token(db, "bob", VALID_TOKEN)
    payload = _run(service.create_notification("bob", "LIKE", "t", "b"))
    assert payload is not None
    assert db.query(Notification).count() == 1


def test_dispatch_never_raises(session_factory, alice_and_bob, monkeypatch):
    service = NotificationService(session_factory, push_sender=FakePushSender())

    def broken(*args):
        raise SQLAlchemyError("db down")

    monkeypatch.setattr(service, "_push_targets_sync", broken)
    assert _run(service.dispatch_push("bob", "LIKE", "t", "b")) is None


def test_unregistered_device_is_deactivated(session_factory, db, alice_and_bob):
    sender = FakePushSender(ticket_errors={VALID_TOKEN: "DeviceNotRegistered"})
    service = NotificationService(session_factory, push_sender=sender)
    register_push_token(db, "bob", VALID_TOKEN)
    _run(service.create_notification("bob", "LIKE", "t", "b"))
    assert active_tokens_for_user(db, "bob") == []
    assert db.query(PushToken).count() == 1


def test_relay_emits_payload_to_user_channel(service, relay, alice_and_bob):
    bob_socket = FakeWebSocket()
    alice_socket = FakeWebSocket()

    async def scenario():
        await relay.connect("bob", bob_socket)
        await relay.connect("alice", alice_socket)
        return await service.create_notification("bob", "LIKE", "t", "b")

    payload = _run(scenario())
    assert bob_socket.sent == [{"event": "notification", "data": payload}]
    assert alice_socket.sent == []


def test_dead_socket_is_dropped(service, relay, alice_and_bob):
    dead = FakeWebSocket(broken=True)

    async def scenario():
        await relay.connect("bob", dead)
        await service.create_notification("bob", "LIKE", "t", "b")

    _run(scenario())
    assert relay.connection_count("bob") == 0


def test_notify_user_swallows_persistence_errors(service, alice_and_bob, monkeypatch):
    def broken(*args):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(service, "_write_sync", broken)
    assert _run(service.notify_user("bob", "LIKE", "t", "b")) is None


def test_create_notification_propagates_persistence_errors(service, alice_and_bob, monkeypatch):
    def broken(*args):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(service, "_write_sync", broken)
    with pytest.raises(SQLAlchemyError):
        _run(service.create_notification("bob", "LIKE", "t", "b"))


def test_followers_fan_out_survives_one_failure(service, db, make_user, follow, monkeypatch):
    make_user("creator", display_name="Creator")
    followers = ["f1", "f2", "f3", "f4"]
    for fid in followers:
        make_user(fid)
        follow(fid, "creator")

    original = service._write_sync

    def flaky(user_id, *args):
        if user_id == "f2":
            raise SQLAlchemyError("deadlock")
        return original(user_id, *args)

    monkeypatch.setattr(service, "_write_sync", flaky)
    result = _run(service.notify_followers("creator", NotificationType.NEW_VIDEO, "New Video", "Creator posted"))
    assert sorted(result.delivered) == ["f1", "f3", "f4"]
    assert result.failed == ["f2"]
    rows = db.query(Notification).all()
    assert sorted(r.user_id for r in rows) == ["f1", "f3", "f4"]
    assert all(r.actor_id == "creator" for r in rows)


def test_followers_fan_out_reports_gated_recipients(service, db, make_user, follow):
    make_user("creator")
    for fid in ("f1", "f2"):
        make_user(fid)
        follow(fid, "creator")
    update_settings(db, "f1", {"in_app_enabled": False})
    result = _run(service.notify_followers("creator", "LIVE_STARTING", "Live", "Creator is live"))
    assert result.skipped == ["f1"]
    assert result.delivered == ["f2"]


def test_club_fan_out_excludes_author(service, db, make_user, join_club):
    for uid in ("author", "m1", "m2"):
        make_user(uid)
        join_club("club-1", uid)
    make_user("outsider")
    join_club("club-2", "outsider")
    result = _run(service.notify_club_members("club-1", "author", NotificationType.CLUB_POST, "New post", "hi"))
    assert sorted(result.delivered) == ["m1", "m2"]
    assert result.total == 2
    assert sorted(r.user_id for r in db.query(Notification).all()) == ["m1", "m2"]


def test_fan_out_with_no_recipients(service, make_user):
    make_user("lonely")
    result = _run(service.notify_followers("lonely", "NEW_VIDEO", "t", "b"))
    assert result.total == 0


def test_sqlite_engine_enforces_foreign_keys(db):
    db.add(Notification(user_id="nobody", type="LIKE", title="t", body="b"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
