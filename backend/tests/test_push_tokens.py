from datetime import datetime, timedelta, timezone

import pytest

from conftest import VALID_TOKEN
from kreels.core.errors import InvalidPushTokenError
from kreels.models.push_token import PushToken
from kreels.services.push_tokens import (
    active_tokens_for_user,
    deactivate_push_token,
    deactivate_stale_tokens,
    register_push_token,
)


def test_register_rejects_malformed_token(db, make_user):
    make_user("alice")
    with pytest.raises(InvalidPushTokenError):
        register_push_token(db, "alice", "definitely-not-expo")
    assert db.query(PushToken).count() == 0


def test_register_is_an_upsert(db, make_user):
    make_user("alice")
    make_user("bob")
    register_push_token(db, "alice", VALID_TOKEN, platform="ios", device_id="phone-1")
    deactivate_push_token(db, VALID_TOKEN)
    row = register_push_token(db, "bob", f"  {VALID_TOKEN}  ", platform="android")
    assert db.query(PushToken).count() == 1
    assert row.user_id == "bob"
    assert row.is_active is True
    assert row.platform == "android"
    assert active_tokens_for_user(db, "alice") == []
    assert active_tokens_for_user(db, "bob") == [VALID_TOKEN]


def test_register_then_logout_leaves_no_active_token(db, make_user):
    make_user("alice")
    register_push_token(db, "alice", VALID_TOKEN)
    assert deactivate_push_token(db, VALID_TOKEN) == 1
    assert active_tokens_for_user(db, "alice") == []
    # Deactivated, not deleted
    assert db.query(PushToken).filter(PushToken.token == VALID_TOKEN).one().is_active is False


def test_deactivate_unknown_token_is_noop(db):
    assert deactivate_push_token(db, "ExponentPushToken[unknown]") == 0
    assert deactivate_push_token(db, "") == 0


def test_stale_tokens_are_deactivated(db, make_user):
    make_user("alice")
    fresh = register_push_token(db, "alice", "ExponentPushToken[fresh]")
    old = register_push_token(db, "alice", "ExponentPushToken[old]")
    old.last_used_at = datetime.now(timezone.utc) - timedelta(days=400)
    db.commit()
    assert deactivate_stale_tokens(db, 180) == 1
    assert active_tokens_for_user(db, "alice") == [fresh.token]
