from datetime import datetime, timedelta, timezone

from kreels.config import Settings
from kreels.models.notification import Notification
from kreels.models.push_token import PushToken
from kreels.scheduler.retention_job import run_retention_job


def test_retention_prunes_old_read_rows_and_stale_tokens(session_factory, db, make_user):
    make_user("alice")
    long_ago = datetime.now(timezone.utc) - timedelta(days=400)
    db.add_all(
        [
            Notification(user_id="alice", type="LIKE", title="old", body="b", is_read=True, created_at=long_ago),
            Notification(user_id="alice", type="LIKE", title="keep", body="b", is_read=False, created_at=long_ago),
            PushToken(token="ExponentPushToken[old]", user_id="alice", is_active=True, last_used_at=long_ago),
            PushToken(token="ExponentPushToken[new]", user_id="alice", is_active=True),
        ]
    )
    db.commit()

    run_retention_job(session_factory)

    db.expire_all()
    assert [n.title for n in db.query(Notification).all()] == ["keep"]
    active = {t.token: t.is_active for t in db.query(PushToken).all()}
    assert active == {"ExponentPushToken[old]": False, "ExponentPushToken[new]": True}


def test_retention_job_swallows_errors(monkeypatch, session_factory):
    import kreels.scheduler.retention_job as job

    def broken(db, days):
        raise RuntimeError("db down")

    monkeypatch.setattr(job, "prune_read_notifications", broken)
    run_retention_job(session_factory)


def test_retention_uses_given_settings(session_factory, db, make_user):
    make_user("alice")
    long_ago = datetime.now(timezone.utc) - timedelta(days=400)
    db.add(Notification(user_id="alice", type="LIKE", title="old", body="b", is_read=True, created_at=long_ago))
    db.commit()

    run_retention_job(session_factory, Settings(notification_retention_days=1000, push_token_stale_days=1000))

    db.expire_all()
    assert db.query(Notification).count() == 1
