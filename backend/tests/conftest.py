import pytest

from kreels.db.base import Base
from kreels.db.session import build_engine, build_session_factory
from kreels.models.user import ClubMember, Follow, User
from kreels.services.notification_service import NotificationService
from kreels.services.push import PushTicket
from kreels.services.realtime import ConnectionManager

VALID_TOKEN = "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"


class FakePushSender:
    """Records every chunk; returns ok tickets unless told otherwise."""

    def __init__(self, fail_chunks=0, ticket_errors=None):
        self.chunks = []
        self.fail_chunks = fail_chunks
        self.ticket_errors = ticket_errors or {}

    @property
    def messages(self):
        return [m for chunk in self.chunks for m in chunk]

    async def send_chunk(self, messages):
        self.chunks.append(list(messages))
        if self.fail_chunks:
            self.fail_chunks -= 1
            raise RuntimeError("provider down")
        tickets = []
        for m in messages:
            error = self.ticket_errors.get(m.to)
            if error:
                tickets.append(PushTicket(status="error", message="failed", error=error))
            else:
                tickets.append(PushTicket(status="ok", id=f"ticket-{m.to}"))
        return tickets


class FakeWebSocket:
    def __init__(self, broken=False):
        self.sent = []
        self.accepted = False
        self.broken = broken

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'kreels.db'}")
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(user_id, display_name=None, username=None, avatar=None):
        user = User(id=user_id, display_name=display_name, username=username or user_id, avatar=avatar)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def follow(db):
    def _follow(follower_id, following_id):
        db.add(Follow(follower_id=follower_id, following_id=following_id))
        db.commit()

    return _follow


@pytest.fixture
def join_club(db):
    def _join(club_id, user_id):
        db.add(ClubMember(club_id=club_id, user_id=user_id))
        db.commit()

    return _join


@pytest.fixture
def push_sender():
    return FakePushSender()


@pytest.fixture
def relay():
    return ConnectionManager()


@pytest.fixture
def service(session_factory, push_sender, relay):
    return NotificationService(session_factory, push_sender=push_sender, relay=relay)
