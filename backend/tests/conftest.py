import itertools
import random
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from openplay.database import get_session, init_db
from openplay.main import app
from openplay.services.announcer import Announcer
from openplay.services.cloud_sync import CloudSyncClient
from openplay.services.open_play.effects import TransitionContext
from openplay.services.session_host import SessionHost

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are dropped and recreated per test so the host starts empty
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

START = datetime(2026, 6, 6, 9, 0, 0, tzinfo=timezone.utc)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


class FakeClock:
    """Deterministic clock; every call advances one second."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


class FakeTimer:
    """Stands in for threading.Timer; tests fire it by hand."""

    created = []

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


def sequential_ids(prefix: str = "id"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


@pytest.fixture
def make_ctx():
    """Factory for transition contexts with a fixed time, predictable ids and a seeded RNG."""

    def _make(seed: int = 42, now: datetime = START) -> TransitionContext:
        return TransitionContext(now=now, new_id=sequential_ids(), rng=random.Random(seed))

    return _make


@pytest.fixture
def ctx(make_ctx):
    return make_ctx()


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on freshly created tables."""
    SQLModel.metadata.drop_all(test_engine)
    init_db(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture
def spoken():
    return []


@pytest.fixture
def open_db():
    """Fresh database session on the test engine, bypassing any identity map in use."""
    return lambda: Session(test_engine)


@pytest.fixture
def make_host(session: Session, spoken):
    """
    Factory for SessionHosts on the test database with synchronous
    background work and fake timers.

    Hosts built in one test share a clock and an id sequence, so a
    restarted host never reissues an id.
    """
    FakeTimer.created = []
    clock = FakeClock()
    ids = sequential_ids("h")
    hosts = []

    def _make(**overrides) -> SessionHost:
        options = dict(
            cloud_sync_client=CloudSyncClient(base_url=""),
            announcer=Announcer(speak=spoken.append),
            rng=random.Random(42),
            clock=clock,
            id_factory=ids,
            undo_expiry_seconds=10,
            timer_factory=FakeTimer,
            run_in_background=lambda fn: fn(),
        )
        options.update(overrides)
        h = SessionHost(test_engine, **options)
        hosts.append(h)
        return h

    yield _make
    for h in hosts:
        h.close()


@pytest.fixture
def host(make_host):
    return make_host()


@pytest.fixture
def timers(make_host):
    """Undo timers created by hosts in this test, oldest first."""
    return FakeTimer.created


@pytest.fixture(name="client")
def client_fixture(session: Session, host: SessionHost):
    """Provide a test client bound to the test host and database.

    Startup events are not run, so the production engine is never touched.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.state.host = host

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
    app.state.host = None
