import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import redis
from fastapi.testclient import TestClient

from shortlink.core.config import Settings
from shortlink.core.errors import DuplicateShortCodeError
from shortlink.db.Connection import database
from shortlink.db.Connection.database import StoreHandles
from shortlink.db.Models.models import Base
from shortlink.db.repository import ShortLinkRepository
from shortlink.main import create_app
from shortlink.services.keygen import CodeGenerator
from shortlink.services.metrics import ClickRecorder
from shortlink.services.shortener import LinkRegistry


class InMemoryShortLinkRepository(ShortLinkRepository):
    """Thread-safe ShortLinkRepository kept in a dict, keyed by short code.

    Set `failures[operation] = exc` to make that operation raise. The last
    timeout passed to each operation is kept in `timeouts`.
    """

    def __init__(self):
        self._links = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self.failures = {}
        self.timeouts = {}

    def _maybe_fail(self, operation, timeout=None):
        self.timeouts[operation] = timeout
        exc = self.failures.get(operation)
        if exc is not None:
            raise exc

    def create(self, link, timeout=None):
        self._maybe_fail("create", timeout)
        with self._lock:
            if link.short_code in self._links:
                raise DuplicateShortCodeError("create", "short code already exists")
            created = link.with_id(self._next_id)
            self._next_id += 1
            self._links[created.short_code] = created
            return created

    def get_by_code(self, short_code, timeout=None):
        self._maybe_fail("get_by_code", timeout)
        with self._lock:
            return self._links.get(short_code)

    def get_by_original_url(self, original_url, timeout=None):
        self._maybe_fail("get_by_original_url", timeout)
        with self._lock:
            matches = [link for link in self._links.values() if link.original_url == original_url]
        return min(matches, key=lambda link: link.id) if matches else None

    def increment_click(self, short_code):
        self._maybe_fail("increment_click")
        with self._lock:
            link = self._links.get(short_code)
            if link is None:
                return False
            self._links[short_code] = replace(link, click_count=link.click_count + 1)
            return True

    def deactivate(self, short_code):
        with self._lock:
            self._links[short_code] = replace(self._links[short_code], is_active=False)

    def __len__(self):
        return len(self._links)


class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def redis_client():
    """Mock Redis client with an empty code pool."""
    client = MagicMock(spec=redis.Redis)
    client.lpop.return_value = None
    client.ping.return_value = True
    return client


@pytest.fixture
def fake_repository():
    return InMemoryShortLinkRepository()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def code_generator(redis_client):
    return CodeGenerator(redis_client, "test_code_queue")


@pytest.fixture
def click_recorder(fake_repository):
    recorder = ClickRecorder(fake_repository, max_workers=4)
    yield recorder
    recorder.close()


@pytest.fixture
def registry(fake_repository, code_generator, click_recorder, clock):
    return LinkRegistry(fake_repository, code_generator, click_recorder, max_attempts=3, clock=clock)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'shortlink.db'}",
        BASE_URL="http://sho.rt",
        CODE_QUEUE_NAME="test_code_queue",
        CLICK_WORKERS=2,
    )


@pytest.fixture
def db_engine(test_settings):
    """Creates a fresh SQLite database for each test."""
    engine = database.create_db_engine(test_settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return database.create_session_factory(db_engine)


@pytest.fixture
def client(test_settings, db_engine, session_factory, redis_client):
    """Test client wired to SQLite and the mocked Redis client."""
    stores = StoreHandles(engine=db_engine, session_factory=session_factory, redis_client=redis_client)
    app = create_app(test_settings, stores=stores)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def drain_clicks(client):
    def _drain():
        assert client.app.state.click_recorder.drain(timeout=5)
    return _drain


@pytest.fixture
def sample_urls():
    """Provides sample URLs for testing."""
    return [
        "https://example.com/test1",
        "https://google.com/search?q=test",
        "https://github.com/user/repo",
    ]
