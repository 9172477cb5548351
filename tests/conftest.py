"""
Test configuration and fixtures for the short link service.
Every test gets its own SQLite file, so tests are isolated.
"""

import threading
from typing import Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shortlink_app.cache.strategies import InMemoryCache
from shortlink_app.config import Settings
from shortlink_app.database.connection import Database
from shortlink_app.models.url import URL
from shortlink_app.services.id_generators import IdGenerator, NanoidGenerator
from shortlink_app.services.url_service import URLService

BASE_URL = "http://testserver"


class ScriptedIdGenerator(IdGenerator):
    """
    Hands out a fixed list of candidates first, then random ones.
    Thread-safe, so concurrent callers can be forced onto the same candidate.
    """

    def __init__(self, candidates: Iterable[str], default_length: int = 6):
        self._candidates: List[str] = list(candidates)
        self._lock = threading.Lock()
        self._fallback = NanoidGenerator(default_length=default_length)
        self.default_length = default_length
        self.calls: List[str] = []

    def generate(self, length: Optional[int] = None) -> str:
        with self._lock:
            if self._candidates:
                candidate = self._candidates.pop(0)
            else:
                candidate = self._fallback.generate(length)
            self.calls.append(candidate)
        return candidate


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        base_url=BASE_URL,
        cache_backend="memory",
        log_level="DEBUG",
    )


@pytest.fixture
def database(settings):
    """A migrated database, dropped and disposed after the test."""
    db = Database.from_settings(settings)
    db.create_schema()
    try:
        yield db
    finally:
        db.drop_schema()
        db.dispose()


@pytest.fixture
def make_service(database):
    """Build a URLService over the test database with custom collaborators."""
    def _make(id_generator=None, retry_policy=None, cache=None):
        return URLService(
            database=database,
            id_generator=id_generator or NanoidGenerator(),
            base_url=BASE_URL,
            retry_policy=retry_policy,
            cache=cache,
        )
    return _make


@pytest.fixture
def url_service(make_service):
    return make_service(cache=InMemoryCache())


@pytest.fixture
def scripted():
    """Factory for ScriptedIdGenerator."""
    return ScriptedIdGenerator


@pytest.fixture
def count_rows(database):
    def _count() -> int:
        with database.session() as session:
            return session.query(URL).count()
    return _count


@pytest.fixture
def client(settings):
    """
    Test client over a fully wired app.
    Entering the client runs the lifespan (schema, cache, service).
    """
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
