"""
Test configuration and fixtures for the shortlink service.
This centralizes all test setup, making individual tests clean.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink_app.cache.strategies import InMemoryCache
from shortlink_app.config import StatusCheckerSettings
from shortlink_app.database.connection import Base, get_db
from shortlink_app.dependencies import get_cache, get_click_storage, get_queue
from shortlink_app.models.url import URL
from shortlink_app.queue.strategies import InMemoryQueue
from shortlink_app.status_checker.repository import SQLAlchemyUrlStatusRepository
from shortlink_app.storage.strategies import SQLAlchemyClickStorage

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def cache():
    """Fresh redirect cache per test (the app-wide one would leak between tests)"""
    return InMemoryCache()


@pytest.fixture(scope="function")
def click_queue():
    """Fresh click queue per test"""
    return InMemoryQueue(max_length=100)


@pytest.fixture(scope="function")
def client(db_session, cache, click_queue, click_storage):
    """
    Create a test client with database, cache, click queue and click
    storage dependencies overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_queue] = lambda: click_queue
    app.dependency_overrides[get_click_storage] = lambda: click_storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def session_factory(db_session):
    """Session factory bound to the test database, for code that opens its own sessions"""
    return TestingSessionLocal


@pytest.fixture(scope="function")
def status_repository(session_factory):
    """Status store on the test database"""
    return SQLAlchemyUrlStatusRepository(session_factory=session_factory)


@pytest.fixture(scope="function")
def click_storage(session_factory):
    """Click store on the test database"""
    return SQLAlchemyClickStorage(session_factory=session_factory)


@pytest.fixture
def make_urls(db_session):
    """Insert URLs directly; returns the created rows"""
    def _make(count: int, prefix: str = "https://example.com/page"):
        urls = []
        for i in range(count):
            url = URL(long_url=f"{prefix}/{i}", short_code=f"c{i}")
            db_session.add(url)
            urls.append(url)
        db_session.commit()
        for url in urls:
            db_session.refresh(url)
        return urls
    return _make


@pytest.fixture
def checker_settings():
    """Build enabled StatusCheckerSettings with small, test friendly values"""
    def _settings(**overrides):
        values = dict(
            enabled=True,
            poll_interval=timedelta(seconds=60),
            alive_recheck_interval=timedelta(hours=6),
            gone_recheck_interval=timedelta(hours=24),
            batch_size=100,
            concurrency=5,
            archive_lookup_enabled=True,
            archive_recheck_interval=timedelta(days=7),
        )
        values.update(overrides)
        return StatusCheckerSettings(**values)
    return _settings
