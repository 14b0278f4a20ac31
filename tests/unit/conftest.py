"""
Unit test configuration.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from openelevate.core.data.database import Base, get_db
from openelevate.core.messaging.events import EventBus
from openelevate.gamification.processor import BadgeService, get_badge_service

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def engine():
    """Create test database engine with fresh tables each time"""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Ensures the same connection is used
    )
    return engine


@pytest.fixture(scope="function")
def db(engine, monkeypatch):
    """Database session with automatic cleanup between tests

    This fixture:
    1. Creates fresh in-memory database for each test
    2. Creates all tables before test
    3. Patches SessionLocal so background code uses the test database
    4. Yields clean session for test
    5. Drops all tables after test completes
    """
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    monkeypatch.setattr(
        "openelevate.core.data.database.SessionLocal",
        TestSessionLocal,
    )
    monkeypatch.setattr(
        "openelevate.gamification.processor.event_processor.SessionLocal",
        TestSessionLocal,
    )

    session = TestSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def badge_service():
    """Fresh badge service with an empty evaluator cache"""
    return BadgeService()


@pytest.fixture
def event_redis(monkeypatch):
    """Redis client behind the event bus the routes publish to"""
    redis_client = AsyncMock()
    monkeypatch.setattr(
        "openelevate.apps.gamification.routes.contributions.event_bus",
        EventBus(redis_client=redis_client),
    )
    return redis_client


@pytest.fixture
def client(db, badge_service, event_redis):
    """Test client with the API bound to the test database.

    The lifespan is not entered, so no tables are created on disk and no
    definitions are loaded. Published events go to a mocked Redis.
    """
    from openelevate.main import app  # pylint: disable=import-outside-toplevel

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_badge_service] = lambda: badge_service
    yield TestClient(app)
    app.dependency_overrides.clear()
