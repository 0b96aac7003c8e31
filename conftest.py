"""
Pytest configuration and shared fixtures.

Test settings are placed in the environment before any livefeed import so the
engine is bound to a throwaway SQLite file.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_livefeed.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports to ensure test env vars are used
from livefeed.config import get_settings
get_settings.cache_clear()

from livefeed import models  # noqa: F401  registers tables on Base.metadata
from livefeed.main import app
from livefeed.storage import SessionLocal, Base, engine


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    # Cleanup - drop all tables after test
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def tables():
    """Fresh tables without an HTTP client (for in-process ASGI transport)."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(tables):
    """Database session against freshly created tables."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
