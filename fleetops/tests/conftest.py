# fleetops/tests/conftest.py

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("AWS_REGION", "us-east-1")

from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import fleetops.models  # noqa: F401
from fleetops.core.db import Base, get_db


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every connection of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Database session fixture for testing"""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    """Attachment storage double that accepts every upload."""
    storage = MagicMock()
    storage.build_key.side_effect = lambda prefix, filename: f"{prefix}/{filename}"
    storage.upload_file.return_value = True
    return storage


@pytest.fixture
def client(db_session):
    """API client bound to the test session."""
    from fastapi.testclient import TestClient

    from fleetops.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
