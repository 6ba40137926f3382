"""
Pytest configuration.

Environment is pinned before any app module is imported so that the cached
settings never pick up a developer's .env (no store, no rate limiting, no
real credentials). Store-backed unit tests use a MongoDB handle bound to
mocked Motor collections.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMITING_ENABLED"] = "false"
os.environ["LICENSE_ENFORCEMENT_ENABLED"] = "true"
os.environ["TRIAL_DAYS"] = "5"
os.environ["STARTING_CREDITS"] = "0"
os.environ["MONGODB_URI"] = ""
os.environ["TOSS_SECRET_KEY"] = "test_sk_unit"
os.environ["FIREBASE_PROJECT_ID"] = "gateway-test"
os.environ["LOG_FILE"] = ""

import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from app.database.mongodb import MongoDB


TEST_DATABASE_NAME = "translation_gateway_test"
FIXED_NOW = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for trial-window tests."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_collection() -> MagicMock:
    """Motor collection mock with the async methods the services call."""
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=SimpleNamespace(inserted_id="inserted"))
    collection.update_one = AsyncMock(
        return_value=SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
    )
    return collection


def upsert_result(upserted_id=None, matched_count=0):
    return SimpleNamespace(matched_count=matched_count, modified_count=0, upserted_id=upserted_id)


@pytest.fixture
def database():
    """MongoDB handle bound to mocked users/transactions/orders collections."""
    db = MagicMock()
    db.users = make_collection()
    db.transactions = make_collection()
    db.orders = make_collection()

    client = MagicMock()
    client.__getitem__.return_value = db

    handle = MongoDB(uri=None, database_name=TEST_DATABASE_NAME)
    handle.bind(client)
    return handle


@pytest.fixture
def unconfigured_database():
    """MongoDB handle with no URI (local dev mode)."""
    return MongoDB(uri=None, database_name=TEST_DATABASE_NAME)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client():
    """TestClient without lifespan; routes get collaborators from dependency overrides."""
    from app.main import app

    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
