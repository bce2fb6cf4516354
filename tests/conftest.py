"""Pytest configuration and shared fixtures."""

import os

# must be set before lms_forum.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-0123456789")
os.environ["RATELIMIT_ENABLED"] = "false"
os.environ.setdefault("DB_SCHEMA", "lms")

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from lms_forum.models.user_model import User, UserRole


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.get = AsyncMock()
    return db


@pytest.fixture
def author():
    return User(id=uuid4(), name="Asha", email="asha@college.edu", role=UserRole.STUDENT.value)


@pytest.fixture
def other_user():
    return User(id=uuid4(), name="Bilal", email="bilal@college.edu", role=UserRole.STUDENT.value)
