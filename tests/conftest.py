"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from books_api.database import BookRepository


def _async_iter(items):
    async def _gen():
        for item in items:
            yield item
    return _gen()


def _make_snapshot(doc_id, data, exists=True):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = data if exists else None
    return snapshot


@pytest.fixture
def async_iter():
    """Wrap a list in an async iterator, like Firestore's stream()."""
    return _async_iter


@pytest.fixture
def make_snapshot():
    """Build a fake Firestore document snapshot."""
    return _make_snapshot


@pytest.fixture
def added_at():
    """Fixed creation timestamp used across tests."""
    return datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def sample_book_data(added_at):
    """A stored book record as the database returns it."""
    return {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "year": "1969",
        "added": added_at,
    }


@pytest.fixture
def sample_book_payload():
    """A create/update request body."""
    return {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "year": "1969",
    }


@pytest.fixture
def mock_book_repository():
    """Mock repository patched into the running application."""
    repository = AsyncMock(spec=BookRepository)
    with patch("books_api.main.book_repository", repository):
        yield repository


@pytest.fixture
def mock_firestore_client():
    """Mock async Firestore client with a single books collection."""
    client = MagicMock()
    collection = MagicMock()
    client.collection.return_value = collection
    return client


@pytest.fixture
def mock_realtime_reference():
    """Mock Realtime Database reference for the books node."""
    reference = MagicMock()
    reference.path = "/books"
    return reference
