"""Shared pytest fixtures."""

import tempfile
from pathlib import Path

import pytest

from src.counter import CounterStore
from src.storage import Storage


@pytest.fixture
def temp_dir():
    """Temporary directory removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_storage(temp_dir):
    """Create temporary link storage for testing."""
    return Storage(str(temp_dir / "test_links.db"))


@pytest.fixture
def counter_store(temp_dir):
    """Create temporary counter store for testing."""
    return CounterStore(str(temp_dir / "test_counters.db"))
