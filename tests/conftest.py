"""Shared test fixtures."""

from unittest.mock import AsyncMock

import pytest

from src.memory.cache import ChannelCache
from src.memory.manager import MemoryManager
from src.memory.store import BotStore


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("src.config.settings.turso_database_url", "")


@pytest.fixture
def mock_store() -> AsyncMock:
    """A BotStore double with an empty database."""
    store = AsyncMock(spec=BotStore)
    store.get_conversation.return_value = None
    store.get_config.return_value = None
    store.delete_conversation.return_value = True
    return store


@pytest.fixture
def memory() -> MemoryManager:
    """A memory-only MemoryManager (no store)."""
    return MemoryManager(ChannelCache())
