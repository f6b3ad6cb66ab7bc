"""ChannelCache: process-local map of channel ID to ChannelMemory."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from src.memory.models import ChannelMemory

logger = logging.getLogger(__name__)


class ChannelCache:
    """Keyed container of channel memories with least-recently-used eviction.

    Created once at startup and handed to the ``MemoryManager``.  Eviction
    only drops the in-process copy; a channel's durable record is untouched
    and is hydrated again on next access.

    Args:
        capacity: Maximum number of channels kept. ``0`` or ``None`` means
            unbounded.
    """

    def __init__(self, capacity: int | None = None) -> None:
        self._capacity = capacity or 0
        self._entries: OrderedDict[str, ChannelMemory] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._entries

    def get(self, channel_id: str) -> ChannelMemory | None:
        """Return the entry (marking it recently used), or None."""
        memory = self._entries.get(channel_id)
        if memory is not None:
            self._entries.move_to_end(channel_id)
        return memory

    def put(self, channel_id: str, memory: ChannelMemory) -> None:
        """Insert or replace an entry, evicting the oldest when full."""
        self._entries[channel_id] = memory
        self._entries.move_to_end(channel_id)
        while self._capacity and len(self._entries) > self._capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.info("Evicted channel %s from memory cache", evicted)

    def pop(self, channel_id: str) -> ChannelMemory | None:
        return self._entries.pop(channel_id, None)

    def items(self) -> Iterator[tuple[str, ChannelMemory]]:
        """Iterate over a copy of the entries, oldest first."""
        return iter(list(self._entries.items()))

    def clear(self) -> int:
        """Drop every entry. Returns the number removed."""
        count = len(self._entries)
        self._entries.clear()
        return count
