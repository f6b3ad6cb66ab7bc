"""MemoryManager: bounded per-channel history with best-effort persistence.

The in-process ``ChannelCache`` is the working copy; the ``BotStore`` is a
replica written after every append.  The two are not transactionally
coupled: a write that fails, or a crash between an append and its persist,
loses that increment in the store.  Consistency is at-most-once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from src.memory.models import (
    ChannelMemory,
    ConversationRecord,
    MemorySnapshot,
    Message,
    PersistOutcome,
    utc_now,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.memory.cache import ChannelCache
    from src.memory.store import BotStore

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 20

# Derived synopsis used when no running summary exists yet
SYNOPSIS_MESSAGES = 5
SYNOPSIS_CHARS = 50


def build_display_summary(memory: ChannelMemory) -> str:
    """Summary shown in the admin console for a channel.

    The running summary when there is one, otherwise the last few messages
    as ``"{author}: {first 50 chars}..."`` lines.
    """
    if memory.summary:
        return memory.summary
    return "\n".join(
        f"{m.author}: {m.content[:SYNOPSIS_CHARS]}..."
        for m in memory.messages[-SYNOPSIS_MESSAGES:]
    )


class MemoryManager:
    """Owns the channel cache and applies the window and persistence policy.

    Args:
        cache: The channel cache to manage.
        store: Durable store, or None for memory-only operation.
        window_size: Maximum messages kept per channel.
        on_persist_error: Called with the failed ``PersistOutcome`` whenever a
            durable write fails.
    """

    def __init__(
        self,
        cache: ChannelCache,
        store: BotStore | None = None,
        *,
        window_size: int = DEFAULT_WINDOW_SIZE,
        on_persist_error: Callable[[PersistOutcome], None] | None = None,
    ) -> None:
        self._cache = cache
        self._store = store
        self._window_size = window_size
        self._on_persist_error = on_persist_error
        # One lock per channel: writes for a channel land in append order
        # without queueing behind other channels.
        self._persist_locks: dict[str, asyncio.Lock] = {}
        self._pending: set[asyncio.Task[PersistOutcome]] = set()
        self.persist_failures = 0
        self.last_persist_error: BaseException | None = None

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def store(self) -> BotStore | None:
        return self._store

    # -- Read ------------------------------------------------------------------

    async def get_or_create(self, channel_id: str) -> ChannelMemory:
        """Return the channel's memory, hydrating from the store on a cache miss.

        Never raises: a store failure falls back to a fresh empty entry.
        """
        memory = self._cache.get(channel_id)
        if memory is not None:
            return memory

        record = None
        if self._store is not None:
            try:
                record = await self._store.get_conversation(channel_id)
            except Exception:
                logger.exception("Failed to load conversation for channel %s", channel_id)

        # Another task may have filled the slot while we awaited the store
        memory = self._cache.get(channel_id)
        if memory is not None:
            return memory

        if record is not None:
            memory = ChannelMemory(
                messages=[Message.from_dict(m) for m in record.messages][-self._window_size :],
                summary=record.summary,
            )
            logger.info(
                "Hydrated %d messages for channel %s", len(memory.messages), channel_id
            )
        else:
            memory = ChannelMemory()

        self._cache.put(channel_id, memory)
        return memory

    def get_snapshot(self, channel_id: str) -> MemorySnapshot | None:
        """Cache-only view of one channel, or None if it isn't loaded."""
        memory = self._cache.get(channel_id)
        if memory is None:
            return None
        return self._snapshot(channel_id, memory)

    def list_all(self) -> list[MemorySnapshot]:
        """Snapshot every cached channel. Does not touch the store."""
        return [self._snapshot(cid, memory) for cid, memory in self._cache.items()]

    @staticmethod
    def _snapshot(channel_id: str, memory: ChannelMemory) -> MemorySnapshot:
        return MemorySnapshot(
            channel_id=channel_id,
            message_count=len(memory.messages),
            summary=memory.summary,
            last_updated=memory.last_updated,
        )

    # -- Write -----------------------------------------------------------------

    async def append(
        self,
        channel_id: str,
        role: str,
        content: str,
        author: str = "",
        channel_name: str = "unknown",
    ) -> asyncio.Task[PersistOutcome] | None:
        """Append a message, trim to the window and schedule a persist.

        Returns the persist task (await it to observe the outcome), or None
        when there is no store.
        """
        memory = await self.get_or_create(channel_id)
        memory.messages.append(Message(role=role, content=content, author=author))
        if len(memory.messages) > self._window_size:
            del memory.messages[: -self._window_size]
        memory.touch()

        if self._store is None:
            return None

        record = self._build_record(channel_id, channel_name, memory)
        task = asyncio.create_task(self._persist(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def clear(self, channel_id: str) -> None:
        """Forget a channel in the cache and the store. Safe to repeat."""
        self._cache.pop(channel_id)
        self._persist_locks.pop(channel_id, None)
        if self._store is None:
            return
        try:
            deleted = await self._store.delete_conversation(channel_id)
            if deleted:
                logger.info("Deleted stored conversation for channel %s", channel_id)
        except Exception:
            logger.exception("Failed to delete conversation for channel %s", channel_id)

    async def flush(self) -> list[PersistOutcome]:
        """Wait for every in-flight persist and return their outcomes."""
        if not self._pending:
            return []
        return list(await asyncio.gather(*list(self._pending)))

    # -- Persistence -----------------------------------------------------------

    @staticmethod
    def _build_record(
        channel_id: str, channel_name: str, memory: ChannelMemory
    ) -> ConversationRecord:
        now = utc_now()
        return ConversationRecord(
            channel_id=channel_id,
            channel_name=channel_name,
            running_summary=build_display_summary(memory),
            summary=memory.summary,
            messages=[m.to_dict() for m in memory.messages],
            message_count=len(memory.messages),
            last_message_at=now,
            updated_at=now,
        )

    async def _persist(self, record: ConversationRecord) -> PersistOutcome:
        """Upsert one record. Failures are logged and reported, never raised."""
        lock = self._persist_locks.setdefault(record.channel_id, asyncio.Lock())
        async with lock:
            try:
                await self._store.upsert_conversation(record)
            except Exception as exc:
                logger.exception("Failed to persist conversation for #%s", record.channel_name)
                outcome = PersistOutcome(channel_id=record.channel_id, ok=False, error=exc)
                self.persist_failures += 1
                self.last_persist_error = exc
                if self._on_persist_error is not None:
                    try:
                        self._on_persist_error(outcome)
                    except Exception:
                        logger.exception("Persist error callback failed")
                return outcome

        logger.info(
            "Persisted %d messages for #%s", record.message_count, record.channel_name
        )
        return PersistOutcome(channel_id=record.channel_id, ok=True)
