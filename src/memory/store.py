"""BotStore: durable bot config, conversations and knowledge docs via libsql.

Tables mirror what the admin console reads and writes:

- ``bot_config``: singleton configuration row.
- ``conversations``: one row per channel, upserted on every memory append.
- ``knowledge_docs``: uploaded document metadata (console CRUD only).
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from src.config import settings
from src.db import get_connection
from src.memory.models import BotConfig, ConversationRecord, KnowledgeDoc, utc_now

if TYPE_CHECKING:
    from pathlib import Path

    from src.db import AsyncConnection

logger = logging.getLogger(__name__)

_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS bot_config (
        id                   TEXT PRIMARY KEY,
        system_instructions  TEXT NOT NULL DEFAULT '',
        allowed_channels     TEXT NOT NULL DEFAULT '[]',
        bot_name             TEXT NOT NULL DEFAULT '',
        personality          TEXT NOT NULL DEFAULT '',
        response_style       TEXT NOT NULL DEFAULT '',
        max_context_messages INTEGER NOT NULL DEFAULT 10,
        updated_at           TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS conversations (
        channel_id      TEXT PRIMARY KEY,
        channel_name    TEXT NOT NULL DEFAULT 'unknown',
        running_summary TEXT NOT NULL DEFAULT '',
        summary         TEXT NOT NULL DEFAULT '',
        messages        TEXT NOT NULL DEFAULT '[]',
        message_count   INTEGER NOT NULL DEFAULT 0,
        last_message_at TEXT NOT NULL,
        updated_at      TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS knowledge_docs (
        id          TEXT PRIMARY KEY,
        name        TEXT NOT NULL,
        size        INTEGER NOT NULL DEFAULT 0,
        chunks      INTEGER NOT NULL DEFAULT 0,
        uploaded_at TEXT NOT NULL
    )
    """,
)

_CONFIG_COLUMNS = (
    "id, system_instructions, allowed_channels, bot_name, personality, "
    "response_style, max_context_messages, updated_at"
)

_CONVERSATION_COLUMNS = (
    "channel_id, channel_name, running_summary, summary, messages, "
    "message_count, last_message_at, updated_at"
)


def _config_from_row(row: tuple) -> BotConfig:
    return BotConfig(
        id=row[0],
        system_instructions=row[1] or "",
        allowed_channels=json.loads(row[2] or "[]"),
        bot_name=row[3] or "",
        personality=row[4] or "",
        response_style=row[5] or "",
        max_context_messages=row[6] if row[6] is not None else 10,
        updated_at=row[7] or "",
    )


def _conversation_from_row(row: tuple) -> ConversationRecord:
    return ConversationRecord(
        channel_id=row[0],
        channel_name=row[1] or "unknown",
        running_summary=row[2] or "",
        summary=row[3] or "",
        messages=json.loads(row[4] or "[]"),
        message_count=row[5] or 0,
        last_message_at=row[6] or "",
        updated_at=row[7] or "",
    )


class BotStore:
    """Persists bot state in Turso / a local libsql file.

    Every operation opens its own connection.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> AsyncConnection:
        db = await get_connection(local_path_override=self._db_path)
        if not self._initialised:
            for statement in _CREATE_TABLES:
                await db.execute(statement)
            await db.commit()
            self._initialised = True
        return db

    # -- bot_config ------------------------------------------------------------

    async def get_config(self) -> BotConfig | None:
        """Fetch the most recently saved config row, or None if none exists."""
        async with await self._connect() as db:
            row = await db.fetchone(
                f"SELECT {_CONFIG_COLUMNS} FROM bot_config ORDER BY updated_at DESC LIMIT 1"
            )
        return _config_from_row(row) if row else None

    async def save_config(self, config: BotConfig) -> BotConfig:
        """Insert or update the config row by id. Returns the stored config."""
        stored = config.model_copy(update={"updated_at": utc_now()})
        async with await self._connect() as db:
            await db.execute(
                f"""
                INSERT OR REPLACE INTO bot_config ({_CONFIG_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stored.id,
                    stored.system_instructions,
                    json.dumps(stored.allowed_channels),
                    stored.bot_name,
                    stored.personality,
                    stored.response_style,
                    stored.max_context_messages,
                    stored.updated_at,
                ),
            )
            await db.commit()
        logger.info("Saved bot config %s", stored.id)
        return stored

    # -- conversations ---------------------------------------------------------

    async def get_conversation(self, channel_id: str) -> ConversationRecord | None:
        """Point lookup by channel ID."""
        async with await self._connect() as db:
            row = await db.fetchone(
                f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE channel_id = ?",
                (channel_id,),
            )
        return _conversation_from_row(row) if row else None

    async def upsert_conversation(self, record: ConversationRecord) -> None:
        """Insert a conversation row, or update it if the channel already exists."""
        async with await self._connect() as db:
            await db.execute(
                f"""
                INSERT INTO conversations ({_CONVERSATION_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(channel_id) DO UPDATE SET
                    channel_name    = excluded.channel_name,
                    running_summary = excluded.running_summary,
                    summary         = excluded.summary,
                    messages        = excluded.messages,
                    message_count   = excluded.message_count,
                    last_message_at = excluded.last_message_at,
                    updated_at      = excluded.updated_at
                """,
                (
                    record.channel_id,
                    record.channel_name,
                    record.running_summary,
                    record.summary,
                    json.dumps(record.messages),
                    record.message_count,
                    record.last_message_at,
                    record.updated_at,
                ),
            )
            await db.commit()

    async def delete_conversation(self, channel_id: str) -> bool:
        """Delete one channel's record. Returns True if a row was removed."""
        async with await self._connect() as db:
            deleted = await db.execute(
                "DELETE FROM conversations WHERE channel_id = ?", (channel_id,)
            )
            await db.commit()
        return deleted > 0

    async def delete_all_conversations(self) -> int:
        """Delete every conversation. Returns the number of rows removed."""
        async with await self._connect() as db:
            count = await db.execute("DELETE FROM conversations")
            await db.commit()
        logger.info("Deleted %d conversations", count)
        return count

    async def list_conversations(self) -> list[ConversationRecord]:
        """All conversations, most recently active first."""
        async with await self._connect() as db:
            rows = await db.fetchall(
                f"SELECT {_CONVERSATION_COLUMNS} FROM conversations "
                "ORDER BY last_message_at DESC"
            )
        return [_conversation_from_row(row) for row in rows]

    # -- knowledge_docs --------------------------------------------------------

    async def add_knowledge_doc(self, doc: KnowledgeDoc) -> KnowledgeDoc:
        stored = doc if doc.uploaded_at else doc.model_copy(update={"uploaded_at": utc_now()})
        async with await self._connect() as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO knowledge_docs (id, name, size, chunks, uploaded_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (stored.id, stored.name, stored.size, stored.chunks, stored.uploaded_at),
            )
            await db.commit()
        return stored

    async def list_knowledge_docs(self) -> list[KnowledgeDoc]:
        async with await self._connect() as db:
            rows = await db.fetchall(
                "SELECT id, name, size, chunks, uploaded_at FROM knowledge_docs "
                "ORDER BY uploaded_at DESC"
            )
        return [
            KnowledgeDoc(id=row[0], name=row[1], size=row[2], chunks=row[3], uploaded_at=row[4])
            for row in rows
        ]

    async def delete_knowledge_doc(self, doc_id: str) -> bool:
        async with await self._connect() as db:
            deleted = await db.execute("DELETE FROM knowledge_docs WHERE id = ?", (doc_id,))
            await db.commit()
        return deleted > 0


def create_store() -> BotStore | None:
    """Build the store from settings, or None for memory-only mode."""
    if not settings.store_configured():
        logger.warning(
            "Durable store disabled; set TURSO_DATABASE_URL or DATABASE_PATH to "
            "persist conversations. Running memory-only."
        )
        return None
    target = "Turso" if settings.turso_database_url else str(settings.database_path)
    logger.info("Durable store: %s", target)
    return BotStore()
