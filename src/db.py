"""Async libsql access for the durable store.

The ``libsql`` driver is synchronous, so each query runs in a worker thread
via ``asyncio.to_thread()``; execute and fetch happen in the same hop.
Connection target is determined by settings:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → remote Turso
- **Dev/test**: ``DATABASE_PATH`` → local SQLite file
- **Neither**: no store; callers must check ``settings.store_configured()``
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import libsql

if TYPE_CHECKING:
    from pathlib import Path

from src.config import settings

LOCAL_BUSY_TIMEOUT_MS = 5000


class StoreNotConfiguredError(RuntimeError):
    """Raised when a connection is requested but no database is configured."""


class AsyncConnection:
    """One libsql connection, closed on ``async with`` exit.

    ``execute`` returns the affected row count; ``fetchone``/``fetchall``
    return rows as tuples.
    """

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def __aenter__(self) -> AsyncConnection:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def execute(self, sql: str, params: tuple = ()) -> int:
        return await asyncio.to_thread(lambda: self._conn.execute(sql, params).rowcount)

    async def fetchone(self, sql: str, params: tuple = ()) -> tuple | None:
        return await asyncio.to_thread(lambda: self._conn.execute(sql, params).fetchone())

    async def fetchall(self, sql: str, params: tuple = ()) -> list[tuple]:
        return await asyncio.to_thread(lambda: self._conn.execute(sql, params).fetchall())

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


def _open_file(path: Path) -> Any:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = libsql.connect(str(path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={LOCAL_BUSY_TIMEOUT_MS}")
    return conn


def _open_turso() -> Any:
    return libsql.connect(
        database=settings.turso_database_url,
        auth_token=settings.turso_auth_token,
    )


async def get_connection(local_path_override: Path | None = None) -> AsyncConnection:
    """Open a connection: *local_path_override*, then Turso, then ``database_path``.

    Raises ``StoreNotConfiguredError`` when none of them is available.
    """
    if local_path_override:
        return AsyncConnection(await asyncio.to_thread(_open_file, local_path_override))
    if settings.turso_database_url:
        return AsyncConnection(await asyncio.to_thread(_open_turso))
    if settings.database_path is not None:
        return AsyncConnection(await asyncio.to_thread(_open_file, settings.database_path))

    msg = "No database configured: set TURSO_DATABASE_URL or DATABASE_PATH"
    raise StoreNotConfiguredError(msg)
