"""
Low-level storage for named state blobs.

Each row holds one opaque text blob under a unique key. Encoding is the
caller's concern; this repository only moves strings in and out.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from tickcord.util.logger import get_logger

logger = get_logger("state_repo")


class StateRepo:
    """Low-level CRUD for the ``state_blobs`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def save(conn: aiosqlite.Connection, key: str, blob: str) -> None:
        """Insert or replace the blob stored under ``key``."""
        await conn.execute(
            """
            INSERT INTO state_blobs (key, value)
            VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, blob),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def load(conn: aiosqlite.Connection, key: str) -> str | None:
        """Return the blob stored under ``key``, or None when absent."""
        cursor = await conn.execute("SELECT value FROM state_blobs WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return None if row is None else str(row[0])

    @staticmethod
    async def keys(conn: aiosqlite.Connection) -> List[str]:
        cursor = await conn.execute("SELECT key FROM state_blobs ORDER BY key")
        rows = await cursor.fetchall()
        return [str(row[0]) for row in rows]


# Module-level singleton
state_repo = StateRepo()
