"""
Durable key/value state with dirty tracking and best-effort flushing.

Components that own persisted state register a snapshot callable under a
key and call ``mark_dirty(key)`` whenever they change. ``flush()`` writes
every dirty key as JSON through :class:`StateRepo`; a failed write is logged
and the key stays dirty so the next flush retries it.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict

from tickcord.database.db_connection import ConnectionManager, db_connection
from tickcord.repositories.state_repo import state_repo
from tickcord.util.logger import get_logger

logger = get_logger("state_store")


class StateStore:
    """
    Opaque load/save capability over the ``state_blobs`` table.

    Args:
        connection: Connection manager used for reads and write transactions.
    """

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._connection = connection
        self._sources: Dict[str, Callable[[], Any]] = {}
        self._dirty: set[str] = set()
        self._flush_task: asyncio.Task[bool] | None = None

    # ------------------------------------------------------------------
    # Registration / dirty tracking
    # ------------------------------------------------------------------

    def register(self, key: str, snapshot: Callable[[], Any]) -> None:
        """Register the callable that produces the JSON-compatible value for ``key``."""
        self._sources[key] = snapshot

    def mark_dirty(self, key: str) -> None:
        if key not in self._sources:
            logger.warning("[STATE STORE] mark_dirty for unregistered key %s", key)
            return
        self._dirty.add(key)

    def dirty_keys(self) -> frozenset[str]:
        return frozenset(self._dirty)

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    async def load(self, key: str) -> Any | None:
        """
        Load and decode the value stored under ``key``.

        Returns None when the key is absent, undecodable, or the database
        cannot be read; the last two cases are logged.
        """
        try:
            async with self._connection.read() as conn:
                blob = await state_repo.load(conn, key)
        except Exception as exc:
            logger.error("[STATE STORE] Failed to load %s: %s", key, exc)
            return None

        if blob is None:
            return None

        try:
            return json.loads(blob)
        except json.JSONDecodeError as exc:
            logger.error("[STATE STORE] Corrupt blob under %s: %s", key, exc)
            return None

    async def save(self, key: str, value: Any) -> bool:
        """Encode and write ``value`` under ``key``. Returns False on failure."""
        try:
            blob = json.dumps(value, sort_keys=True)
            async with self._connection.transaction() as conn:
                await state_repo.save(conn, key, blob)
        except Exception as exc:
            logger.error("[STATE STORE] Failed to save %s: %s", key, exc)
            return False
        logger.debug("[STATE STORE] Saved %s (%d bytes)", key, len(blob))
        return True

    async def flush(self) -> bool:
        """
        Write every dirty key.

        A background flush still in flight is awaited first so that two
        flushes never interleave.

        Returns:
            bool: True when all dirty keys were saved.
        """
        pending = self._flush_task
        if pending is not None and not pending.done() and pending is not asyncio.current_task():
            await asyncio.wait({pending})

        ok = True
        for key in sorted(self._dirty):
            self._dirty.discard(key)
            try:
                value = self._sources[key]()
            except Exception:
                logger.exception("[STATE STORE] Snapshot for %s failed", key)
                self._dirty.add(key)
                ok = False
                continue
            if not await self.save(key, value):
                self._dirty.add(key)
                ok = False
        return ok

    def schedule_flush(self) -> asyncio.Task[bool] | None:
        """
        Start a background flush if anything is dirty and none is running.

        Must be called from inside the running event loop.
        """
        if not self._dirty:
            return None
        if self._flush_task is not None and not self._flush_task.done():
            return self._flush_task
        self._flush_task = asyncio.get_running_loop().create_task(self.flush(), name="tickcord-state-flush")
        return self._flush_task
