"""
Database initialization and shutdown for the SQLite state file.

Lifecycle:
    1. ``await database.initialize()`` at program startup
    2. repositories use ``db_connection`` directly
    3. ``await database.shutdown()`` at program end
"""

from __future__ import annotations

from pathlib import Path

from tickcord.database.db_connection import ConnectionManager, db_connection
from tickcord.database.db_schema import SchemaManager
from tickcord.util.logger import get_logger

logger = get_logger("database")

DB_PATH = Path("./data/app.db").resolve()


class Database:
    """
    Opens the shared connection and makes sure the schema exists.

    Args:
        db_path: Path to the SQLite database file.
        connection: Connection manager to open; defaults to the shared one.
    """

    def __init__(self, db_path: Path = DB_PATH, connection: ConnectionManager = db_connection):
        self.db_path = db_path
        self.connection = connection
        self._initialized = False

    async def initialize(self) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self.connection.open(self.db_path)
            async with self.connection.transaction() as conn:
                await SchemaManager.initialize_schema(conn)

            self._initialized = True
            logger.info("[DATABASE] Database initialized at %s", self.db_path)
            return True

        except Exception as e:
            logger.error("[DATABASE] Database initialization failed: %s", e)
            return False

    async def shutdown(self) -> None:
        """Close the shared connection. No-op when never initialized."""
        if not self._initialized:
            return

        await self.connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")
