"""
Async database wrapper for the workspace sync server.

This module provides a thin wrapper around aiosqlite for database operations
and owns the schema shared by the identity resolver, the workspace store and
the content indexer.
"""

import aiosqlite
from pathlib import Path
from typing import Optional, List
import asyncio

from ..utils.errors import DatabaseError
from ..utils.logging import get_logger

logger = get_logger("workspace-sync.database")


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    api_key_hash TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS workspaces (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id),
    root_path TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, root_path)
);

CREATE TABLE IF NOT EXISTS workspace_files (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    workspace_id TEXT NOT NULL REFERENCES workspaces(id),
    path TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    content_hash TEXT NOT NULL DEFAULT '',
    size INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (workspace_id, path)
);

CREATE TABLE IF NOT EXISTS file_index (
    workspace_id TEXT NOT NULL,
    path TEXT NOT NULL,
    user_id TEXT NOT NULL,
    language TEXT NOT NULL DEFAULT '',
    line_count INTEGER NOT NULL DEFAULT 0,
    size INTEGER NOT NULL DEFAULT 0,
    indexed_at TEXT NOT NULL,
    PRIMARY KEY (workspace_id, path)
);

CREATE INDEX IF NOT EXISTS idx_workspace_files_user
    ON workspace_files (user_id, workspace_id);
"""


class Database:
    """Async SQLite database wrapper."""

    def __init__(
        self,
        db_path: Path | str,
        journal_mode: str = "WAL",
        synchronous: str = "NORMAL",
    ):
        """
        Initialize database wrapper.

        Args:
            db_path: Path to SQLite database file (``:memory:`` for tests)
            journal_mode: SQLite journal mode
            synchronous: SQLite synchronous setting
        """
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self.journal_mode = journal_mode
        self.synchronous = synchronous
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open database connection."""
        if self._connection is None:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(
                self.db_path,
                isolation_level=None  # Autocommit mode
            )
            self._connection.row_factory = aiosqlite.Row
            await self._connection.execute(f"PRAGMA journal_mode={self.journal_mode}")
            await self._connection.execute(f"PRAGMA synchronous={self.synchronous}")
            await self._connection.execute("PRAGMA foreign_keys=ON")

    async def initialize(self) -> None:
        """Connect and create the schema."""
        await self.connect()
        async with self._lock:
            try:
                await self._connection.executescript(SCHEMA)
            except aiosqlite.Error as e:
                raise DatabaseError(f"Failed to initialize schema: {e}", cause=e) from e
        logger.info("database_initialized", path=str(self.db_path))

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def execute(self, sql: str, parameters: tuple = ()) -> aiosqlite.Cursor:
        """
        Execute SQL statement.

        Args:
            sql: SQL statement
            parameters: Query parameters

        Returns:
            Cursor object
        """
        async with self._lock:
            if not self._connection:
                await self.connect()
            return await self._connection.execute(sql, parameters)

    async def fetchone(self, sql: str, parameters: tuple = ()) -> Optional[aiosqlite.Row]:
        """
        Execute query and fetch one result.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            Single row or None
        """
        async with self._lock:
            if not self._connection:
                await self.connect()
            async with self._connection.execute(sql, parameters) as cursor:
                return await cursor.fetchone()

    async def fetchall(self, sql: str, parameters: tuple = ()) -> List[aiosqlite.Row]:
        """
        Execute query and fetch all results.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            List of rows
        """
        async with self._lock:
            if not self._connection:
                await self.connect()
            async with self._connection.execute(sql, parameters) as cursor:
                return await cursor.fetchall()

    @property
    def connection(self) -> Optional[aiosqlite.Connection]:
        """Get raw connection object."""
        return self._connection

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
