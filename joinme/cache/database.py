"""SQLite database operations for the local entity cache."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional, Union

import aiosqlite
from pydantic import ValidationError

from .models import CachedRow, CacheMetadata

logger = logging.getLogger(__name__)

# One table per cached entity kind, all sharing the same layout
ENTITY_TABLES = ("events", "groups", "series")

METADATA_KEYS = (
    "last_update",
    "last_successful_fetch",
    "consecutive_failures",
    "last_error",
    "last_error_time",
)


class DatabaseManager:
    """Manages the SQLite file backing the local cache.

    Every operation opens its own connection; SQLite in WAL mode gives each
    statement batch its own atomicity, so callers need no extra locking.
    """

    def __init__(self, database_path: Union[Path, str]):
        """Initialize database manager.

        Args:
            database_path: Path to SQLite database file
        """
        self.database_path = (
            Path(database_path) if isinstance(database_path, str) else database_path
        )
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._initialization_lock: Optional[asyncio.Lock] = None

        logger.info(f"Database manager initialized (lazy): {database_path}")

    async def _ensure_initialized(self) -> bool:
        """Ensure database is initialized before operations.

        Returns:
            True if initialization successful, False otherwise
        """
        if self._initialized:
            return True

        # Use a lock to prevent concurrent initialization
        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            # Double-check after acquiring lock
            if self._initialized:
                return True

            self._initialized = await self._initialize_database()
            return self._initialized

    async def _initialize_database(self) -> bool:
        """Create the schema.

        Returns:
            True if initialization successful, False otherwise
        """
        try:
            async with aiosqlite.connect(str(self.database_path)) as db:
                # WAL keeps readers and the writer out of each other's way
                await db.execute("PRAGMA journal_mode=WAL")
                await db.execute("PRAGMA synchronous=NORMAL")

                for table in ENTITY_TABLES:
                    await db.execute(
                        f"""
                        CREATE TABLE IF NOT EXISTS {table} (
                            id TEXT PRIMARY KEY,
                            owner_id TEXT,
                            data TEXT NOT NULL,
                            cached_at TEXT NOT NULL,
                            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                        )
                    """
                    )

                await db.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cache_metadata (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    )
                """
                )

                await db.commit()

                logger.info("Database schema initialized successfully")
                return True

        except Exception:
            logger.exception("Failed to initialize database")
            return False

    async def initialize(self) -> bool:
        """Initialize database schema eagerly.

        Returns:
            True if initialization was successful, False otherwise
        """
        return await self._ensure_initialized()

    def table(self, name: str) -> "LocalTable":
        """Get the local store for one entity kind.

        Args:
            name: Table name, one of ENTITY_TABLES

        Returns:
            LocalTable bound to this database
        """
        if name not in ENTITY_TABLES:
            raise ValueError(f"Unknown cache table: {name}")
        return LocalTable(self, name)

    async def get_cache_metadata(self, kind: str) -> CacheMetadata:
        """Get cache metadata and statistics for one entity kind.

        Args:
            kind: Entity table name

        Returns:
            Cache metadata object
        """
        try:
            await self._ensure_initialized()
            async with aiosqlite.connect(str(self.database_path)) as db:
                db.row_factory = aiosqlite.Row

                cursor = await db.execute(f"SELECT COUNT(*) as count FROM {kind}")
                count_row = await cursor.fetchone()
                total_rows = count_row["count"] if count_row else 0

                metadata_dict = {}
                cursor = await db.execute(
                    "SELECT key, value FROM cache_metadata WHERE key LIKE ?", (f"{kind}.%",)
                )
                for row in await cursor.fetchall():
                    metadata_dict[row["key"].split(".", 1)[1]] = row["value"]

                return CacheMetadata(
                    kind=kind,
                    total_rows=total_rows,
                    last_update=metadata_dict.get("last_update"),
                    last_successful_fetch=metadata_dict.get("last_successful_fetch"),
                    consecutive_failures=int(metadata_dict.get("consecutive_failures", 0)),
                    last_error=metadata_dict.get("last_error"),
                    last_error_time=metadata_dict.get("last_error_time"),
                )

        except Exception:
            logger.exception("Failed to get cache metadata")
            return CacheMetadata(kind=kind)

    async def update_cache_metadata(self, kind: str, **kwargs: Any) -> bool:
        """Update cache metadata for one entity kind.

        Keys set to None are removed.

        Args:
            kind: Entity table name
            **kwargs: Metadata key-value pairs to update

        Returns:
            True if update was successful, False otherwise
        """
        try:
            await self._ensure_initialized()
            async with aiosqlite.connect(str(self.database_path)) as db:
                for key, value in kwargs.items():
                    if key not in METADATA_KEYS:
                        raise ValueError(f"Unknown metadata key: {key}")
                    if value is None:
                        await db.execute(
                            "DELETE FROM cache_metadata WHERE key = ?", (f"{kind}.{key}",)
                        )
                    else:
                        await db.execute(
                            """
                            INSERT OR REPLACE INTO cache_metadata (key, value, updated_at)
                            VALUES (?, ?, CURRENT_TIMESTAMP)
                        """,
                            (f"{kind}.{key}", str(value)),
                        )

                await db.commit()

                logger.debug(f"Updated {kind} cache metadata: {kwargs}")
                return True

        except Exception:
            logger.exception("Failed to update cache metadata")
            return False

    async def get_database_info(self) -> dict[str, Any]:
        """Get database information and statistics.

        Returns:
            Dictionary with file size, journal mode and row counts per table
        """
        try:
            await self._ensure_initialized()
            async with aiosqlite.connect(str(self.database_path)) as db:
                cursor = await db.execute("PRAGMA journal_mode")
                journal_row = await cursor.fetchone()

                row_counts = {}
                for table in ENTITY_TABLES:
                    cursor = await db.execute(f"SELECT COUNT(*) FROM {table}")
                    count_row = await cursor.fetchone()
                    row_counts[table] = count_row[0] if count_row else 0

            return {
                "database_path": str(self.database_path),
                "file_size_bytes": (
                    self.database_path.stat().st_size if self.database_path.exists() else 0
                ),
                "journal_mode": journal_row[0] if journal_row else "unknown",
                "row_counts": row_counts,
            }

        except Exception:
            logger.exception("Failed to get database info")
            return {}


class LocalTable:
    """Local store for the cached rows of a single entity kind."""

    def __init__(self, manager: DatabaseManager, name: str):
        self.manager = manager
        self.name = name

    @property
    def _path(self) -> str:
        return str(self.manager.database_path)

    def _to_rows(self, records: list[Any]) -> list[CachedRow]:
        rows = []
        for record in records:
            try:
                rows.append(
                    CachedRow(
                        id=record["id"],
                        owner_id=record["owner_id"],
                        data=record["data"],
                        cached_at=record["cached_at"],
                    )
                )
            except (ValidationError, KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed row in {self.name}: {e}")
        return rows

    @staticmethod
    def _values(row: CachedRow) -> tuple[str, Optional[str], str, str]:
        return (row.id, row.owner_id, row.data, row.cached_at)

    async def get_all(self) -> list[CachedRow]:
        """Get every cached row of this kind.

        Returns:
            List of cached rows (empty on failure)
        """
        try:
            if not await self.manager._ensure_initialized():
                return []

            async with aiosqlite.connect(self._path) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    f"SELECT id, owner_id, data, cached_at FROM {self.name} ORDER BY id"
                )
                records = await cursor.fetchall()

            rows = self._to_rows(list(records))
            logger.debug(f"Retrieved {len(rows)} cached rows from {self.name}")
            return rows

        except Exception:
            logger.exception(f"Failed to read cached {self.name}")
            return []

    async def get(self, entity_id: str) -> Optional[CachedRow]:
        """Get one cached row.

        Args:
            entity_id: Entity identifier

        Returns:
            Cached row, or None if absent or unreadable
        """
        try:
            if not await self.manager._ensure_initialized():
                return None

            async with aiosqlite.connect(self._path) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    f"SELECT id, owner_id, data, cached_at FROM {self.name} WHERE id = ?",
                    (entity_id,),
                )
                record = await cursor.fetchone()

            if record is None:
                return None
            rows = self._to_rows([record])
            return rows[0] if rows else None

        except Exception:
            logger.exception(f"Failed to read cached {self.name} row {entity_id}")
            return None

    async def upsert(self, row: CachedRow) -> bool:
        """Insert or replace one row."""
        return await self.upsert_batch([row])

    async def upsert_batch(self, rows: list[CachedRow]) -> bool:
        """Insert or replace several rows in one transaction.

        Args:
            rows: Rows to store

        Returns:
            True if storage was successful, False otherwise
        """
        try:
            if not await self.manager._ensure_initialized():
                return False

            if not rows:
                logger.debug(f"No {self.name} rows to store")
                return True

            async with aiosqlite.connect(self._path) as db:
                await db.executemany(
                    f"""
                    INSERT OR REPLACE INTO {self.name} (id, owner_id, data, cached_at)
                    VALUES (?, ?, ?, ?)
                """,
                    [self._values(row) for row in rows],
                )
                await db.commit()

            logger.debug(f"Stored {len(rows)} rows in {self.name}")
            return True

        except Exception:
            logger.exception(f"Failed to store {self.name} rows")
            return False

    async def delete(self, entity_id: str) -> bool:
        """Remove one row; removing an absent row is not an error."""
        try:
            if not await self.manager._ensure_initialized():
                return False

            async with aiosqlite.connect(self._path) as db:
                await db.execute(f"DELETE FROM {self.name} WHERE id = ?", (entity_id,))
                await db.commit()

            logger.debug(f"Deleted {self.name} row {entity_id}")
            return True

        except Exception:
            logger.exception(f"Failed to delete {self.name} row {entity_id}")
            return False

    async def delete_all(self) -> int:
        """Remove every row of this kind.

        Returns:
            Number of rows removed
        """
        try:
            if not await self.manager._ensure_initialized():
                return 0

            async with aiosqlite.connect(self._path) as db:
                cursor = await db.execute(f"DELETE FROM {self.name}")
                deleted_count = cursor.rowcount
                await db.commit()

            logger.debug(f"Cleared {deleted_count} rows from {self.name}")
            return deleted_count

        except Exception:
            logger.exception(f"Failed to clear {self.name}")
            return 0

    async def replace_all(self, rows: list[CachedRow]) -> bool:
        """Atomically replace the whole table with the given rows.

        The delete and the inserts share one transaction, so readers see
        either the old set or the new one.

        Args:
            rows: Complete new contents

        Returns:
            True if the replacement was committed, False otherwise
        """
        try:
            if not await self.manager._ensure_initialized():
                return False

            async with aiosqlite.connect(self._path) as db:
                await db.execute(f"DELETE FROM {self.name}")
                if rows:
                    await db.executemany(
                        f"""
                        INSERT OR REPLACE INTO {self.name} (id, owner_id, data, cached_at)
                        VALUES (?, ?, ?, ?)
                    """,
                        [self._values(row) for row in rows],
                    )
                await db.commit()

            logger.debug(f"Replaced {self.name} contents with {len(rows)} rows")
            return True

        except Exception:
            logger.exception(f"Failed to replace {self.name} contents")
            return False

    async def get_metadata(self) -> CacheMetadata:
        """Get cache statistics for this kind."""
        return await self.manager.get_cache_metadata(self.name)

    async def update_metadata(self, **kwargs: Any) -> bool:
        """Update fetch metadata for this kind."""
        return await self.manager.update_cache_metadata(self.name, **kwargs)

    async def count(self) -> int:
        """Number of cached rows of this kind."""
        try:
            if not await self.manager._ensure_initialized():
                return 0

            async with aiosqlite.connect(self._path) as db:
                cursor = await db.execute(f"SELECT COUNT(*) FROM {self.name}")
                record = await cursor.fetchone()
            return record[0] if record else 0

        except Exception:
            logger.exception(f"Failed to count {self.name} rows")
            return 0
