"""Unit tests for the SQLite cache database and its per-kind tables."""

import sqlite3
from pathlib import Path
from unittest.mock import AsyncMock, patch

import aiosqlite
import pytest

from joinme.cache.database import ENTITY_TABLES, DatabaseManager
from joinme.cache.models import CachedRow


def make_row(row_id: str, owner_id: str = "u1", data: str = '{"x": 1}') -> CachedRow:
    return CachedRow(
        id=row_id, owner_id=owner_id, data=data, cached_at="2024-01-01T09:00:00+00:00"
    )


class TestDatabaseManagerInitialization:
    """Test schema creation and lazy initialization."""

    @pytest.mark.asyncio
    async def test_initialize_when_fresh_file_then_creates_all_tables(
        self, temp_db_path: Path
    ) -> None:
        manager = DatabaseManager(temp_db_path)

        assert await manager.initialize() is True

        async with aiosqlite.connect(str(temp_db_path)) as db:
            cursor = await db.execute("SELECT name FROM sqlite_master WHERE type='table'")
            tables = {row[0] for row in await cursor.fetchall()}

        assert set(ENTITY_TABLES) <= tables
        assert "cache_metadata" in tables

    @pytest.mark.asyncio
    async def test_initialize_when_called_twice_then_idempotent(self, temp_db_path: Path) -> None:
        manager = DatabaseManager(temp_db_path)

        assert await manager.initialize() is True
        assert await manager.initialize() is True

    @pytest.mark.asyncio
    async def test_initialize_when_connection_fails_then_returns_false(
        self, temp_db_path: Path
    ) -> None:
        manager = DatabaseManager(temp_db_path)

        with patch("aiosqlite.connect", side_effect=sqlite3.Error("Connection failed")):
            assert await manager.initialize() is False

    @pytest.mark.asyncio
    async def test_initialize_when_pragma_fails_then_returns_false(
        self, temp_db_path: Path
    ) -> None:
        manager = DatabaseManager(temp_db_path)
        mock_db = AsyncMock()
        mock_db.execute.side_effect = sqlite3.Error("PRAGMA failed")

        with patch("aiosqlite.connect") as mock_connect:
            mock_connect.return_value.__aenter__.return_value = mock_db
            assert await manager.initialize() is False

    def test_init_when_parent_missing_then_creates_directory(self, tmp_path: Path) -> None:
        DatabaseManager(tmp_path / "nested" / "dir" / "cache.db")

        assert (tmp_path / "nested" / "dir").is_dir()

    def test_table_when_unknown_name_then_raises(self, database_manager: DatabaseManager) -> None:
        with pytest.raises(ValueError, match="Unknown cache table"):
            database_manager.table("users")


class TestLocalTable:
    """Test row storage for one entity kind."""

    @pytest.mark.asyncio
    async def test_upsert_and_get_when_row_stored_then_round_trips(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("events")

        assert await table.upsert(make_row("e1")) is True
        row = await table.get("e1")

        assert row is not None
        assert row.id == "e1"
        assert row.owner_id == "u1"
        assert row.data == '{"x": 1}'

    @pytest.mark.asyncio
    async def test_get_when_absent_then_returns_none(
        self, database_manager: DatabaseManager
    ) -> None:
        assert await database_manager.table("events").get("missing") is None

    @pytest.mark.asyncio
    async def test_upsert_when_same_id_then_keeps_single_row(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("events")

        await table.upsert(make_row("e1", data='{"v": 1}'))
        await table.upsert(make_row("e1", data='{"v": 2}'))

        rows = await table.get_all()
        assert [row.id for row in rows] == ["e1"]
        assert rows[0].data == '{"v": 2}'

    @pytest.mark.asyncio
    async def test_upsert_batch_when_empty_then_succeeds_without_writes(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("events")

        assert await table.upsert_batch([]) is True
        assert await table.count() == 0

    @pytest.mark.asyncio
    async def test_tables_when_same_id_in_two_kinds_then_isolated(
        self, database_manager: DatabaseManager
    ) -> None:
        await database_manager.table("events").upsert(make_row("x1"))

        assert await database_manager.table("groups").get("x1") is None
        assert await database_manager.table("events").count() == 1

    @pytest.mark.asyncio
    async def test_delete_when_absent_then_not_an_error(
        self, database_manager: DatabaseManager
    ) -> None:
        assert await database_manager.table("events").delete("missing") is True

    @pytest.mark.asyncio
    async def test_delete_all_when_rows_present_then_returns_count(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("series")
        await table.upsert_batch([make_row("s1"), make_row("s2"), make_row("s3")])

        assert await table.delete_all() == 3
        assert await table.get_all() == []

    @pytest.mark.asyncio
    async def test_replace_all_when_called_then_only_new_rows_remain(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("events")
        await table.upsert_batch([make_row("e1"), make_row("e2")])

        assert await table.replace_all([make_row("e2"), make_row("e3")]) is True

        assert [row.id for row in await table.get_all()] == ["e2", "e3"]

    @pytest.mark.asyncio
    async def test_replace_all_when_empty_then_clears_table(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("events")
        await table.upsert(make_row("e1"))

        assert await table.replace_all([]) is True
        assert await table.count() == 0

    @pytest.mark.asyncio
    async def test_upsert_batch_when_database_locked_then_returns_false(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("events")

        with patch(
            "aiosqlite.connect", side_effect=sqlite3.OperationalError("database is locked")
        ):
            assert await table.upsert_batch([make_row("e1")]) is False

    @pytest.mark.asyncio
    async def test_get_all_when_database_fails_then_returns_empty_list(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("events")
        await table.upsert(make_row("e1"))

        with patch("aiosqlite.connect", side_effect=sqlite3.Error("disk I/O error")):
            assert await table.get_all() == []

    @pytest.mark.asyncio
    async def test_replace_all_when_insert_fails_then_old_rows_survive(
        self, database_manager: DatabaseManager
    ) -> None:
        table = database_manager.table("events")
        await table.upsert_batch([make_row("e1"), make_row("e2")])

        # A NULL data column violates NOT NULL and aborts the transaction
        bad_row = make_row("e3").model_copy(update={"data": None})

        assert await table.replace_all([bad_row]) is False
        assert [row.id for row in await table.get_all()] == ["e1", "e2"]


class TestCacheMetadata:
    """Test per-kind fetch metadata."""

    @pytest.mark.asyncio
    async def test_get_cache_metadata_when_fresh_then_defaults(
        self, database_manager: DatabaseManager
    ) -> None:
        metadata = await database_manager.get_cache_metadata("events")

        assert metadata.kind == "events"
        assert metadata.total_rows == 0
        assert metadata.consecutive_failures == 0
        assert metadata.has_synced is False
        assert metadata.time_since_last_update() is None

    @pytest.mark.asyncio
    async def test_update_cache_metadata_when_values_set_then_read_back(
        self, database_manager: DatabaseManager
    ) -> None:
        await database_manager.table("events").upsert(make_row("e1"))

        assert await database_manager.update_cache_metadata(
            "events",
            last_update="2024-01-01T10:00:00+00:00",
            last_successful_fetch="2024-01-01T10:00:00+00:00",
            consecutive_failures=2,
            last_error="SourceTimeoutError: slow",
        )

        metadata = await database_manager.get_cache_metadata("events")
        assert metadata.total_rows == 1
        assert metadata.consecutive_failures == 2
        assert metadata.last_error == "SourceTimeoutError: slow"
        assert metadata.has_synced is True
        assert metadata.last_successful_fetch_dt is not None

    @pytest.mark.asyncio
    async def test_update_cache_metadata_when_none_then_key_removed(
        self, database_manager: DatabaseManager
    ) -> None:
        await database_manager.update_cache_metadata("groups", last_error="boom")
        await database_manager.update_cache_metadata("groups", last_error=None)

        metadata = await database_manager.get_cache_metadata("groups")
        assert metadata.last_error is None

    @pytest.mark.asyncio
    async def test_update_cache_metadata_when_kinds_differ_then_isolated(
        self, database_manager: DatabaseManager
    ) -> None:
        await database_manager.update_cache_metadata("events", consecutive_failures=4)

        metadata = await database_manager.get_cache_metadata("series")
        assert metadata.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_update_cache_metadata_when_unknown_key_then_returns_false(
        self, database_manager: DatabaseManager
    ) -> None:
        assert await database_manager.update_cache_metadata("events", colour="red") is False

    @pytest.mark.asyncio
    async def test_get_database_info_when_rows_present_then_reports_counts(
        self, database_manager: DatabaseManager
    ) -> None:
        await database_manager.table("groups").upsert(make_row("g1"))

        info = await database_manager.get_database_info()

        assert info["row_counts"] == {"events": 0, "groups": 1, "series": 0}
        assert info["journal_mode"].lower() == "wal"
        assert info["database_path"] == str(database_manager.database_path)
