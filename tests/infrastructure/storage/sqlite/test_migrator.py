"""Unit tests for database migrator."""

from pathlib import Path
from unittest.mock import patch

import aiosqlite
import pytest

from workshop.infrastructure.storage.sqlite.migrations import migrator
from workshop.infrastructure.storage.sqlite.migrations.migrator import (
    REQUIRED_TRIGGERS,
    MigrationInfo,
    create_backup,
    discover_migrations,
    get_applied_migrations,
    get_current_version,
    get_migration_status,
    initialize_database,
    restore_backup,
    verify_schema_integrity,
)


@pytest.fixture
def patched_settings(mock_settings):
    with patch.object(migrator, "get_settings", return_value=mock_settings):
        yield mock_settings


class TestMigrationInfo:
    def test_from_file_parses_filename(self, tmp_path: Path):
        migration_file = tmp_path / "v002_add_bins.sql"
        migration_file.write_text("SELECT 1;")

        info = MigrationInfo.from_file(migration_file)

        assert info.version == "002"
        assert info.name == "add_bins"
        assert len(info.checksum) == 16

    def test_invalid_filename(self, tmp_path: Path):
        invalid = tmp_path / "bins.sql"
        invalid.write_text("SELECT 1;")
        with pytest.raises(ValueError, match="Invalid migration filename"):
            MigrationInfo.from_file(invalid)

    def test_discovers_ledger_schema(self):
        versions = [m.version for m in discover_migrations()]
        assert versions[0] == "001"
        assert versions == sorted(versions)


class TestInitializeDatabase:
    async def test_applies_pending(self, temp_db_path, patched_settings):
        results = await initialize_database(temp_db_path, create_backup_before=False)

        assert results and all(r.success for r in results)
        async with aiosqlite.connect(temp_db_path) as conn:
            assert await get_current_version(conn) == results[-1].version

    async def test_second_run_is_noop(self, temp_db_path, patched_settings):
        await initialize_database(temp_db_path, create_backup_before=False)
        assert await initialize_database(temp_db_path, create_backup_before=False) == []

    async def test_changed_checksum_stops(self, temp_db_path, patched_settings):
        await initialize_database(temp_db_path, create_backup_before=False)
        async with aiosqlite.connect(temp_db_path) as conn:
            await conn.execute("UPDATE schema_migrations SET checksum = 'edited'")
            await conn.commit()

        assert await initialize_database(temp_db_path, create_backup_before=False) == []
        async with aiosqlite.connect(temp_db_path) as conn:
            applied = await get_applied_migrations(conn)
        assert set(applied.values()) == {"edited"}

    async def test_backup_removed_after_success(self, temp_db_path, patched_settings):
        await initialize_database(temp_db_path, create_backup_before=False)
        await initialize_database(temp_db_path, create_backup_before=True)
        assert list(temp_db_path.parent.glob("*.backup_*")) == []


class TestStatusAndIntegrity:
    async def test_status_without_database(self, temp_db_path, patched_settings):
        status = await get_migration_status(temp_db_path)
        assert status["exists"] is False
        assert "001" in status["pending_migrations"]

    async def test_status_after_migrate(self, temp_db_path, patched_settings):
        await initialize_database(temp_db_path, create_backup_before=False)
        status = await get_migration_status(temp_db_path)
        assert status["pending_migrations"] == []

    async def test_verify_passes(self, temp_db_path, patched_settings):
        await initialize_database(temp_db_path, create_backup_before=False)
        checks = await verify_schema_integrity(temp_db_path)
        assert all(c["status"] == "PASS" for c in checks)

    async def test_verify_reports_missing_trigger(self, temp_db_path, patched_settings):
        await initialize_database(temp_db_path, create_backup_before=False)
        async with aiosqlite.connect(temp_db_path) as conn:
            await conn.execute(f"DROP TRIGGER {REQUIRED_TRIGGERS[0]}")
            await conn.commit()

        checks = {c["check"]: c for c in await verify_schema_integrity(temp_db_path)}

        assert checks["ledger_triggers"]["status"] == "FAIL"
        assert checks["ledger_triggers"]["missing"] == [REQUIRED_TRIGGERS[0]]


class TestBackup:
    def test_backup_and_restore(self, tmp_path: Path):
        db_path = tmp_path / "ledger.db"
        db_path.write_bytes(b"original")

        backup = create_backup(db_path)
        db_path.write_bytes(b"changed")
        restore_backup(db_path, backup)

        assert db_path.read_bytes() == b"original"
