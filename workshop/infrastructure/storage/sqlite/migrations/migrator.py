"""
Schema migrations for the ledger database.

Migration files live next to this module and are named ``vNNN_name.sql``.
Each applied file is recorded in ``schema_migrations`` with a checksum of
its contents. An applied file must never be edited: if a recorded
checksum no longer matches the file on disk, nothing further is applied
until someone looks at it.

Before migrating an existing database a file copy is taken; it is
restored if a migration raises and deleted once every step succeeded.
"""

import hashlib
import re
import shutil
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite

from workshop.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
MIGRATION_FILE_RE = re.compile(r"v(\d+)_(.+)\.sql")

REQUIRED_TABLES = [
    "materials",
    "material_movements",
    "purchase_orders",
    "schema_migrations",
]

# Append-only guarantees for the movement log
REQUIRED_TRIGGERS = [
    "trg_movements_immutable",
    "trg_movements_no_reactivate",
    "trg_movements_no_delete",
]


@dataclass
class MigrationInfo:
    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = MIGRATION_FILE_RE.fullmatch(path.name)
        if match is None:
            raise ValueError(f"Invalid migration filename: {path.name}")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(version=match[1], name=match[2], path=path, checksum=digest[:16])


@dataclass
class MigrationResult:
    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


@asynccontextmanager
async def _open(db_path: Path) -> AsyncIterator[aiosqlite.Connection]:
    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        yield conn


async def _schema_objects(conn: aiosqlite.Connection) -> dict[str, set[str]]:
    """Names in sqlite_master grouped by type ("table", "trigger", ...)."""
    cursor = await conn.execute("SELECT type, name FROM sqlite_master")
    objects: dict[str, set[str]] = {}
    for row in await cursor.fetchall():
        objects.setdefault(row[0], set()).add(row[1])
    return objects


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied versions mapped to their recorded checksums."""
    try:
        cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    except aiosqlite.OperationalError:
        # Fresh database
        return {}
    return {row[0]: row[1] for row in await cursor.fetchall()}


async def get_current_version(conn: aiosqlite.Connection) -> str | None:
    applied = await get_applied_migrations(conn)
    return max(applied) if applied else None


def discover_migrations() -> list[MigrationInfo]:
    """Migration files in version order; misnamed files are logged and skipped."""
    found = []
    for path in MIGRATIONS_DIR.glob("v*.sql"):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return sorted(found, key=lambda m: int(m.version))


def pending_migrations(
    migrations: list[MigrationInfo],
    applied: dict[str, str],
) -> list[MigrationInfo] | None:
    """
    Migrations still to apply, or None when an applied file was edited.
    """
    pending = []
    for migration in migrations:
        recorded = applied.get(migration.version)
        if recorded is None:
            pending.append(migration)
        elif recorded != migration.checksum:
            logger.error(
                "migration_checksum_changed",
                version=migration.version,
                recorded=recorded,
                on_disk=migration.checksum,
            )
            return None
    return pending


async def apply_migration(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    """Run one migration script and record it."""
    log = logger.bind(version=migration.version, name=migration.name)
    log.info("applying_migration")
    started = time.perf_counter()

    def elapsed_ms() -> int:
        return int((time.perf_counter() - started) * 1000)

    try:
        await conn.executescript(migration.path.read_text(encoding="utf-8"))
        await conn.execute(
            "INSERT OR REPLACE INTO schema_migrations (version, name, checksum, execution_time_ms) "
            "VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, elapsed_ms()),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        log.error("migration_failed", error=str(e))
        return MigrationResult(migration.version, migration.name, False, elapsed_ms(), str(e))

    log.info("migration_applied", execution_time_ms=elapsed_ms())
    return MigrationResult(migration.version, migration.name, True, elapsed_ms())


async def _foreign_key_violations(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("PRAGMA foreign_key_check")
    return len(await cursor.fetchall())


def create_backup(db_path: Path) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = db_path.with_name(f"{db_path.stem}.backup_{stamp}{db_path.suffix}")
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    # WAL sidecars belong to the replaced file
    for suffix in ("-wal", "-shm"):
        db_path.with_name(db_path.name + suffix).unlink(missing_ok=True)
    shutil.copy2(backup_path, db_path)
    logger.info("database_restored_from_backup", backup_path=str(backup_path))


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Bring the database up to the newest schema.

    Returns one result per migration attempted; an empty list means the
    schema was current or an applied migration file had been edited.
    Stops at the first failed migration.
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("initializing_database", db_path=str(db_path))

    backup_path = create_backup(db_path) if create_backup_before and db_path.exists() else None
    results: list[MigrationResult] = []

    try:
        async with _open(db_path) as conn:
            migrations = discover_migrations()
            if not migrations:
                logger.warning("no_migrations_found", directory=str(MIGRATIONS_DIR))
            pending = pending_migrations(migrations, await get_applied_migrations(conn)) or []

            for migration in pending:
                result = await apply_migration(conn, migration)
                results.append(result)
                if not result.success:
                    break
                violations = await _foreign_key_violations(conn)
                if violations:
                    logger.error(
                        "foreign_key_violations_after_migration",
                        version=migration.version,
                        violations=violations,
                    )
                    break

            logger.info(
                "database_ready",
                schema_version=await get_current_version(conn),
                applied=len(results),
            )
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path is not None and backup_path.exists():
            restore_backup(db_path, backup_path)
        raise

    if backup_path is not None and all(r.success for r in results):
        backup_path.unlink()
        logger.debug("database_backup_removed", backup_path=str(backup_path))

    return results


run_migrations = initialize_database


async def get_migration_status(db_path: Path | None = None) -> dict:
    db_path = db_path or get_settings().storage.db_path
    discovered = discover_migrations()

    if not db_path.exists():
        return {
            "exists": False,
            "current_version": None,
            "applied_migrations": [],
            "pending_migrations": [m.version for m in discovered],
        }

    async with _open(db_path) as conn:
        applied = await get_applied_migrations(conn)

    return {
        "exists": True,
        "current_version": max(applied) if applied else None,
        "applied_migrations": sorted(applied),
        "pending_migrations": [m.version for m in discovered if m.version not in applied],
        "total_migrations": len(discovered),
    }


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict]:
    """
    Integrity report: SQLite's own checks plus the tables and movement-log
    triggers the ledger relies on.
    """
    db_path = db_path or get_settings().storage.db_path

    async with _open(db_path) as conn:
        violations = await _foreign_key_violations(conn)
        cursor = await conn.execute("PRAGMA integrity_check")
        (integrity,) = await cursor.fetchone()
        objects = await _schema_objects(conn)

    missing_tables = [t for t in REQUIRED_TABLES if t not in objects.get("table", set())]
    missing_triggers = [t for t in REQUIRED_TRIGGERS if t not in objects.get("trigger", set())]

    def status(ok: bool) -> str:
        return "PASS" if ok else "FAIL"

    return [
        {"check": "foreign_keys", "status": status(violations == 0), "violations": violations},
        {"check": "integrity", "status": status(integrity == "ok"), "result": integrity},
        {"check": "required_tables", "status": status(not missing_tables), "missing": missing_tables},
        {"check": "ledger_triggers", "status": status(not missing_triggers), "missing": missing_triggers},
    ]
