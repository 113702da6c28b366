"""
aiosqlite connection pool for the ledger database.

Ledger writes take SQLite's database write lock up front with
``BEGIN IMMEDIATE``; other writers wait on ``busy_timeout`` and then see
the committed result. Plain reads borrow a connection without opening a
transaction; reads that must agree with each other share a snapshot.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from workshop.config import get_logger, get_settings
from workshop.core.exceptions import DatabaseError

logger = get_logger(__name__)

PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)

# Lock waits longer than this are logged
SLOW_LOCK_MS = 250


class ConnectionPool:
    """Fixed-size pool of SQLite connections."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 5,
        busy_timeout: int = 30000,
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._connections: list[aiosqlite.Connection] = []
        self._initialized = False
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        async with self._lock:
            if self._initialized:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await self._open()
                self._connections.append(conn)
                self._pool.put_nowait(conn)

            self._initialized = True
            logger.info(
                "connection_pool_initialized",
                db_path=str(self.db_path),
                pool_size=self.pool_size,
                busy_timeout_ms=self.busy_timeout,
            )

    async def _open(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        for pragma in PRAGMAS:
            await conn.execute(pragma)
        await conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout)}")
        conn.row_factory = aiosqlite.Row
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection; it goes back to the pool on exit."""
        if not self._initialized:
            await self.initialize()

        conn = await self._pool.get()
        try:
            yield conn
        finally:
            if conn.in_transaction:
                # Never hand out a connection pinned to an old snapshot
                await conn.rollback()
            self._pool.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection inside a transaction.

        Commits on success, rolls back on any exception. With
        ``immediate=True`` the write lock is held before the first read,
        so everything read inside the block is what the block commits
        against.
        """
        async with self.acquire() as conn:
            if immediate:
                await self._begin_immediate(conn)
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection inside a read transaction.

        Every read in the block sees the database as of the first one;
        commits made meanwhile by other connections stay invisible.
        Nothing is committed; release rolls the transaction back.
        """
        async with self.acquire() as conn:
            await conn.execute("BEGIN")
            yield conn

    async def _begin_immediate(self, conn: aiosqlite.Connection) -> None:
        start = time.perf_counter()
        try:
            await conn.execute("BEGIN IMMEDIATE")
        except aiosqlite.OperationalError as e:
            raise DatabaseError("begin_immediate", str(e)) from e
        waited_ms = (time.perf_counter() - start) * 1000
        if waited_ms > SLOW_LOCK_MS:
            logger.warning("ledger_lock_wait", waited_ms=round(waited_ms, 1))

    async def close(self) -> None:
        async with self._lock:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()
            self._pool = asyncio.Queue(maxsize=self.pool_size)
            self._initialized = False
            logger.info("connection_pool_closed", db_path=str(self.db_path))


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Global pool, created from storage settings on first use."""
    global _pool
    if _pool is None:
        storage = get_settings().storage
        _pool = ConnectionPool(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
        )
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncIterator[aiosqlite.Connection]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction(immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
    """Transaction on the global pool; ``immediate=True`` for ledger writes."""
    pool = await get_pool()
    async with pool.transaction(immediate=immediate) as conn:
        yield conn


@asynccontextmanager
async def get_snapshot() -> AsyncIterator[aiosqlite.Connection]:
    """Read-only snapshot on the global pool."""
    pool = await get_pool()
    async with pool.snapshot() as conn:
        yield conn


@asynccontextmanager
async def use_connection(
    conn: aiosqlite.Connection | None = None,
) -> AsyncIterator[aiosqlite.Connection]:
    """Yield ``conn`` when the caller already holds one, else borrow from the pool."""
    if conn is not None:
        yield conn
        return
    async with get_connection() as pooled:
        yield pooled
