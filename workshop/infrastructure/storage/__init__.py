"""Storage infrastructure implementations."""

from workshop.infrastructure.storage.sqlite import (
    SQLiteLedgerStore,
    SQLiteMaterialStore,
    SQLitePurchaseStore,
    SQLiteUnitOfWork,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)

__all__ = [
    # SQLite stores
    "SQLiteLedgerStore",
    "SQLiteMaterialStore",
    "SQLitePurchaseStore",
    "SQLiteUnitOfWork",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
]
