"""SQLite storage implementations."""

from workshop.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_snapshot,
    get_transaction,
    use_connection,
)
from workshop.infrastructure.storage.sqlite.ledger_store import SQLiteLedgerStore
from workshop.infrastructure.storage.sqlite.material_store import SQLiteMaterialStore
from workshop.infrastructure.storage.sqlite.purchase_store import SQLitePurchaseStore
from workshop.infrastructure.storage.sqlite.unit_of_work import (
    SQLiteLedgerSnapshot,
    SQLiteLedgerTransaction,
    SQLiteUnitOfWork,
)

# Singleton instances
_material_store: SQLiteMaterialStore | None = None
_ledger_store: SQLiteLedgerStore | None = None
_purchase_store: SQLitePurchaseStore | None = None


async def get_material_store() -> SQLiteMaterialStore:
    """Get singleton material store instance."""
    global _material_store
    if _material_store is None:
        _material_store = SQLiteMaterialStore()
    return _material_store


async def get_ledger_store() -> SQLiteLedgerStore:
    """Get singleton ledger store instance."""
    global _ledger_store
    if _ledger_store is None:
        _ledger_store = SQLiteLedgerStore()
    return _ledger_store


async def get_purchase_store() -> SQLitePurchaseStore:
    """Get singleton purchase store instance."""
    global _purchase_store
    if _purchase_store is None:
        _purchase_store = SQLitePurchaseStore()
    return _purchase_store


async def get_unit_of_work() -> SQLiteUnitOfWork:
    """Unit of work sharing the singleton stores."""
    return SQLiteUnitOfWork(
        material_store=await get_material_store(),
        ledger_store=await get_ledger_store(),
        purchase_store=await get_purchase_store(),
    )


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    "get_snapshot",
    "use_connection",
    # Store classes
    "SQLiteLedgerStore",
    "SQLiteMaterialStore",
    "SQLitePurchaseStore",
    "SQLiteLedgerSnapshot",
    "SQLiteLedgerTransaction",
    "SQLiteUnitOfWork",
    # Factory functions
    "get_material_store",
    "get_ledger_store",
    "get_purchase_store",
    "get_unit_of_work",
]
