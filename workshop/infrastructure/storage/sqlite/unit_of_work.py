"""
SQLite unit of work for ledger writes.

A transaction holds one pooled connection opened with BEGIN IMMEDIATE.
SQLite's database-level write lock stands in for a row lock on the
material: a second writer waits (up to ``busy_timeout``) until the
first commits, then re-reads the committed stock.

Snapshots hold a deferred read transaction instead: in WAL mode they
never block writers and keep seeing the state of their first read.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal

import aiosqlite

from workshop.config import get_logger
from workshop.core.entities.material import Material
from workshop.core.entities.movement import MovementRecord
from workshop.core.entities.purchase import PurchaseOrder
from workshop.core.interfaces.unit_of_work import (
    ILedgerSnapshot,
    ILedgerTransaction,
    IUnitOfWork,
)
from workshop.infrastructure.storage.sqlite.connection import get_snapshot, get_transaction
from workshop.infrastructure.storage.sqlite.ledger_store import SQLiteLedgerStore
from workshop.infrastructure.storage.sqlite.material_store import SQLiteMaterialStore
from workshop.infrastructure.storage.sqlite.purchase_store import SQLitePurchaseStore

logger = get_logger(__name__)


class SQLiteLedgerTransaction(ILedgerTransaction):
    """Delegates to the stores, always on the transaction's own connection."""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        material_store: SQLiteMaterialStore,
        ledger_store: SQLiteLedgerStore,
        purchase_store: SQLitePurchaseStore,
    ):
        self._conn = conn
        self._materials = material_store
        self._ledger = ledger_store
        self._purchases = purchase_store

    async def lock_material(self, material_id: int) -> Material | None:
        # The write lock is already held since BEGIN IMMEDIATE
        return await self._materials.get_material(material_id, self._conn)

    async def set_qty_on_hand(self, material_id: int, qty_on_hand: Decimal) -> None:
        await self._materials.set_qty_on_hand(self._conn, material_id, qty_on_hand)

    async def append_movement(self, movement: MovementRecord) -> MovementRecord:
        return await self._ledger.append(self._conn, movement)

    async def deactivate_movement(self, movement_id: int) -> MovementRecord:
        return await self._ledger.deactivate(self._conn, movement_id)

    async def get_movement(self, movement_id: int) -> MovementRecord | None:
        return await self._ledger.get_movement(movement_id, self._conn)

    async def find_active_by_purchase(self, purchase_id: int) -> MovementRecord | None:
        return await self._ledger.find_by_purchase(purchase_id, self._conn)

    async def list_active_movements(self, material_id: int) -> list[MovementRecord]:
        return await self._ledger.list_active(material_id, self._conn)

    async def count_purchase_movements(self, purchase_id: int) -> int:
        return await self._ledger.count_for_purchase(purchase_id, self._conn)

    async def get_purchase(self, purchase_id: int) -> PurchaseOrder | None:
        return await self._purchases.get_purchase(purchase_id, self._conn)

    async def save_purchase(self, purchase: PurchaseOrder) -> PurchaseOrder:
        return await self._purchases.save(self._conn, purchase)

    async def link_purchase_movement(
        self, purchase_id: int, movement_id: int | None
    ) -> None:
        await self._purchases.set_movement(self._conn, purchase_id, movement_id)


class SQLiteLedgerSnapshot(ILedgerSnapshot):
    """Reads on one connection inside one read transaction."""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        material_store: SQLiteMaterialStore,
        ledger_store: SQLiteLedgerStore,
    ):
        self._conn = conn
        self._materials = material_store
        self._ledger = ledger_store

    async def get_material(self, material_id: int) -> Material | None:
        return await self._materials.get_material(material_id, self._conn)

    async def list_active_movements(self, material_id: int) -> list[MovementRecord]:
        return await self._ledger.list_active(material_id, self._conn)


class SQLiteUnitOfWork(IUnitOfWork):
    """Opens immediate-mode transactions and read snapshots on the global pool."""

    def __init__(
        self,
        material_store: SQLiteMaterialStore | None = None,
        ledger_store: SQLiteLedgerStore | None = None,
        purchase_store: SQLitePurchaseStore | None = None,
    ):
        self._materials = material_store or SQLiteMaterialStore()
        self._ledger = ledger_store or SQLiteLedgerStore()
        self._purchases = purchase_store or SQLitePurchaseStore()

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[ILedgerSnapshot]:
        async with get_snapshot() as conn:
            yield SQLiteLedgerSnapshot(conn, self._materials, self._ledger)

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[ILedgerTransaction]:
        async with get_transaction(immediate=True) as conn:
            try:
                yield SQLiteLedgerTransaction(
                    conn, self._materials, self._ledger, self._purchases
                )
            except Exception as e:
                logger.debug("ledger_transaction_rolled_back", error=str(e))
                raise
