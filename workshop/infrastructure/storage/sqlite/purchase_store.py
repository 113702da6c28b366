"""SQLite implementation of purchase order storage."""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

import aiosqlite

from workshop.config import get_logger
from workshop.core.entities.purchase import PurchaseOrder, PurchaseStatus
from workshop.core.interfaces.purchase_store import IPurchaseStore
from workshop.infrastructure.storage.sqlite.connection import use_connection
from workshop.infrastructure.storage.sqlite.rows import (
    date_from_db,
    decimal_from_db,
    decimal_to_db,
    timestamp_from_db,
    timestamp_to_db,
)

logger = get_logger(__name__)


class SQLitePurchaseStore(IPurchaseStore):
    """SQLite implementation of purchase order storage."""

    async def get_purchase(
        self, purchase_id: int, conn: aiosqlite.Connection | None = None
    ) -> PurchaseOrder | None:
        """Get a non-deleted purchase by ID."""
        async with use_connection(conn) as c:
            cursor = await c.execute(
                "SELECT * FROM purchase_orders WHERE id = ? AND is_deleted = 0",
                (purchase_id,),
            )
            row = await cursor.fetchone()
            return self._row_to_purchase(row) if row else None

    async def list_purchases(
        self,
        material_id: int | None = None,
        status: PurchaseStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PurchaseOrder]:
        """List non-deleted purchases, newest purchase date first."""
        clauses = ["is_deleted = 0"]
        params: list[Any] = []
        if material_id is not None:
            clauses.append("material_id = ?")
            params.append(material_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)

        async with use_connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM purchase_orders
                WHERE {' AND '.join(clauses)}
                ORDER BY purchased_date DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_purchase(row) for row in rows]

    async def count_by_status(self, status: PurchaseStatus) -> int:
        """Count non-deleted purchases in a status."""
        async with use_connection() as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM purchase_orders WHERE status = ? AND is_deleted = 0",
                (status.value,),
            )
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def save(self, conn: aiosqlite.Connection, purchase: PurchaseOrder) -> PurchaseOrder:
        """Insert or update a purchase inside the caller's transaction."""
        purchase.updated_at = datetime.now(UTC)
        values = (
            purchase.material_id,
            purchase.supplier,
            decimal_to_db(purchase.quantity),
            decimal_to_db(purchase.received_quantity),
            purchase.unit,
            decimal_to_db(purchase.unit_price),
            purchase.status.value,
            purchase.purchased_date.isoformat(),
            purchase.delivery_date.isoformat() if purchase.delivery_date else None,
            purchase.pic_name,
            purchase.notes,
            purchase.movement_id,
            1 if purchase.is_deleted else 0,
            timestamp_to_db(purchase.updated_at),
        )

        if purchase.id is None:
            purchase.created_at = purchase.updated_at
            cursor = await conn.execute(
                """
                INSERT INTO purchase_orders (
                    material_id, supplier, quantity, received_quantity, unit,
                    unit_price, status, purchased_date, delivery_date, pic_name,
                    notes, movement_id, is_deleted, updated_at, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (*values, timestamp_to_db(purchase.created_at)),
            )
            purchase.id = cursor.lastrowid
            logger.info("purchase_inserted", purchase_id=purchase.id)
        else:
            await conn.execute(
                """
                UPDATE purchase_orders SET
                    material_id = ?, supplier = ?, quantity = ?, received_quantity = ?,
                    unit = ?, unit_price = ?, status = ?, purchased_date = ?,
                    delivery_date = ?, pic_name = ?, notes = ?, movement_id = ?,
                    is_deleted = ?, updated_at = ?
                WHERE id = ?
                """,
                (*values, purchase.id),
            )
        return purchase

    async def set_movement(
        self, conn: aiosqlite.Connection, purchase_id: int, movement_id: int | None
    ) -> None:
        await conn.execute(
            "UPDATE purchase_orders SET movement_id = ?, updated_at = ? WHERE id = ?",
            (movement_id, timestamp_to_db(datetime.now(UTC)), purchase_id),
        )

    @staticmethod
    def _row_to_purchase(row: aiosqlite.Row) -> PurchaseOrder:
        """Convert a database row to a PurchaseOrder entity."""
        return PurchaseOrder(
            id=row["id"],
            material_id=row["material_id"],
            supplier=row["supplier"],
            quantity=decimal_from_db(row["quantity"]) or Decimal("0"),
            received_quantity=decimal_from_db(row["received_quantity"]),
            unit=row["unit"],
            unit_price=decimal_from_db(row["unit_price"]),
            status=PurchaseStatus(row["status"]),
            purchased_date=date_from_db(row["purchased_date"]) or date.today(),
            delivery_date=date_from_db(row["delivery_date"]),
            pic_name=row["pic_name"],
            notes=row["notes"],
            movement_id=row["movement_id"],
            is_deleted=bool(row["is_deleted"]),
            created_at=timestamp_from_db(row["created_at"]) or datetime.now(UTC),
            updated_at=timestamp_from_db(row["updated_at"]) or datetime.now(UTC),
        )
