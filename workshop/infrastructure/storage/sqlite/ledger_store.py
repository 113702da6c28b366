"""SQLite implementation of the movement ledger."""

from collections import defaultdict
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import aiosqlite

from workshop.config import get_logger
from workshop.core.entities.ledger import MovementSummaryRow
from workshop.core.entities.movement import (
    MovementFilter,
    MovementRecord,
    MovementSource,
    MovementType,
)
from workshop.core.exceptions import (
    DuplicateAutomationError,
    ImmutabilityError,
    MovementNotFoundError,
)
from workshop.core.interfaces.ledger_store import ILedgerStore
from workshop.infrastructure.storage.sqlite.connection import use_connection
from workshop.infrastructure.storage.sqlite.rows import (
    decimal_from_db,
    decimal_to_db,
    timestamp_from_db,
    timestamp_to_db,
)

logger = get_logger(__name__)


def _filter_clause(filters: MovementFilter) -> tuple[str, list[Any]]:
    """Build a WHERE clause from movement filters."""
    clauses: list[str] = []
    params: list[Any] = []
    if filters.material_id is not None:
        clauses.append("material_id = ?")
        params.append(filters.material_id)
    if filters.movement_type is not None:
        clauses.append("movement_type = ?")
        params.append(filters.movement_type.value)
    if filters.source is not None:
        clauses.append("source = ?")
        params.append(filters.source.value)
    if filters.order_id is not None:
        clauses.append("order_id = ?")
        params.append(filters.order_id)
    if filters.purchase_id is not None:
        clauses.append("purchase_id = ?")
        params.append(filters.purchase_id)
    if filters.start_date is not None:
        clauses.append("created_at >= ?")
        params.append(timestamp_to_db(filters.start_date))
    if filters.end_date is not None:
        clauses.append("created_at <= ?")
        params.append(timestamp_to_db(filters.end_date))
    if filters.active_only:
        clauses.append("is_active = 1")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class SQLiteLedgerStore(ILedgerStore):
    """
    Append-only movement storage.

    Read methods accept an optional connection so they can run inside a
    ledger transaction; write methods require one.
    """

    async def get_movement(
        self, movement_id: int, conn: aiosqlite.Connection | None = None
    ) -> MovementRecord | None:
        """Get movement by ID."""
        async with use_connection(conn) as c:
            cursor = await c.execute(
                "SELECT * FROM material_movements WHERE id = ?", (movement_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_movement(row) if row else None

    async def list_for_material(
        self, material_id: int, filters: MovementFilter | None = None
    ) -> list[MovementRecord]:
        """List movements for a material, newest first unless filters say otherwise."""
        filters = (filters or MovementFilter()).model_copy(update={"material_id": material_id})
        return await self.list_movements(filters)

    async def list_movements(self, filters: MovementFilter) -> list[MovementRecord]:
        """List movements across materials."""
        where, params = _filter_clause(filters)
        order = "DESC" if filters.newest_first else "ASC"
        async with use_connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM material_movements
                {where}
                ORDER BY id {order}
                LIMIT ? OFFSET ?
                """,
                (*params, filters.limit, filters.offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_movement(row) for row in rows]

    async def list_active(
        self, material_id: int, conn: aiosqlite.Connection | None = None
    ) -> list[MovementRecord]:
        """All active movements for a material in chronological order."""
        async with use_connection(conn) as c:
            cursor = await c.execute(
                """
                SELECT * FROM material_movements
                WHERE material_id = ? AND is_active = 1
                ORDER BY id ASC
                """,
                (material_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_movement(row) for row in rows]

    async def find_by_purchase(
        self, purchase_id: int, conn: aiosqlite.Connection | None = None
    ) -> MovementRecord | None:
        """The single active movement tied to a purchase, or None."""
        async with use_connection(conn) as c:
            cursor = await c.execute(
                """
                SELECT * FROM material_movements
                WHERE purchase_id = ? AND is_active = 1
                """,
                (purchase_id,),
            )
            row = await cursor.fetchone()
            return self._row_to_movement(row) if row else None

    async def count_for_purchase(
        self, purchase_id: int, conn: aiosqlite.Connection | None = None
    ) -> int:
        """Count movements (active or not) that reference a purchase."""
        async with use_connection(conn) as c:
            cursor = await c.execute(
                "SELECT COUNT(*) FROM material_movements WHERE purchase_id = ?",
                (purchase_id,),
            )
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def summarize(self, filters: MovementFilter) -> list[MovementSummaryRow]:
        """Active movement totals grouped by type and source."""
        where, params = _filter_clause(filters.model_copy(update={"active_only": True}))
        async with use_connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT movement_type, source, quantity, total_cost
                FROM material_movements
                {where}
                """,
                params,
            )
            rows = await cursor.fetchall()

        # Summed in Python so TEXT decimals keep their precision
        groups: dict[tuple[str, str], dict[str, Any]] = defaultdict(
            lambda: {"count": 0, "quantity": Decimal("0"), "value": Decimal("0")}
        )
        for row in rows:
            group = groups[(row["movement_type"], row["source"])]
            group["count"] += 1
            group["quantity"] += decimal_from_db(row["quantity"]) or Decimal("0")
            group["value"] += decimal_from_db(row["total_cost"]) or Decimal("0")

        return [
            MovementSummaryRow(
                movement_type=MovementType(movement_type),
                source=MovementSource(source),
                count=group["count"],
                total_quantity=group["quantity"],
                total_value=group["value"],
            )
            for (movement_type, source), group in sorted(groups.items())
        ]

    async def append(
        self, conn: aiosqlite.Connection, movement: MovementRecord
    ) -> MovementRecord:
        """Insert a movement inside the caller's transaction."""
        try:
            cursor = await conn.execute(
                """
                INSERT INTO material_movements (
                    material_id, order_id, user_id, purchase_id, movement_type,
                    quantity, unit, unit_cost, total_cost, source,
                    reference_number, description, notes, qty_after,
                    is_active, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?)
                """,
                (
                    movement.material_id,
                    movement.order_id,
                    movement.user_id,
                    movement.purchase_id,
                    movement.movement_type.value,
                    decimal_to_db(movement.quantity),
                    movement.unit,
                    decimal_to_db(movement.unit_cost),
                    decimal_to_db(movement.total_cost),
                    movement.source.value,
                    movement.reference_number,
                    movement.description,
                    movement.notes,
                    decimal_to_db(movement.qty_after),
                    timestamp_to_db(movement.created_at),
                ),
            )
        except aiosqlite.IntegrityError as e:
            if movement.purchase_id is not None and "purchase_id" in str(e):
                existing = await self.find_by_purchase(movement.purchase_id, conn)
                raise DuplicateAutomationError(
                    movement.purchase_id, existing.id if existing else None
                ) from e
            raise
        return movement.model_copy(update={"id": cursor.lastrowid, "is_active": True})

    async def deactivate(self, conn: aiosqlite.Connection, movement_id: int) -> MovementRecord:
        """Flip a movement's active flag off inside the caller's transaction."""
        now = datetime.now(UTC)
        cursor = await conn.execute(
            """
            UPDATE material_movements
            SET is_active = 0, deactivated_at = ?
            WHERE id = ? AND is_active = 1
            """,
            (timestamp_to_db(now), movement_id),
        )
        if cursor.rowcount == 0:
            existing = await self.get_movement(movement_id, conn)
            if existing is None:
                raise MovementNotFoundError(movement_id)
            raise ImmutabilityError(
                f"Movement {movement_id} is already inactive",
                code="MOVEMENT_INACTIVE",
                movement_id=movement_id,
            )
        updated = await self.get_movement(movement_id, conn)
        assert updated is not None
        return updated

    @staticmethod
    def _row_to_movement(row: aiosqlite.Row) -> MovementRecord:
        """Convert a database row to a MovementRecord entity."""
        return MovementRecord(
            id=row["id"],
            material_id=row["material_id"],
            order_id=row["order_id"],
            user_id=row["user_id"],
            purchase_id=row["purchase_id"],
            movement_type=MovementType(row["movement_type"]),
            quantity=decimal_from_db(row["quantity"]) or Decimal("0"),
            unit=row["unit"],
            unit_cost=decimal_from_db(row["unit_cost"]),
            total_cost=decimal_from_db(row["total_cost"]),
            source=MovementSource(row["source"]),
            reference_number=row["reference_number"],
            description=row["description"],
            notes=row["notes"],
            qty_after=decimal_from_db(row["qty_after"]) or Decimal("0"),
            is_active=bool(row["is_active"]),
            created_at=timestamp_from_db(row["created_at"]) or datetime.now(UTC),
            deactivated_at=timestamp_from_db(row["deactivated_at"]),
        )
