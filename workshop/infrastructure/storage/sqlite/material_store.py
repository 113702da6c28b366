"""SQLite implementation of material storage."""

from datetime import UTC, datetime
from decimal import Decimal

import aiosqlite

from workshop.config import get_logger
from workshop.core.entities.material import Material
from workshop.core.exceptions import ValidationError
from workshop.core.interfaces.material_store import IMaterialStore
from workshop.infrastructure.storage.sqlite.connection import get_transaction, use_connection
from workshop.infrastructure.storage.sqlite.rows import (
    decimal_from_db,
    decimal_to_db,
    timestamp_from_db,
    timestamp_to_db,
)

logger = get_logger(__name__)


class SQLiteMaterialStore(IMaterialStore):
    """SQLite implementation of material storage."""

    async def create_material(self, material: Material) -> Material:
        """Create a new material with zero stock."""
        now = datetime.now(UTC)
        material.created_at = now
        material.updated_at = now
        material.qty_on_hand = Decimal("0")
        try:
            async with get_transaction() as conn:
                cursor = await conn.execute(
                    """
                    INSERT INTO materials (
                        code, name, unit, qty_on_hand, safety_stock,
                        description, is_active, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        material.code,
                        material.name,
                        material.unit,
                        decimal_to_db(material.qty_on_hand),
                        decimal_to_db(material.safety_stock),
                        material.description,
                        1 if material.is_active else 0,
                        timestamp_to_db(material.created_at),
                        timestamp_to_db(material.updated_at),
                    ),
                )
                material.id = cursor.lastrowid
        except aiosqlite.IntegrityError as e:
            raise ValidationError("code", "material code already exists", material.code) from e

        logger.info("material_created", material_id=material.id, code=material.code)
        return material

    async def get_material(
        self, material_id: int, conn: aiosqlite.Connection | None = None
    ) -> Material | None:
        """Get material by ID."""
        async with use_connection(conn) as c:
            cursor = await c.execute("SELECT * FROM materials WHERE id = ?", (material_id,))
            row = await cursor.fetchone()
            return self._row_to_material(row) if row else None

    async def list_materials(
        self, limit: int = 100, offset: int = 0, include_inactive: bool = False
    ) -> list[Material]:
        """List materials by ID; retired ones only with ``include_inactive``."""
        where = "" if include_inactive else "WHERE is_active = 1"
        async with use_connection() as conn:
            cursor = await conn.execute(
                f"SELECT * FROM materials {where} ORDER BY id LIMIT ? OFFSET ?",
                (limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_material(row) for row in rows]

    async def list_below_safety_stock(
        self, limit: int = 100, offset: int = 0
    ) -> list[Material]:
        """Active materials at or below their safety stock, lowest stock first."""
        async with use_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM materials WHERE is_active = 1 ORDER BY id"
            )
            rows = await cursor.fetchall()
        # Compared as Decimal; TEXT columns would compare lexically in SQL
        below = [m for m in (self._row_to_material(r) for r in rows) if m.is_below_safety_stock]
        below.sort(key=lambda m: (m.qty_on_hand, m.id))
        return below[offset : offset + limit]

    async def set_qty_on_hand(
        self, conn: aiosqlite.Connection, material_id: int, qty_on_hand: Decimal
    ) -> None:
        """Write the cached stock figure. Callers must hold the write transaction."""
        await conn.execute(
            "UPDATE materials SET qty_on_hand = ?, updated_at = ? WHERE id = ?",
            (decimal_to_db(qty_on_hand), timestamp_to_db(datetime.now(UTC)), material_id),
        )

    @staticmethod
    def _row_to_material(row: aiosqlite.Row) -> Material:
        """Convert a database row to a Material entity."""
        return Material(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            unit=row["unit"],
            qty_on_hand=decimal_from_db(row["qty_on_hand"]) or Decimal("0"),
            safety_stock=decimal_from_db(row["safety_stock"]) or Decimal("0"),
            description=row["description"],
            is_active=bool(row["is_active"]),
            created_at=timestamp_from_db(row["created_at"]) or datetime.now(UTC),
            updated_at=timestamp_from_db(row["updated_at"]) or datetime.now(UTC),
        )
