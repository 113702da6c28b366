"""Tests for SQLite ledger, material and purchase stores."""

from decimal import Decimal

import aiosqlite
import pytest

from workshop.core.entities import (
    Material,
    MovementFilter,
    MovementRecord,
    MovementSource,
    MovementType,
    PurchaseOrder,
    PurchaseStatus,
)
from workshop.core.exceptions import (
    DuplicateAutomationError,
    ImmutabilityError,
    MovementNotFoundError,
    ValidationError,
)
from workshop.infrastructure.storage.sqlite import (
    SQLiteLedgerStore,
    SQLiteMaterialStore,
    SQLitePurchaseStore,
    get_connection,
    get_transaction,
)


@pytest.fixture
def material_store():
    return SQLiteMaterialStore()


@pytest.fixture
def ledger_store():
    return SQLiteLedgerStore()


@pytest.fixture
def purchase_store():
    return SQLitePurchaseStore()


@pytest.fixture
async def material(ledger_db, material_store) -> Material:
    return await material_store.create_material(Material(code="BOLT-M8", name="Bolt M8"))


@pytest.fixture
async def purchase(material, purchase_store) -> PurchaseOrder:
    async with get_transaction() as conn:
        return await purchase_store.save(
            conn,
            PurchaseOrder(material_id=material.id, quantity=Decimal("20"), unit_price=Decimal("0.35")),
        )


def movement(material_id: int, movement_type=MovementType.IN, quantity="10", qty_after="10", **kwargs):
    return MovementRecord(
        material_id=material_id,
        movement_type=movement_type,
        quantity=Decimal(quantity),
        qty_after=Decimal(qty_after),
        **kwargs,
    )


class TestSQLiteMaterialStore:
    async def test_create_starts_at_zero(self, material_store, ledger_db):
        created = await material_store.create_material(
            Material(name="Washer", qty_on_hand=Decimal("500"))
        )
        fetched = await material_store.get_material(created.id)
        assert fetched.qty_on_hand == Decimal("0")

    async def test_duplicate_code(self, material_store, material):
        with pytest.raises(ValidationError):
            await material_store.create_material(Material(code="BOLT-M8", name="Other bolt"))

    async def test_set_qty_keeps_decimal_precision(self, material_store, material):
        async with get_transaction() as conn:
            await material_store.set_qty_on_hand(conn, material.id, Decimal("12.345"))
        fetched = await material_store.get_material(material.id)
        assert fetched.qty_on_hand == Decimal("12.345")

    async def test_low_stock_compares_numerically(self, material_store, ledger_db):
        # "9" > "10" as text; the store must compare as numbers
        low = await material_store.create_material(Material(name="Low", safety_stock=Decimal("10")))
        high = await material_store.create_material(Material(name="High", safety_stock=Decimal("10")))
        async with get_transaction() as conn:
            await material_store.set_qty_on_hand(conn, low.id, Decimal("9"))
            await material_store.set_qty_on_hand(conn, high.id, Decimal("100"))

        below = await material_store.list_below_safety_stock()

        assert [m.id for m in below] == [low.id]


class TestSQLiteLedgerStore:
    async def test_append_and_get(self, ledger_store, material):
        async with get_transaction(immediate=True) as conn:
            saved = await ledger_store.append(conn, movement(material.id, unit_cost=Decimal("0.35")))

        fetched = await ledger_store.get_movement(saved.id)
        assert fetched.quantity == Decimal("10")
        assert fetched.unit_cost == Decimal("0.35")
        assert fetched.is_active is True

    async def test_deactivate(self, ledger_store, material):
        async with get_transaction(immediate=True) as conn:
            saved = await ledger_store.append(conn, movement(material.id))
            deactivated = await ledger_store.deactivate(conn, saved.id)

        assert deactivated.is_active is False
        assert deactivated.deactivated_at is not None
        assert await ledger_store.list_active(material.id) == []

    async def test_deactivate_twice(self, ledger_store, material):
        async with get_transaction(immediate=True) as conn:
            saved = await ledger_store.append(conn, movement(material.id))
            await ledger_store.deactivate(conn, saved.id)
        with pytest.raises(ImmutabilityError):
            async with get_transaction(immediate=True) as conn:
                await ledger_store.deactivate(conn, saved.id)

    async def test_deactivate_missing(self, ledger_store, ledger_db):
        with pytest.raises(MovementNotFoundError):
            async with get_transaction(immediate=True) as conn:
                await ledger_store.deactivate(conn, 404)

    async def test_rows_cannot_be_edited(self, ledger_store, material):
        async with get_transaction(immediate=True) as conn:
            saved = await ledger_store.append(conn, movement(material.id))
        async with get_connection() as conn:
            with pytest.raises(aiosqlite.IntegrityError, match="immutable"):
                await conn.execute(
                    "UPDATE material_movements SET quantity = '99' WHERE id = ?", (saved.id,)
                )
            await conn.rollback()

    async def test_rows_cannot_be_deleted(self, ledger_store, material):
        async with get_transaction(immediate=True) as conn:
            saved = await ledger_store.append(conn, movement(material.id))
        async with get_connection() as conn:
            with pytest.raises(aiosqlite.IntegrityError, match="cannot be deleted"):
                await conn.execute("DELETE FROM material_movements WHERE id = ?", (saved.id,))
            await conn.rollback()

    async def test_inactive_rows_stay_inactive(self, ledger_store, material):
        async with get_transaction(immediate=True) as conn:
            saved = await ledger_store.append(conn, movement(material.id))
            await ledger_store.deactivate(conn, saved.id)
        async with get_connection() as conn:
            with pytest.raises(aiosqlite.IntegrityError, match="reactivated"):
                await conn.execute(
                    "UPDATE material_movements SET is_active = 1 WHERE id = ?", (saved.id,)
                )
            await conn.rollback()

    async def test_second_active_purchase_movement(self, ledger_store, material, purchase):
        receipt = movement(material.id, source=MovementSource.PURCHASE, purchase_id=purchase.id)
        async with get_transaction(immediate=True) as conn:
            first = await ledger_store.append(conn, receipt)

        with pytest.raises(DuplicateAutomationError) as exc_info:
            async with get_transaction(immediate=True) as conn:
                await ledger_store.append(conn, receipt)
        assert exc_info.value.details["existing_movement_id"] == first.id

    async def test_purchase_movement_after_deactivation(self, ledger_store, material, purchase):
        receipt = movement(material.id, source=MovementSource.PURCHASE, purchase_id=purchase.id)
        async with get_transaction(immediate=True) as conn:
            first = await ledger_store.append(conn, receipt)
            await ledger_store.deactivate(conn, first.id)
            second = await ledger_store.append(conn, receipt)

        assert (await ledger_store.find_by_purchase(purchase.id)).id == second.id
        assert await ledger_store.count_for_purchase(purchase.id) == 2

    async def test_list_filters_and_order(self, ledger_store, material):
        async with get_transaction(immediate=True) as conn:
            await ledger_store.append(conn, movement(material.id, MovementType.IN, "10", "10"))
            await ledger_store.append(conn, movement(material.id, MovementType.OUT, "4", "6"))
            await ledger_store.append(conn, movement(material.id, MovementType.IN, "1", "7", order_id=3, source=MovementSource.ORDER))

        newest = await ledger_store.list_for_material(material.id)
        outs = await ledger_store.list_movements(MovementFilter(movement_type=MovementType.OUT))
        orders = await ledger_store.list_movements(MovementFilter(order_id=3, newest_first=False))

        assert [m.quantity for m in newest] == [Decimal("1"), Decimal("4"), Decimal("10")]
        assert len(outs) == 1
        assert orders[0].source == MovementSource.ORDER

    async def test_summarize_active_only(self, ledger_store, material):
        async with get_transaction(immediate=True) as conn:
            await ledger_store.append(conn, movement(material.id, quantity="2.5", unit_cost=Decimal("2"), total_cost=Decimal("5.00")))
            await ledger_store.append(conn, movement(material.id, quantity="0.5", unit_cost=Decimal("2"), total_cost=Decimal("1.00")))
            dropped = await ledger_store.append(conn, movement(material.id, quantity="100"))
            await ledger_store.deactivate(conn, dropped.id)

        rows = await ledger_store.summarize(MovementFilter(material_id=material.id))

        assert len(rows) == 1
        assert rows[0].count == 2
        assert rows[0].total_quantity == Decimal("3.0")
        assert rows[0].total_value == Decimal("6.00")


class TestSQLitePurchaseStore:
    async def test_save_and_update(self, purchase_store, purchase):
        purchase.status = PurchaseStatus.RECEIVED
        purchase.received_quantity = Decimal("18")
        async with get_transaction() as conn:
            await purchase_store.save(conn, purchase)

        fetched = await purchase_store.get_purchase(purchase.id)
        assert fetched.status == PurchaseStatus.RECEIVED
        assert fetched.effective_quantity == Decimal("18")
        assert fetched.unit_price == Decimal("0.35")

    async def test_deleted_purchase_hidden(self, purchase_store, purchase):
        purchase.is_deleted = True
        async with get_transaction() as conn:
            await purchase_store.save(conn, purchase)

        assert await purchase_store.get_purchase(purchase.id) is None
        assert await purchase_store.list_purchases() == []

    async def test_list_and_count_by_status(self, purchase_store, purchase, material):
        async with get_transaction() as conn:
            await purchase_store.save(
                conn,
                PurchaseOrder(material_id=material.id, quantity=Decimal("5"), status=PurchaseStatus.RECEIVED),
            )

        received = await purchase_store.list_purchases(status=PurchaseStatus.RECEIVED)
        assert len(received) == 1
        assert await purchase_store.count_by_status(PurchaseStatus.PENDING) == 1
        assert len(await purchase_store.list_purchases(material_id=material.id)) == 2
