"""Tests for the purchase receipt state machine."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from workshop.core.entities import (
    Material,
    MovementResult,
    MovementSource,
    MovementSummaryRow,
    MovementType,
    PurchaseStatus,
)
from workshop.core.exceptions import (
    ImmutabilityError,
    InsufficientStockError,
    InvalidTransitionError,
    MaterialNotFoundError,
    PurchaseNotFoundError,
    ValidationError,
)
from workshop.core.interfaces import ILedgerSnapshot, ILedgerTransaction, IUnitOfWork
from workshop.core.services import (
    MovementService,
    PurchaseReceiptStateMachine,
    ReceiptEffect,
    ReceiptStats,
    resolve_effect,
)

P = PurchaseStatus


class FakeUnitOfWork(IUnitOfWork):
    def __init__(self, tx):
        self.tx = tx

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[ILedgerTransaction]:
        yield self.tx

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[ILedgerSnapshot]:
        yield self.tx


def receipt_result(movement_factory, movement_id: int = 10, qty: str = "20") -> MovementResult:
    movement = movement_factory(
        movement_id, MovementType.IN, qty, qty, source=MovementSource.PURCHASE, purchase_id=7
    )
    return MovementResult(movement=movement, qty_on_hand=Decimal(qty))


@pytest.fixture
def tx(sample_purchase):
    tx = AsyncMock()
    tx.lock_material.return_value = Material(id=1, name="Steel")
    tx.get_purchase.return_value = sample_purchase
    tx.count_purchase_movements.return_value = 0

    async def save(purchase):
        if purchase.id is None:
            purchase.id = 7
        return purchase

    tx.save_purchase.side_effect = save
    return tx


@pytest.fixture
def movements():
    return AsyncMock(spec=MovementService)


@pytest.fixture
def purchase_store():
    return AsyncMock()


@pytest.fixture
def ledger_store():
    return AsyncMock()


@pytest.fixture
def machine(tx, movements, purchase_store, ledger_store):
    return PurchaseReceiptStateMachine(
        unit_of_work=FakeUnitOfWork(tx),
        movement_service=movements,
        purchase_store=purchase_store,
        ledger_store=ledger_store,
    )


class TestResolveEffect:
    @pytest.mark.parametrize(
        "current, target, effect",
        [
            (P.PENDING, P.RECEIVED, ReceiptEffect.APPLY),
            (P.RECEIVED, P.PENDING, ReceiptEffect.REVERSE),
            (P.RECEIVED, P.CANCELLED, ReceiptEffect.REVERSE),
            (P.PENDING, P.CANCELLED, ReceiptEffect.NONE),
            (P.PENDING, P.PENDING, ReceiptEffect.NONE),
            (P.RECEIVED, P.RECEIVED, ReceiptEffect.NONE),
        ],
    )
    def test_transition_table(self, current, target, effect):
        assert resolve_effect(current, target) == effect

    @pytest.mark.parametrize("target", [P.PENDING, P.RECEIVED])
    def test_cancelled_is_terminal(self, target):
        with pytest.raises(InvalidTransitionError):
            resolve_effect(P.CANCELLED, target, purchase_id=3)

    def test_changed_receipt_is_replaced(self):
        assert resolve_effect(P.RECEIVED, P.RECEIVED, receipt_changed=True) == ReceiptEffect.REPLACE

    def test_change_on_pending_is_plain_edit(self):
        assert resolve_effect(P.PENDING, P.PENDING, receipt_changed=True) == ReceiptEffect.NONE


class TestCreatePurchase:
    async def test_pending_purchase_touches_no_stock(self, machine, movements, sample_purchase):
        sample_purchase.id = None

        result = await machine.create_purchase(sample_purchase)

        assert result.purchase.id == 7
        assert result.effect == ReceiptEffect.NONE
        movements.apply_purchase_receipt.assert_not_awaited()

    async def test_received_purchase_is_booked(self, machine, movements, tx, sample_purchase, movement_factory):
        sample_purchase.id = None
        sample_purchase.status = P.RECEIVED
        movements.apply_purchase_receipt.return_value = receipt_result(movement_factory)

        result = await machine.create_purchase(sample_purchase)

        assert result.effect == ReceiptEffect.APPLY
        assert result.purchase.movement_id == 10
        assert movements.apply_purchase_receipt.await_args.kwargs["tx"] is tx

    async def test_id_not_allowed(self, machine, sample_purchase):
        with pytest.raises(ValidationError):
            await machine.create_purchase(sample_purchase)

    async def test_unknown_material(self, machine, tx, sample_purchase):
        sample_purchase.id = None
        tx.lock_material.return_value = None
        with pytest.raises(MaterialNotFoundError):
            await machine.create_purchase(sample_purchase)
        tx.save_purchase.assert_not_awaited()


class TestTransition:
    async def test_receive(self, machine, movements, sample_purchase, movement_factory):
        movements.apply_purchase_receipt.return_value = receipt_result(movement_factory)

        result = await machine.transition(7, "received")

        assert result.previous_status == P.PENDING
        assert result.effect == ReceiptEffect.APPLY
        assert result.purchase.status == P.RECEIVED
        assert result.purchase.movement_id == 10

    async def test_failed_reversal_keeps_received(self, machine, movements, tx, sample_purchase):
        sample_purchase.status = P.RECEIVED
        sample_purchase.movement_id = 10
        movements.reverse_purchase_receipt.side_effect = InsufficientStockError(
            1, requested=Decimal("20"), available=Decimal("5")
        )

        with pytest.raises(InsufficientStockError):
            await machine.transition(7, P.CANCELLED)
        tx.save_purchase.assert_not_awaited()

    async def test_reverse_clears_movement_link(self, machine, movements, sample_purchase, movement_factory):
        sample_purchase.status = P.RECEIVED
        sample_purchase.movement_id = 10
        movements.reverse_purchase_receipt.return_value = receipt_result(movement_factory)

        result = await machine.transition(7, P.PENDING)

        assert result.effect == ReceiptEffect.REVERSE
        assert result.purchase.movement_id is None

    async def test_cancelled_cannot_be_received(self, machine, sample_purchase):
        sample_purchase.status = P.CANCELLED
        with pytest.raises(InvalidTransitionError):
            await machine.transition(7, P.RECEIVED)

    async def test_unknown_status(self, machine):
        with pytest.raises(ValidationError):
            await machine.transition(7, "shipped")

    async def test_missing_purchase(self, machine, tx):
        tx.get_purchase.return_value = None
        with pytest.raises(PurchaseNotFoundError):
            await machine.transition(7, P.RECEIVED)


class TestUpdatePurchase:
    async def test_edit_pending_has_no_effect(self, machine, movements):
        result = await machine.update_purchase(7, {"supplier": "Other Supplier"})

        assert result.effect == ReceiptEffect.NONE
        assert result.purchase.supplier == "Other Supplier"
        movements.replace_purchase_receipt.assert_not_awaited()

    async def test_quantity_edit_on_received_replaces(self, machine, movements, sample_purchase, movement_factory):
        sample_purchase.status = P.RECEIVED
        movements.replace_purchase_receipt.return_value = receipt_result(movement_factory, 11, "25")

        result = await machine.update_purchase(7, {"received_quantity": Decimal("25")})

        assert result.effect == ReceiptEffect.REPLACE
        assert result.purchase.movement_id == 11
        replaced = movements.replace_purchase_receipt.await_args.args[0]
        assert replaced.effective_quantity == Decimal("25")

    async def test_notes_edit_on_received_keeps_movement(self, machine, movements, sample_purchase):
        sample_purchase.status = P.RECEIVED
        result = await machine.update_purchase(7, {"notes": "checked"})
        assert result.effect == ReceiptEffect.NONE
        movements.replace_purchase_receipt.assert_not_awaited()

    async def test_non_editable_field(self, machine):
        with pytest.raises(ValidationError):
            await machine.update_purchase(7, {"movement_id": 3})

    async def test_invalid_value(self, machine):
        with pytest.raises(ValidationError) as exc_info:
            await machine.update_purchase(7, {"quantity": Decimal("0")})
        assert exc_info.value.details["field"] == "quantity"

    async def test_material_change_requires_material(self, machine, tx):
        tx.lock_material.return_value = None
        with pytest.raises(MaterialNotFoundError):
            await machine.update_purchase(7, {"material_id": 99})


class TestDeletePurchase:
    async def test_soft_delete(self, machine, tx):
        purchase = await machine.delete_purchase(7)
        assert purchase.is_deleted is True
        tx.save_purchase.assert_awaited_once()

    async def test_referenced_purchase_is_kept(self, machine, tx):
        tx.count_purchase_movements.return_value = 2
        with pytest.raises(ImmutabilityError) as exc_info:
            await machine.delete_purchase(7)
        assert exc_info.value.code == "PURCHASE_HAS_MOVEMENTS"


class TestSync:
    async def test_counts_created_skipped_and_errors(self, machine, movements, purchase_store, sample_purchase, movement_factory):
        received = [sample_purchase.model_copy(update={"id": i, "status": P.RECEIVED}) for i in (1, 2, 3)]
        purchase_store.list_purchases.side_effect = [received, []]
        already = receipt_result(movement_factory).model_copy(update={"already_applied": True})
        movements.apply_purchase_receipt.side_effect = [
            receipt_result(movement_factory),
            already,
            MaterialNotFoundError(1),
        ]

        result = await machine.sync_received_purchases()

        assert (result.total, result.created, result.skipped) == (3, 1, 1)
        assert result.errors[0]["purchase_id"] == 3
        assert result.errors[0]["error"] == "MATERIAL_NOT_FOUND"

    async def test_stats(self, machine, purchase_store, ledger_store):
        purchase_store.count_by_status.return_value = 4
        ledger_store.summarize.return_value = [
            MovementSummaryRow(
                movement_type=MovementType.IN,
                source=MovementSource.PURCHASE,
                count=3,
                total_quantity=Decimal("60"),
                total_value=Decimal("750"),
            )
        ]

        stats = await machine.receipt_stats()

        assert stats.sync_percentage == 75.0

    def test_stats_without_received_purchases(self):
        assert ReceiptStats(total_received=0, purchase_movements=0).sync_percentage == 100.0
