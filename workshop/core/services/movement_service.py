"""
Movement service: the only writer of the ledger and the cached stock.

Every public operation runs inside a single ledger transaction. The
material row is re-read under the write lock before anything is
validated, so two concurrent requests against the same material can
never both validate against the same stale balance.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal

from workshop.config import get_logger
from workshop.core.entities.ledger import MovementResult
from workshop.core.entities.material import Material
from workshop.core.entities.movement import MovementRecord, MovementSource, MovementType
from workshop.core.entities.purchase import PurchaseOrder
from workshop.core.exceptions import (
    DuplicateAutomationError,
    MaterialNotFoundError,
    MovementNotFoundError,
    ValidationError,
)
from workshop.core.interfaces.unit_of_work import ILedgerTransaction, IUnitOfWork
from workshop.core.services.consistency_guard import ConsistencyGuard

logger = get_logger(__name__)


class MovementService:
    """
    Transactional boundary for stock-affecting changes.

    Operations that accept ``tx`` join a transaction the caller already
    holds (the purchase state machine uses this to save the purchase
    status and its ledger effect atomically). Without ``tx`` each call
    opens and commits its own transaction.
    """

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        guard: ConsistencyGuard | None = None,
    ):
        self._uow = unit_of_work
        self._guard = guard or ConsistencyGuard()

    @asynccontextmanager
    async def _transaction(
        self, tx: ILedgerTransaction | None
    ) -> AsyncIterator[ILedgerTransaction]:
        if tx is not None:
            yield tx
            return
        async with self._uow.begin() as opened:
            yield opened

    @staticmethod
    async def _locked_material(tx: ILedgerTransaction, material_id: int) -> Material:
        material = await tx.lock_material(material_id)
        if material is None:
            raise MaterialNotFoundError(material_id)
        return material

    # Manual movements

    async def record_manual_movement(
        self,
        material_id: int,
        movement_type: MovementType | str,
        quantity: Decimal,
        *,
        unit_cost: Decimal | None = None,
        notes: str | None = None,
        order_id: int | None = None,
        user_id: int | None = None,
        reference_number: str | None = None,
        description: str | None = None,
    ) -> MovementResult:
        """
        Record an IN, OUT or ADJUST movement.

        For IN/OUT ``quantity`` is a positive delta and OUT may not take
        stock below zero. For ADJUST ``quantity`` is the new absolute
        stock level. Movements carrying an ``order_id`` are tagged with
        the ``order`` source; adjustments with ``adjustment``.

        Raises:
            ValidationError: Bad quantity or cost, unknown material.
            InsufficientStockError: OUT would drive stock negative.
        """
        try:
            movement_type = MovementType(movement_type)
        except ValueError as e:
            raise ValidationError("movement_type", "must be one of in, out, adjust", movement_type) from e
        quantity = self._guard.validate_quantity(movement_type, Decimal(quantity))
        if unit_cost is not None and unit_cost < 0:
            raise ValidationError("unit_cost", "cannot be negative", unit_cost)

        if movement_type == MovementType.ADJUST:
            source = MovementSource.ADJUSTMENT
        elif order_id is not None:
            source = MovementSource.ORDER
        else:
            source = MovementSource.MANUAL

        async with self._uow.begin() as tx:
            material = await self._locked_material(tx, material_id)
            previous = material.qty_on_hand

            if movement_type == MovementType.ADJUST:
                new_qty = quantity
                costed_qty = abs(new_qty - previous)
            else:
                delta = quantity if movement_type == MovementType.IN else -quantity
                new_qty = self._guard.ensure_non_negative(material_id, previous, delta)
                costed_qty = quantity

            record = await tx.append_movement(
                MovementRecord(
                    material_id=material_id,
                    order_id=order_id,
                    user_id=user_id,
                    movement_type=movement_type,
                    quantity=quantity,
                    unit=material.unit,
                    unit_cost=unit_cost,
                    total_cost=MovementRecord.compute_total_cost(costed_qty, unit_cost),
                    source=source,
                    reference_number=reference_number,
                    description=description,
                    notes=notes,
                    qty_after=new_qty,
                )
            )
            await tx.set_qty_on_hand(material_id, new_qty)

        logger.info(
            "movement_recorded",
            movement_id=record.id,
            material_id=material_id,
            type=movement_type.value,
            source=source.value,
            qty=str(quantity),
            previous=str(previous),
            qty_after=str(new_qty),
        )
        return MovementResult(movement=record, qty_on_hand=new_qty)

    async def delete_manual_movement(self, movement_id: int) -> MovementResult:
        """
        Deactivate a manual IN/OUT movement and undo its effect on stock.

        Raises:
            MovementNotFoundError: Unknown movement.
            ImmutabilityError: Purchase, order or adjustment movement, or
                one already inactive or superseded by a later adjustment.
            InsufficientStockError: Undoing an IN would go negative.
        """
        async with self._uow.begin() as tx:
            movement = await tx.get_movement(movement_id)
            if movement is None:
                raise MovementNotFoundError(movement_id)
            self._guard.ensure_deletable(movement)
            result = await self._deactivate_and_compensate(tx, movement)

        logger.info(
            "movement_deleted",
            movement_id=movement_id,
            material_id=movement.material_id,
            qty_on_hand=str(result.qty_on_hand),
        )
        return result

    # Purchase receipts

    async def apply_purchase_receipt(
        self,
        purchase: PurchaseOrder,
        *,
        tx: ILedgerTransaction | None = None,
    ) -> MovementResult:
        """
        Create the IN movement for a received purchase.

        Idempotent: if an active movement already exists for the purchase
        the existing one is returned with ``already_applied=True``.
        """
        if purchase.id is None:
            raise ValidationError("purchase_id", "purchase must be saved before it is received")
        async with self._transaction(tx) as t:
            return await self._apply_receipt(t, purchase)

    async def reverse_purchase_receipt(
        self,
        purchase: PurchaseOrder,
        *,
        tx: ILedgerTransaction | None = None,
    ) -> MovementResult | None:
        """
        Deactivate a purchase's movement and take its quantity back out of stock.

        Returns None when the purchase has no active movement. Fails with
        ``InsufficientStockError`` instead of clamping when the received
        material has already been consumed.
        """
        if purchase.id is None:
            raise ValidationError("purchase_id", "purchase must be saved before it is reversed")
        async with self._transaction(tx) as t:
            return await self._reverse_receipt(t, purchase.id)

    async def replace_purchase_receipt(
        self,
        purchase: PurchaseOrder,
        *,
        tx: ILedgerTransaction | None = None,
    ) -> MovementResult:
        """
        Supersede a received purchase's movement after its details changed.

        The old movement is deactivated and a new one appended in the same
        transaction. Only the net stock change has to stay non-negative.
        """
        if purchase.id is None:
            raise ValidationError("purchase_id", "purchase must be saved before it is received")
        async with self._transaction(tx) as t:
            return await self._replace_receipt(t, purchase)

    async def _apply_receipt(
        self, tx: ILedgerTransaction, purchase: PurchaseOrder
    ) -> MovementResult:
        existing = await tx.find_active_by_purchase(purchase.id)  # type: ignore[arg-type]
        try:
            self._guard.ensure_single_automation(purchase.id, existing)  # type: ignore[arg-type]
        except DuplicateAutomationError:
            assert existing is not None
            material = await self._locked_material(tx, existing.material_id)
            logger.info(
                "purchase_receipt_already_applied",
                purchase_id=purchase.id,
                movement_id=existing.id,
            )
            return MovementResult(
                movement=existing,
                qty_on_hand=material.qty_on_hand,
                already_applied=True,
            )

        material = await self._locked_material(tx, purchase.material_id)
        quantity = purchase.effective_quantity
        new_qty = self._guard.ensure_non_negative(material.id, material.qty_on_hand, quantity)  # type: ignore[arg-type]
        record = await tx.append_movement(self._receipt_movement(purchase, material, quantity, new_qty))
        await tx.set_qty_on_hand(purchase.material_id, new_qty)
        await tx.link_purchase_movement(purchase.id, record.id)  # type: ignore[arg-type]

        logger.info(
            "purchase_receipt_applied",
            purchase_id=purchase.id,
            movement_id=record.id,
            material_id=purchase.material_id,
            qty=str(quantity),
            qty_after=str(new_qty),
        )
        return MovementResult(movement=record, qty_on_hand=new_qty)

    async def _reverse_receipt(
        self, tx: ILedgerTransaction, purchase_id: int
    ) -> MovementResult | None:
        movement = await tx.find_active_by_purchase(purchase_id)
        if movement is None:
            logger.info("purchase_receipt_absent", purchase_id=purchase_id)
            return None

        result = await self._deactivate_and_compensate(tx, movement)
        await tx.link_purchase_movement(purchase_id, None)

        logger.info(
            "purchase_receipt_reversed",
            purchase_id=purchase_id,
            movement_id=movement.id,
            material_id=movement.material_id,
            qty_on_hand=str(result.qty_on_hand),
        )
        return result

    async def _replace_receipt(
        self, tx: ILedgerTransaction, purchase: PurchaseOrder
    ) -> MovementResult:
        old = await tx.find_active_by_purchase(purchase.id)  # type: ignore[arg-type]
        if old is None:
            return await self._apply_receipt(tx, purchase)

        if old.material_id != purchase.material_id:
            # Material changed: take it out of the old one, put it into the new one
            await self._reverse_receipt(tx, purchase.id)  # type: ignore[arg-type]
            return await self._apply_receipt(tx, purchase)

        material = await self._locked_material(tx, purchase.material_id)
        self._guard.ensure_not_superseded(old, await tx.list_active_movements(material.id))  # type: ignore[arg-type]
        quantity = purchase.effective_quantity
        new_qty = self._guard.ensure_non_negative(
            material.id, material.qty_on_hand, quantity - old.quantity  # type: ignore[arg-type]
        )

        await tx.deactivate_movement(old.id)  # type: ignore[arg-type]
        record = await tx.append_movement(self._receipt_movement(purchase, material, quantity, new_qty))
        await tx.set_qty_on_hand(purchase.material_id, new_qty)
        await tx.link_purchase_movement(purchase.id, record.id)  # type: ignore[arg-type]

        logger.info(
            "purchase_receipt_replaced",
            purchase_id=purchase.id,
            old_movement_id=old.id,
            movement_id=record.id,
            old_qty=str(old.quantity),
            qty=str(quantity),
            qty_after=str(new_qty),
        )
        return MovementResult(movement=record, qty_on_hand=new_qty)

    # Shared

    async def _deactivate_and_compensate(
        self, tx: ILedgerTransaction, movement: MovementRecord
    ) -> MovementResult:
        """The single path that turns a movement off and undoes its stock effect."""
        material = await self._locked_material(tx, movement.material_id)
        active = await tx.list_active_movements(movement.material_id)
        self._guard.ensure_not_superseded(movement, active)
        new_qty = self._guard.ensure_non_negative(
            movement.material_id, material.qty_on_hand, -movement.signed_delta
        )
        deactivated = await tx.deactivate_movement(movement.id)  # type: ignore[arg-type]
        await tx.set_qty_on_hand(movement.material_id, new_qty)
        return MovementResult(movement=deactivated, qty_on_hand=new_qty)

    @staticmethod
    def _receipt_movement(
        purchase: PurchaseOrder, material: Material, quantity: Decimal, qty_after: Decimal
    ) -> MovementRecord:
        return MovementRecord(
            material_id=purchase.material_id,
            purchase_id=purchase.id,
            movement_type=MovementType.IN,
            quantity=quantity,
            unit=purchase.unit or material.unit,
            unit_cost=purchase.unit_price,
            total_cost=MovementRecord.compute_total_cost(quantity, purchase.unit_price),
            source=MovementSource.PURCHASE,
            reference_number=purchase.reference_number,
            description=f"Purchase delivery from {purchase.supplier or 'Unknown supplier'}",
            notes=f"Auto-generated from purchase {purchase.id}. PIC: {purchase.pic_name or 'N/A'}",
            qty_after=qty_after,
        )
