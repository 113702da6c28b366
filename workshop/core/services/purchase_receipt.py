"""
Purchase receipt state machine.

Maps purchase status transitions to ledger effects:

    PENDING   -> RECEIVED   apply receipt (IN movement)
    RECEIVED  -> PENDING    reverse receipt
    RECEIVED  -> CANCELLED  reverse receipt
    PENDING   -> CANCELLED  nothing
    RECEIVED  -> RECEIVED   replace receipt when material, quantity or price changed

CANCELLED is terminal. The status write and its ledger effect share one
transaction, so a failed reversal leaves the purchase RECEIVED.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from workshop.config import get_logger
from workshop.core.entities.ledger import MovementResult
from workshop.core.entities.material import Material
from workshop.core.entities.movement import MovementFilter, MovementSource
from workshop.core.entities.purchase import PurchaseOrder, PurchaseStatus
from workshop.core.exceptions import (
    ImmutabilityError,
    InvalidTransitionError,
    MaterialNotFoundError,
    PurchaseNotFoundError,
    ValidationError,
    WorkshopError,
)
from workshop.core.interfaces.ledger_store import ILedgerStore
from workshop.core.interfaces.purchase_store import IPurchaseStore
from workshop.core.interfaces.unit_of_work import ILedgerTransaction, IUnitOfWork
from workshop.core.services.movement_service import MovementService

logger = get_logger(__name__)


class ReceiptEffect(str, Enum):
    """Ledger side effect of a purchase status change."""

    NONE = "none"
    APPLY = "apply"
    REVERSE = "reverse"
    REPLACE = "replace"


TRANSITIONS: dict[tuple[PurchaseStatus, PurchaseStatus], ReceiptEffect] = {
    (PurchaseStatus.PENDING, PurchaseStatus.PENDING): ReceiptEffect.NONE,
    (PurchaseStatus.PENDING, PurchaseStatus.RECEIVED): ReceiptEffect.APPLY,
    (PurchaseStatus.PENDING, PurchaseStatus.CANCELLED): ReceiptEffect.NONE,
    (PurchaseStatus.RECEIVED, PurchaseStatus.PENDING): ReceiptEffect.REVERSE,
    (PurchaseStatus.RECEIVED, PurchaseStatus.RECEIVED): ReceiptEffect.NONE,
    (PurchaseStatus.RECEIVED, PurchaseStatus.CANCELLED): ReceiptEffect.REVERSE,
    (PurchaseStatus.CANCELLED, PurchaseStatus.CANCELLED): ReceiptEffect.NONE,
}

EDITABLE_FIELDS = frozenset(
    {
        "material_id",
        "supplier",
        "quantity",
        "received_quantity",
        "unit",
        "unit_price",
        "purchased_date",
        "delivery_date",
        "pic_name",
        "notes",
    }
)


def resolve_effect(
    current: PurchaseStatus,
    target: PurchaseStatus,
    receipt_changed: bool = False,
    purchase_id: int | None = None,
) -> ReceiptEffect:
    """Look up the ledger effect of a transition or raise if it is not allowed."""
    effect = TRANSITIONS.get((current, target))
    if effect is None:
        raise InvalidTransitionError(purchase_id, current.value, target.value)
    if effect == ReceiptEffect.NONE and current == target == PurchaseStatus.RECEIVED and receipt_changed:
        return ReceiptEffect.REPLACE
    return effect


def _receipt_key(purchase: PurchaseOrder) -> tuple[int, Decimal, str | None, Decimal | None]:
    return (purchase.material_id, purchase.effective_quantity, purchase.unit, purchase.unit_price)


class PurchaseTransitionResult(BaseModel):
    """Purchase after a create/update plus the ledger effect it triggered."""

    purchase: PurchaseOrder
    previous_status: PurchaseStatus | None = None
    effect: ReceiptEffect = ReceiptEffect.NONE
    movement: MovementResult | None = None


class SyncResult(BaseModel):
    """Outcome of a bulk receipt sync."""

    total: int = 0
    created: int = 0
    skipped: int = 0
    errors: list[dict[str, Any]] = []


class ReceiptStats(BaseModel):
    """How many received purchases have their ledger movement."""

    total_received: int
    purchase_movements: int

    @property
    def sync_percentage(self) -> float:
        if self.total_received == 0:
            return 100.0
        return round(self.purchase_movements / self.total_received * 100, 1)


class PurchaseReceiptStateMachine:
    """Creates, edits and deletes purchases with their ledger side effects."""

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        movement_service: MovementService,
        purchase_store: IPurchaseStore,
        ledger_store: ILedgerStore,
    ):
        self._uow = unit_of_work
        self._movements = movement_service
        self._purchase_store = purchase_store
        self._ledger_store = ledger_store

    async def create_purchase(self, purchase: PurchaseOrder) -> PurchaseTransitionResult:
        """Save a new purchase. One created as RECEIVED is received immediately."""
        if purchase.id is not None:
            raise ValidationError("id", "new purchases must not carry an ID", purchase.id)

        async with self._uow.begin() as tx:
            material = await self._require_material(tx, purchase.material_id)
            if purchase.unit is None:
                purchase = purchase.model_copy(update={"unit": material.unit})
            saved = await tx.save_purchase(purchase)
            movement = None
            effect = ReceiptEffect.NONE
            if saved.is_received:
                movement = await self._movements.apply_purchase_receipt(saved, tx=tx)
                saved = saved.model_copy(update={"movement_id": movement.movement.id})
                effect = ReceiptEffect.APPLY

        logger.info(
            "purchase_created",
            purchase_id=saved.id,
            material_id=saved.material_id,
            status=saved.status.value,
            movement_id=saved.movement_id,
        )
        return PurchaseTransitionResult(purchase=saved, effect=effect, movement=movement)

    async def transition(
        self, purchase_id: int, status: PurchaseStatus | str
    ) -> PurchaseTransitionResult:
        """Change only the status of a purchase."""
        return await self.update_purchase(purchase_id, {"status": status})

    async def update_purchase(
        self, purchase_id: int, changes: dict[str, Any]
    ) -> PurchaseTransitionResult:
        """
        Apply field edits and/or a status change.

        Raises:
            PurchaseNotFoundError: Unknown or deleted purchase.
            InvalidTransitionError: Transition not in the table.
            InsufficientStockError: Reversal would drive stock negative.
        """
        unknown = set(changes) - EDITABLE_FIELDS - {"status"}
        if unknown:
            raise ValidationError(sorted(unknown)[0], "field cannot be edited")

        async with self._uow.begin() as tx:
            current = await tx.get_purchase(purchase_id)
            if current is None or current.is_deleted:
                raise PurchaseNotFoundError(purchase_id)

            try:
                target_status = PurchaseStatus(changes.get("status", current.status))
            except ValueError as e:
                raise ValidationError("status", "must be one of pending, received, cancelled", changes.get("status")) from e

            updated = self._apply_changes(current, changes, target_status)
            if updated.material_id != current.material_id:
                material = await self._require_material(tx, updated.material_id)
                if "unit" not in changes:
                    updated.unit = material.unit

            effect = resolve_effect(
                current.status,
                target_status,
                receipt_changed=_receipt_key(updated) != _receipt_key(current),
                purchase_id=purchase_id,
            )
            movement = await self._run_effect(tx, effect, current, updated)
            if effect in (ReceiptEffect.APPLY, ReceiptEffect.REPLACE) and movement is not None:
                updated.movement_id = movement.movement.id
            elif effect == ReceiptEffect.REVERSE:
                updated.movement_id = None

            saved = await tx.save_purchase(updated)

        logger.info(
            "purchase_updated",
            purchase_id=purchase_id,
            from_status=current.status.value,
            to_status=saved.status.value,
            effect=effect.value,
            movement_id=saved.movement_id,
        )
        return PurchaseTransitionResult(
            purchase=saved,
            previous_status=current.status,
            effect=effect,
            movement=movement,
        )

    async def delete_purchase(self, purchase_id: int) -> PurchaseOrder:
        """Soft-delete a purchase that never produced a ledger movement."""
        async with self._uow.begin() as tx:
            purchase = await tx.get_purchase(purchase_id)
            if purchase is None or purchase.is_deleted:
                raise PurchaseNotFoundError(purchase_id)
            referenced = await tx.count_purchase_movements(purchase_id)
            if referenced:
                raise ImmutabilityError(
                    f"Purchase {purchase_id} is referenced by {referenced} ledger movement(s)",
                    code="PURCHASE_HAS_MOVEMENTS",
                    purchase_id=purchase_id,
                    movement_count=referenced,
                )
            purchase.is_deleted = True
            purchase.updated_at = datetime.now(UTC)
            saved = await tx.save_purchase(purchase)

        logger.info("purchase_deleted", purchase_id=purchase_id)
        return saved

    async def sync_received_purchases(self, page_size: int = 200) -> SyncResult:
        """
        Create missing movements for RECEIVED purchases.

        Each purchase is handled in its own transaction; one failure is
        recorded and the sync moves on.
        """
        result = SyncResult()
        offset = 0
        while True:
            purchases = await self._purchase_store.list_purchases(
                status=PurchaseStatus.RECEIVED, limit=page_size, offset=offset
            )
            if not purchases:
                break
            for purchase in purchases:
                result.total += 1
                try:
                    applied = await self._movements.apply_purchase_receipt(purchase)
                except WorkshopError as e:
                    logger.warning(
                        "purchase_sync_failed",
                        purchase_id=purchase.id,
                        error=e.message,
                    )
                    result.errors.append({"purchase_id": purchase.id, **e.to_dict()})
                    continue
                if applied.already_applied:
                    result.skipped += 1
                else:
                    result.created += 1
            offset += page_size

        logger.info(
            "purchase_sync_complete",
            total=result.total,
            created=result.created,
            skipped=result.skipped,
            errors=len(result.errors),
        )
        return result

    async def receipt_stats(self) -> ReceiptStats:
        total_received = await self._purchase_store.count_by_status(PurchaseStatus.RECEIVED)
        rows = await self._ledger_store.summarize(
            MovementFilter(source=MovementSource.PURCHASE, active_only=True)
        )
        return ReceiptStats(
            total_received=total_received,
            purchase_movements=sum(row.count for row in rows),
        )

    async def _run_effect(
        self,
        tx: ILedgerTransaction,
        effect: ReceiptEffect,
        before: PurchaseOrder,
        after: PurchaseOrder,
    ) -> MovementResult | None:
        if effect == ReceiptEffect.APPLY:
            return await self._movements.apply_purchase_receipt(after, tx=tx)
        if effect == ReceiptEffect.REVERSE:
            return await self._movements.reverse_purchase_receipt(before, tx=tx)
        if effect == ReceiptEffect.REPLACE:
            return await self._movements.replace_purchase_receipt(after, tx=tx)
        return None

    @staticmethod
    async def _require_material(tx: ILedgerTransaction, material_id: int) -> Material:
        material = await tx.lock_material(material_id)
        if material is None:
            raise MaterialNotFoundError(material_id)
        return material

    @staticmethod
    def _apply_changes(
        current: PurchaseOrder, changes: dict[str, Any], status: PurchaseStatus
    ) -> PurchaseOrder:
        data = current.model_dump()
        data.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})
        data["status"] = status
        data["updated_at"] = datetime.now(UTC)
        try:
            return PurchaseOrder.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "purchase"
            raise ValidationError(field, first["msg"], first.get("input")) from e
