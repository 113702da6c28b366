"""
Invariant checks for ledger writes.

Pure, synchronous checks used by the movement service inside its
transaction. Each check either returns quietly or raises a typed
ledger error; none of them touch storage.
"""

from decimal import Decimal

from workshop.core.entities.ledger import DriftReport
from workshop.core.entities.movement import MovementRecord, MovementSource, MovementType
from workshop.core.exceptions import (
    ConsistencyDriftError,
    DuplicateAutomationError,
    ImmutabilityError,
    InsufficientStockError,
    SupersededMovementError,
    ValidationError,
)

ZERO = Decimal("0")


class ConsistencyGuard:
    """Validates requested stock changes against ledger invariants."""

    def validate_quantity(self, movement_type: MovementType, quantity: Decimal) -> Decimal:
        """
        Check a requested quantity before any transaction opens.

        IN/OUT quantities must be strictly positive. ADJUST quantities are
        the new absolute level and only need to be non-negative.
        """
        if not quantity.is_finite():
            raise ValidationError("quantity", "must be a finite number", quantity)
        if movement_type == MovementType.ADJUST:
            if quantity < ZERO:
                raise ValidationError("quantity", "adjusted stock level cannot be negative", quantity)
        elif quantity <= ZERO:
            raise ValidationError("quantity", "must be greater than 0", quantity)
        return quantity

    def ensure_non_negative(
        self, material_id: int, available: Decimal, delta: Decimal
    ) -> Decimal:
        """Return ``available + delta`` or raise if it would drop below zero."""
        new_qty = available + delta
        if new_qty < ZERO:
            raise InsufficientStockError(
                material_id=material_id,
                requested=-delta,
                available=available,
            )
        return new_qty

    def ensure_single_automation(
        self, purchase_id: int, existing: MovementRecord | None
    ) -> None:
        """Reject a second active automated movement for one purchase."""
        if existing is not None:
            raise DuplicateAutomationError(purchase_id, existing.id)

    def ensure_deletable(self, movement: MovementRecord) -> None:
        """Only active manual IN/OUT movements may be deleted directly."""
        if not movement.is_active:
            raise ImmutabilityError(
                f"Movement {movement.id} is already inactive",
                code="MOVEMENT_INACTIVE",
                movement_id=movement.id,
            )
        if movement.movement_type == MovementType.ADJUST:
            raise ImmutabilityError(
                "Stock adjustments cannot be deleted, only superseded by a new adjustment",
                movement_id=movement.id,
            )
        if movement.is_purchase_generated:
            raise ImmutabilityError(
                "Cannot delete purchase-generated movements; change the purchase status instead",
                movement_id=movement.id,
                purchase_id=movement.purchase_id,
            )
        if movement.source != MovementSource.MANUAL:
            raise ImmutabilityError(
                f"Cannot delete movements with source '{movement.source.value}'",
                movement_id=movement.id,
            )

    def ensure_not_superseded(
        self, movement: MovementRecord, active_movements: list[MovementRecord]
    ) -> None:
        """
        Refuse to reverse a movement that an active adjustment already absorbed.

        ``active_movements`` must be in chronological (ID) order.
        """
        for later in active_movements:
            if (
                later.movement_type == MovementType.ADJUST
                and later.id is not None
                and movement.id is not None
                and later.id > movement.id
            ):
                raise SupersededMovementError(movement.id, later.id)

    def ensure_in_sync(self, report: DriftReport, tolerance: Decimal = ZERO) -> None:
        """Raise if the cached stock figure disagrees with the ledger."""
        if not report.in_sync(tolerance):
            raise ConsistencyDriftError(report.material_id, report.cached, report.computed)
