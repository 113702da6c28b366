"""
Movement record entities.

A movement is one immutable, timestamped stock-affecting event. Records
are never edited or deleted; reversal flips ``is_active`` and the
movement service compensates the cached stock in the same transaction.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

CENT = Decimal("0.01")


class MovementType(str, Enum):
    """Direction of a stock movement."""

    IN = "in"
    OUT = "out"
    ADJUST = "adjust"


class MovementSource(str, Enum):
    """Origin of a movement; governs which paths may reverse it."""

    MANUAL = "manual"
    PURCHASE = "purchase"
    ORDER = "order"
    ADJUSTMENT = "adjustment"


def money(value: Decimal) -> Decimal:
    """Round a monetary amount to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class MovementRecord(BaseModel):
    """Records a single stock movement."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    material_id: int
    order_id: int | None = None
    user_id: int | None = None
    purchase_id: int | None = None
    movement_type: MovementType
    quantity: Decimal = Field(..., ge=0)  # for ADJUST: the new absolute level
    unit: str = "pcs"
    unit_cost: Decimal | None = None
    total_cost: Decimal | None = None
    source: MovementSource = MovementSource.MANUAL
    reference_number: str | None = None
    description: str | None = None
    notes: str | None = None
    qty_after: Decimal
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    deactivated_at: datetime | None = None

    @property
    def signed_delta(self) -> Decimal:
        """Effect on stock for IN/OUT movements. ADJUST has no delta."""
        if self.movement_type == MovementType.IN:
            return self.quantity
        if self.movement_type == MovementType.OUT:
            return -self.quantity
        raise ValueError("adjustments are absolute, not deltas")

    @property
    def is_purchase_generated(self) -> bool:
        return self.source == MovementSource.PURCHASE and self.purchase_id is not None

    @staticmethod
    def compute_total_cost(quantity: Decimal, unit_cost: Decimal | None) -> Decimal | None:
        """Total value of a movement, rounded only at this point."""
        if unit_cost is None:
            return None
        return money(quantity * unit_cost)


class MovementFilter(BaseModel):
    """Query filters for listing movements."""

    material_id: int | None = None
    movement_type: MovementType | None = None
    source: MovementSource | None = None
    order_id: int | None = None
    purchase_id: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active_only: bool = False
    newest_first: bool = True
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)
