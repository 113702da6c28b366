"""Read models derived from the ledger."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from workshop.core.entities.movement import MovementRecord, MovementSource, MovementType


class StockBalance(BaseModel):
    """Stock figures recomputed by replaying active movements."""

    material_id: int
    total_in: Decimal = Decimal("0")
    total_out: Decimal = Decimal("0")
    current_stock: Decimal = Decimal("0")
    movement_count: int = 0
    last_adjustment_id: int | None = None


class BalancePoint(BaseModel):
    """Running balance immediately after one movement."""

    movement_id: int
    movement_type: MovementType
    quantity: Decimal
    balance: Decimal
    created_at: datetime


class DriftReport(BaseModel):
    """Comparison between the cached stock figure and the ledger replay."""

    material_id: int
    cached: Decimal
    computed: Decimal

    @property
    def difference(self) -> Decimal:
        return self.computed - self.cached

    def in_sync(self, tolerance: Decimal = Decimal("0")) -> bool:
        return abs(self.difference) <= tolerance


class MovementSummaryRow(BaseModel):
    """Aggregate of movements sharing a type and source."""

    movement_type: MovementType
    source: MovementSource
    count: int
    total_quantity: Decimal
    total_value: Decimal


class MovementResult(BaseModel):
    """Outcome of a movement service operation."""

    movement: MovementRecord
    qty_on_hand: Decimal
    already_applied: bool = False
