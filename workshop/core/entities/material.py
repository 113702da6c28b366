"""
Material domain entity.

Represents a stockable material with a cached on-hand quantity.
"""

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class Material(BaseModel):
    """
    A material tracked by the inventory ledger.

    ``qty_on_hand`` is a materialized view of the ledger. Only the
    movement service writes it.
    """

    id: int | None = None
    code: str | None = None
    name: str
    unit: str = "pcs"
    qty_on_hand: Decimal = Decimal("0")
    safety_stock: Decimal = Field(default=Decimal("0"), ge=0)
    description: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_below_safety_stock(self) -> bool:
        """True when stock is at or below the safety threshold."""
        return self.qty_on_hand <= self.safety_stock
