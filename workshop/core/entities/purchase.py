"""
Purchase order (purchase log) entity.

Status transitions drive ledger side effects; see
``workshop.core.services.purchase_receipt``.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from workshop.core.entities.movement import money


class PurchaseStatus(str, Enum):
    """Lifecycle states of a purchase order."""

    PENDING = "pending"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class PurchaseOrder(BaseModel):
    """A purchase of material from a supplier."""

    id: int | None = None
    material_id: int
    supplier: str | None = None
    quantity: Decimal = Field(..., gt=0)
    received_quantity: Decimal | None = Field(default=None, gt=0)
    unit: str | None = None  # None takes the material unit
    unit_price: Decimal | None = Field(default=None, ge=0)
    status: PurchaseStatus = PurchaseStatus.PENDING
    purchased_date: date = Field(default_factory=date.today)
    delivery_date: date | None = None
    pic_name: str | None = None
    notes: str | None = None
    movement_id: int | None = None  # active purchase movement, if received
    is_deleted: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def effective_quantity(self) -> Decimal:
        """Quantity that enters stock on receipt."""
        return self.received_quantity if self.received_quantity is not None else self.quantity

    @property
    def total_cost(self) -> Decimal | None:
        if self.unit_price is None:
            return None
        return money(self.effective_quantity * self.unit_price)

    @property
    def reference_number(self) -> str:
        return f"PO-{(self.id or 0):06d}"

    @property
    def is_received(self) -> bool:
        return self.status == PurchaseStatus.RECEIVED
