"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from workshop.core.entities.movement import MovementType
from workshop.core.entities.purchase import PurchaseStatus


# --- Materials ---


class CreateMaterialRequest(BaseModel):
    """Request to register a material. Stock starts at zero."""

    name: str = Field(..., min_length=1, description="Material name")
    code: str | None = Field(default=None, description="Unique material code", examples=["STL-PLT-3MM"])
    unit: str | None = Field(default=None, description="Unit of measure (defaults to LEDGER_DEFAULT_UNIT)")
    safety_stock: Decimal = Field(default=Decimal("0"), ge=0, description="Reorder threshold")
    description: str | None = Field(default=None, description="Free-text description")


# --- Movements ---


class RecordMovementRequest(BaseModel):
    """Request to record a manual IN, OUT or ADJUST movement.

    For ADJUST, ``quantity`` is the new absolute stock level.
    """

    material_id: int = Field(..., description="Material ID")
    movement_type: MovementType = Field(..., description="in, out or adjust")
    quantity: Decimal = Field(..., ge=0, description="Delta for in/out, absolute level for adjust")
    unit_cost: Decimal | None = Field(default=None, ge=0, description="Cost per unit")
    order_id: int | None = Field(default=None, description="Fulfilled order (tags the movement as order-sourced)")
    user_id: int | None = Field(default=None, description="User recording the movement")
    reference_number: str | None = Field(default=None, description="External reference")
    description: str | None = Field(default=None, description="Short description")
    notes: str | None = Field(default=None, description="Additional notes")


# --- Purchases ---


class CreatePurchaseRequest(BaseModel):
    """Request to create a purchase order.

    Creating it directly as ``received`` books the stock immediately.
    """

    material_id: int = Field(..., description="Material ID")
    supplier: str | None = Field(default=None, description="Supplier name")
    quantity: Decimal = Field(..., gt=0, description="Ordered quantity")
    received_quantity: Decimal | None = Field(default=None, gt=0, description="Quantity actually delivered")
    unit: str | None = Field(default=None, description="Unit of measure (defaults to the material unit)")
    unit_price: Decimal | None = Field(default=None, ge=0, description="Price per unit")
    status: PurchaseStatus = Field(default=PurchaseStatus.PENDING)
    purchased_date: date | None = Field(default=None, description="Order date (defaults to today)")
    delivery_date: date | None = Field(default=None)
    pic_name: str | None = Field(default=None, description="Person in charge")
    notes: str | None = Field(default=None)


class UpdatePurchaseRequest(BaseModel):
    """Partial purchase edit. Only fields that are sent are changed."""

    material_id: int | None = None
    supplier: str | None = None
    quantity: Decimal | None = Field(default=None, gt=0)
    received_quantity: Decimal | None = Field(default=None, gt=0)
    unit: str | None = None
    unit_price: Decimal | None = Field(default=None, ge=0)
    status: PurchaseStatus | None = None
    purchased_date: date | None = None
    delivery_date: date | None = None
    pic_name: str | None = None
    notes: str | None = None


class PurchaseStatusRequest(BaseModel):
    """Request to move a purchase to another status."""

    status: PurchaseStatus = Field(..., description="pending, received or cancelled")
