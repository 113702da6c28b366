"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
Decimals serialize as JSON strings so no precision is lost.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from workshop.core.entities import (
    BalancePoint,
    DriftReport,
    Material,
    MovementRecord,
    MovementResult,
    MovementSummaryRow,
    PurchaseOrder,
    StockBalance,
)


class PaginatedResponse(BaseModel):
    """Base for paginated responses."""

    total: int
    limit: int
    offset: int
    has_more: bool


# --- Materials ---


class MaterialResponse(BaseModel):
    """Material with its cached stock."""

    id: int
    code: str | None = None
    name: str
    unit: str
    qty_on_hand: Decimal
    safety_stock: Decimal
    is_below_safety_stock: bool
    description: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, material: Material) -> "MaterialResponse":
        return cls(
            id=material.id,  # type: ignore[arg-type]
            code=material.code,
            name=material.name,
            unit=material.unit,
            qty_on_hand=material.qty_on_hand,
            safety_stock=material.safety_stock,
            is_below_safety_stock=material.is_below_safety_stock,
            description=material.description,
            is_active=material.is_active,
            created_at=material.created_at,
            updated_at=material.updated_at,
        )


class MaterialListResponse(PaginatedResponse):
    """Page of materials."""

    materials: list[MaterialResponse]


class StockBalanceResponse(BaseModel):
    """Stock recomputed from the ledger."""

    material_id: int
    total_in: Decimal
    total_out: Decimal
    current_stock: Decimal
    movement_count: int
    last_adjustment_id: int | None = None

    @classmethod
    def from_entity(cls, balance: StockBalance) -> "StockBalanceResponse":
        return cls(**balance.model_dump())


class BalancePointResponse(BaseModel):
    movement_id: int
    movement_type: str
    quantity: Decimal
    balance: Decimal
    created_at: datetime


class RunningBalanceResponse(BaseModel):
    """Running balance after each active movement, oldest first."""

    material_id: int
    points: list[BalancePointResponse]

    @classmethod
    def from_points(cls, material_id: int, points: list[BalancePoint]) -> "RunningBalanceResponse":
        return cls(
            material_id=material_id,
            points=[
                BalancePointResponse(
                    movement_id=p.movement_id,
                    movement_type=p.movement_type.value,
                    quantity=p.quantity,
                    balance=p.balance,
                    created_at=p.created_at,
                )
                for p in points
            ],
        )


class DriftReportResponse(BaseModel):
    """Cached stock compared with the replayed ledger."""

    material_id: int
    cached: Decimal
    computed: Decimal
    difference: Decimal
    in_sync: bool

    @classmethod
    def from_entity(cls, report: DriftReport, tolerance: Decimal) -> "DriftReportResponse":
        return cls(
            material_id=report.material_id,
            cached=report.cached,
            computed=report.computed,
            difference=report.difference,
            in_sync=report.in_sync(tolerance),
        )


class ConsistencyReportResponse(BaseModel):
    """Drift scan over all materials."""

    checked: int
    drifted: int
    tolerance: Decimal
    reports: list[DriftReportResponse] = Field(
        default_factory=list,
        description="Drifted materials only, unless include_all was requested",
    )


# --- Movements ---


class MovementResponse(BaseModel):
    """A single ledger movement."""

    id: int
    material_id: int
    movement_type: str
    quantity: Decimal
    unit: str
    unit_cost: Decimal | None = None
    total_cost: Decimal | None = None
    source: str
    order_id: int | None = None
    user_id: int | None = None
    purchase_id: int | None = None
    reference_number: str | None = None
    description: str | None = None
    notes: str | None = None
    qty_after: Decimal
    is_active: bool
    created_at: datetime
    deactivated_at: datetime | None = None

    @classmethod
    def from_entity(cls, movement: MovementRecord) -> "MovementResponse":
        return cls(
            id=movement.id,  # type: ignore[arg-type]
            material_id=movement.material_id,
            movement_type=movement.movement_type.value,
            quantity=movement.quantity,
            unit=movement.unit,
            unit_cost=movement.unit_cost,
            total_cost=movement.total_cost,
            source=movement.source.value,
            order_id=movement.order_id,
            user_id=movement.user_id,
            purchase_id=movement.purchase_id,
            reference_number=movement.reference_number,
            description=movement.description,
            notes=movement.notes,
            qty_after=movement.qty_after,
            is_active=movement.is_active,
            created_at=movement.created_at,
            deactivated_at=movement.deactivated_at,
        )


class MovementListResponse(PaginatedResponse):
    """Page of movements."""

    movements: list[MovementResponse]


class MovementResultResponse(BaseModel):
    """Movement written or deactivated, with the new cached stock."""

    movement: MovementResponse
    qty_on_hand: Decimal
    already_applied: bool = False

    @classmethod
    def from_entity(cls, result: MovementResult) -> "MovementResultResponse":
        return cls(
            movement=MovementResponse.from_entity(result.movement),
            qty_on_hand=result.qty_on_hand,
            already_applied=result.already_applied,
        )


class MovementSummaryRowResponse(BaseModel):
    movement_type: str
    source: str
    count: int
    total_quantity: Decimal
    total_value: Decimal


class MovementSummaryResponse(BaseModel):
    """Active movement totals grouped by type and source."""

    rows: list[MovementSummaryRowResponse]

    @classmethod
    def from_rows(cls, rows: list[MovementSummaryRow]) -> "MovementSummaryResponse":
        return cls(
            rows=[
                MovementSummaryRowResponse(
                    movement_type=r.movement_type.value,
                    source=r.source.value,
                    count=r.count,
                    total_quantity=r.total_quantity,
                    total_value=r.total_value,
                )
                for r in rows
            ]
        )


# --- Purchases ---


class PurchaseResponse(BaseModel):
    """Purchase order."""

    id: int
    reference_number: str
    material_id: int
    supplier: str | None = None
    quantity: Decimal
    received_quantity: Decimal | None = None
    effective_quantity: Decimal
    unit: str
    unit_price: Decimal | None = None
    total_cost: Decimal | None = None
    status: str
    purchased_date: date
    delivery_date: date | None = None
    pic_name: str | None = None
    notes: str | None = None
    movement_id: int | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, purchase: PurchaseOrder) -> "PurchaseResponse":
        return cls(
            id=purchase.id,  # type: ignore[arg-type]
            reference_number=purchase.reference_number,
            material_id=purchase.material_id,
            supplier=purchase.supplier,
            quantity=purchase.quantity,
            received_quantity=purchase.received_quantity,
            effective_quantity=purchase.effective_quantity,
            unit=purchase.unit,
            unit_price=purchase.unit_price,
            total_cost=purchase.total_cost,
            status=purchase.status.value,
            purchased_date=purchase.purchased_date,
            delivery_date=purchase.delivery_date,
            pic_name=purchase.pic_name,
            notes=purchase.notes,
            movement_id=purchase.movement_id,
            created_at=purchase.created_at,
            updated_at=purchase.updated_at,
        )


class PurchaseListResponse(PaginatedResponse):
    """Page of purchases."""

    purchases: list[PurchaseResponse]


class PurchaseTransitionResponse(BaseModel):
    """Purchase after a create/update and the ledger effect it triggered."""

    purchase: PurchaseResponse
    previous_status: str | None = None
    effect: str
    movement: MovementResultResponse | None = None


class SyncResultResponse(BaseModel):
    """Outcome of back-filling movements for received purchases."""

    total: int
    created: int
    skipped: int
    errors: list[dict] = Field(default_factory=list)


class ReceiptStatsResponse(BaseModel):
    """Received purchases versus their ledger movements."""

    total_received: int
    purchase_movements: int
    sync_percentage: float


# --- System ---


class ComponentHealthResponse(BaseModel):
    """Health of one backing component."""

    status: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: ComponentHealthResponse | None = None
    schema_version: str | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. INSUFFICIENT_STOCK)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    details: dict | None = Field(default=None, description="Structured error context")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
