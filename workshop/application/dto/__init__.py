"""Data transfer objects for API contracts."""

from workshop.application.dto.requests import (
    CreateMaterialRequest,
    CreatePurchaseRequest,
    PurchaseStatusRequest,
    RecordMovementRequest,
    UpdatePurchaseRequest,
)
from workshop.application.dto.responses import (
    BalancePointResponse,
    ComponentHealthResponse,
    ConsistencyReportResponse,
    DriftReportResponse,
    ErrorResponse,
    HealthResponse,
    MaterialListResponse,
    MaterialResponse,
    MovementListResponse,
    MovementResponse,
    MovementResultResponse,
    MovementSummaryResponse,
    PaginatedResponse,
    PurchaseListResponse,
    PurchaseResponse,
    PurchaseTransitionResponse,
    ReceiptStatsResponse,
    RunningBalanceResponse,
    StockBalanceResponse,
    SyncResultResponse,
)

__all__ = [
    # Requests
    "CreateMaterialRequest",
    "RecordMovementRequest",
    "CreatePurchaseRequest",
    "UpdatePurchaseRequest",
    "PurchaseStatusRequest",
    # Responses
    "PaginatedResponse",
    "MaterialResponse",
    "MaterialListResponse",
    "StockBalanceResponse",
    "BalancePointResponse",
    "RunningBalanceResponse",
    "DriftReportResponse",
    "ConsistencyReportResponse",
    "MovementResponse",
    "MovementListResponse",
    "MovementResultResponse",
    "MovementSummaryResponse",
    "PurchaseResponse",
    "PurchaseListResponse",
    "PurchaseTransitionResponse",
    "SyncResultResponse",
    "ReceiptStatsResponse",
    "ComponentHealthResponse",
    "HealthResponse",
    "ErrorResponse",
]
