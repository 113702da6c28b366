"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection

Use cases are the only entry point for API handlers that write.
"""

from workshop.application.services import (
    get_movement_service,
    get_purchase_state_machine,
    get_stock_aggregator,
    reset_services,
)
from workshop.application.use_cases import (
    CheckStockConsistencyUseCase,
    CreateMaterialUseCase,
    CreatePurchaseUseCase,
    DeleteMovementUseCase,
    DeletePurchaseUseCase,
    RecordMovementUseCase,
    SyncPurchaseReceiptsUseCase,
    UpdatePurchaseUseCase,
)

__all__ = [
    # Use Cases
    "CreateMaterialUseCase",
    "RecordMovementUseCase",
    "DeleteMovementUseCase",
    "CreatePurchaseUseCase",
    "UpdatePurchaseUseCase",
    "DeletePurchaseUseCase",
    "CheckStockConsistencyUseCase",
    "SyncPurchaseReceiptsUseCase",
    # Service factories
    "get_movement_service",
    "get_stock_aggregator",
    "get_purchase_state_machine",
    "reset_services",
]
