"""Application use cases."""

from workshop.application.use_cases.check_stock_consistency import (
    CheckStockConsistencyUseCase,
    ConsistencyCheckResult,
)
from workshop.application.use_cases.create_material import CreateMaterialUseCase
from workshop.application.use_cases.create_purchase import CreatePurchaseUseCase
from workshop.application.use_cases.delete_movement import DeleteMovementUseCase
from workshop.application.use_cases.record_movement import RecordMovementUseCase
from workshop.application.use_cases.sync_purchase_receipts import SyncPurchaseReceiptsUseCase
from workshop.application.use_cases.update_purchase import (
    DeletePurchaseUseCase,
    UpdatePurchaseUseCase,
)

__all__ = [
    "CreateMaterialUseCase",
    "RecordMovementUseCase",
    "DeleteMovementUseCase",
    "CreatePurchaseUseCase",
    "UpdatePurchaseUseCase",
    "DeletePurchaseUseCase",
    "CheckStockConsistencyUseCase",
    "ConsistencyCheckResult",
    "SyncPurchaseReceiptsUseCase",
]
