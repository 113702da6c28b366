"""
Dependency injection container for FastAPI.

Provides service instances to route handlers.
"""

from functools import lru_cache

from workshop.application.services import get_stock_aggregator
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
from workshop.config import Settings, get_settings
from workshop.core.interfaces import ILedgerStore, IMaterialStore, IPurchaseStore
from workshop.core.services import StockAggregator
from workshop.infrastructure.storage.sqlite import (
    get_ledger_store,
    get_material_store,
    get_purchase_store,
)


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# Service dependencies
async def get_aggregator() -> StockAggregator:
    """Get stock aggregator."""
    return await get_stock_aggregator()


# Use case dependencies
def get_create_material_use_case() -> CreateMaterialUseCase:
    return CreateMaterialUseCase()


def get_record_movement_use_case() -> RecordMovementUseCase:
    return RecordMovementUseCase()


def get_delete_movement_use_case() -> DeleteMovementUseCase:
    return DeleteMovementUseCase()


def get_create_purchase_use_case() -> CreatePurchaseUseCase:
    return CreatePurchaseUseCase()


def get_update_purchase_use_case() -> UpdatePurchaseUseCase:
    return UpdatePurchaseUseCase()


def get_delete_purchase_use_case() -> DeletePurchaseUseCase:
    return DeletePurchaseUseCase()


def get_check_consistency_use_case() -> CheckStockConsistencyUseCase:
    return CheckStockConsistencyUseCase()


def get_sync_purchases_use_case() -> SyncPurchaseReceiptsUseCase:
    return SyncPurchaseReceiptsUseCase()


# Store dependencies (read side)
async def get_mat_store() -> IMaterialStore:
    """Get material store."""
    return await get_material_store()


async def get_ledger() -> ILedgerStore:
    """Get movement ledger store."""
    return await get_ledger_store()


async def get_purch_store() -> IPurchaseStore:
    """Get purchase store."""
    return await get_purchase_store()
