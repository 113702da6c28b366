"""
Service factory functions for dependency injection.

This module provides factory functions that wire infrastructure
implementations to core services. Use cases should import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from typing import TYPE_CHECKING

from workshop.config import get_settings
from workshop.core.services import (
    ConsistencyGuard,
    MovementService,
    PurchaseReceiptStateMachine,
    StockAggregator,
)

if TYPE_CHECKING:
    from workshop.core.interfaces import (
        ILedgerStore,
        IMaterialStore,
        IPurchaseStore,
        IUnitOfWork,
    )


# Singleton service instances
_movement_service: MovementService | None = None
_stock_aggregator: StockAggregator | None = None
_purchase_state_machine: PurchaseReceiptStateMachine | None = None


async def get_movement_service(
    unit_of_work: "IUnitOfWork | None" = None,
) -> MovementService:
    """
    Get or create MovementService instance.

    Args:
        unit_of_work: Optional unit of work override

    Returns:
        Configured MovementService
    """
    global _movement_service

    if _movement_service is not None and unit_of_work is None:
        return _movement_service

    # Lazy import infrastructure
    from workshop.infrastructure.storage.sqlite import get_unit_of_work

    service = MovementService(
        unit_of_work=unit_of_work or await get_unit_of_work(),
        guard=ConsistencyGuard(),
    )

    if unit_of_work is None:
        _movement_service = service

    return service


async def get_stock_aggregator(
    ledger_store: "ILedgerStore | None" = None,
    material_store: "IMaterialStore | None" = None,
) -> StockAggregator:
    """
    Get or create StockAggregator instance.

    Drift tolerance comes from ``LEDGER_DRIFT_TOLERANCE``. The singleton
    reads drift through SQLite snapshots; store overrides read directly.
    """
    global _stock_aggregator

    if _stock_aggregator is not None and ledger_store is None and material_store is None:
        return _stock_aggregator

    from workshop.infrastructure.storage.sqlite import (
        get_ledger_store,
        get_material_store,
        get_unit_of_work,
    )

    overridden = ledger_store is not None or material_store is not None
    aggregator = StockAggregator(
        ledger_store=ledger_store or await get_ledger_store(),
        material_store=material_store or await get_material_store(),
        drift_tolerance=get_settings().ledger.drift_tolerance,
        unit_of_work=None if overridden else await get_unit_of_work(),
    )

    if not overridden:
        _stock_aggregator = aggregator

    return aggregator


async def get_purchase_state_machine(
    unit_of_work: "IUnitOfWork | None" = None,
    movement_service: MovementService | None = None,
    purchase_store: "IPurchaseStore | None" = None,
    ledger_store: "ILedgerStore | None" = None,
) -> PurchaseReceiptStateMachine:
    """
    Get or create PurchaseReceiptStateMachine instance.

    Shares the movement service singleton so purchase receipts and
    manual movements go through the same transactional boundary.
    """
    global _purchase_state_machine

    overridden = any(
        dep is not None for dep in (unit_of_work, movement_service, purchase_store, ledger_store)
    )
    if _purchase_state_machine is not None and not overridden:
        return _purchase_state_machine

    from workshop.infrastructure.storage.sqlite import (
        get_ledger_store,
        get_purchase_store,
        get_unit_of_work,
    )

    uow = unit_of_work or await get_unit_of_work()
    machine = PurchaseReceiptStateMachine(
        unit_of_work=uow,
        movement_service=movement_service or await get_movement_service(unit_of_work),
        purchase_store=purchase_store or await get_purchase_store(),
        ledger_store=ledger_store or await get_ledger_store(),
    )

    if not overridden:
        _purchase_state_machine = machine

    return machine


def reset_services() -> None:
    """
    Reset all singleton services.

    Useful for testing or reconfiguration.
    """
    global _movement_service
    global _stock_aggregator
    global _purchase_state_machine

    _movement_service = None
    _stock_aggregator = None
    _purchase_state_machine = None


__all__ = [
    "get_movement_service",
    "get_stock_aggregator",
    "get_purchase_state_machine",
    "reset_services",
]
