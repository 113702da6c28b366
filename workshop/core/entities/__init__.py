"""Domain entities."""

from workshop.core.entities.ledger import (
    BalancePoint,
    DriftReport,
    MovementResult,
    MovementSummaryRow,
    StockBalance,
)
from workshop.core.entities.material import Material
from workshop.core.entities.movement import (
    MovementFilter,
    MovementRecord,
    MovementSource,
    MovementType,
    money,
)
from workshop.core.entities.purchase import PurchaseOrder, PurchaseStatus

__all__ = [
    # Material
    "Material",
    # Movements
    "MovementRecord",
    "MovementType",
    "MovementSource",
    "MovementFilter",
    "money",
    # Purchases
    "PurchaseOrder",
    "PurchaseStatus",
    # Ledger read models
    "StockBalance",
    "BalancePoint",
    "DriftReport",
    "MovementSummaryRow",
    "MovementResult",
]
