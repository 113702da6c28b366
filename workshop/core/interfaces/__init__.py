"""Core interfaces (ports) for dependency injection."""

from workshop.core.interfaces.ledger_store import ILedgerStore
from workshop.core.interfaces.material_store import IMaterialStore
from workshop.core.interfaces.purchase_store import IPurchaseStore
from workshop.core.interfaces.unit_of_work import (
    ILedgerSnapshot,
    ILedgerTransaction,
    IUnitOfWork,
)

__all__ = [
    # Storage interfaces
    "ILedgerStore",
    "IMaterialStore",
    "IPurchaseStore",
    # Transactions
    "ILedgerSnapshot",
    "ILedgerTransaction",
    "IUnitOfWork",
]
