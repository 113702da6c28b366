"""
Transactional boundary for ledger writes.

Every stock-affecting change runs inside one ``ILedgerTransaction``:
the material row is re-read under the write lock, the movement is
appended or deactivated, and the cached stock is updated. Either all of
it commits or none of it does.

Reads that compare two tables (cached stock against the ledger) go
through an ``ILedgerSnapshot`` so both come from the same committed state.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from decimal import Decimal

from workshop.core.entities.material import Material
from workshop.core.entities.movement import MovementRecord
from workshop.core.entities.purchase import PurchaseOrder


class ILedgerSnapshot(ABC):
    """Read-only view in which every read sees the same committed state."""

    @abstractmethod
    async def get_material(self, material_id: int) -> Material | None:
        pass

    @abstractmethod
    async def list_active_movements(self, material_id: int) -> list[MovementRecord]:
        """Active movements for a material, oldest first."""
        pass


class ILedgerTransaction(ABC):
    """Operations available inside one ledger transaction."""

    @abstractmethod
    async def lock_material(self, material_id: int) -> Material | None:
        """Re-read a material with its row held until commit."""
        pass

    @abstractmethod
    async def set_qty_on_hand(self, material_id: int, qty_on_hand: Decimal) -> None:
        """Write the cached stock figure."""
        pass

    @abstractmethod
    async def append_movement(self, movement: MovementRecord) -> MovementRecord:
        """Persist a new movement and return it with its ID."""
        pass

    @abstractmethod
    async def deactivate_movement(self, movement_id: int) -> MovementRecord:
        """Flip a movement's active flag off and return the updated record."""
        pass

    @abstractmethod
    async def get_movement(self, movement_id: int) -> MovementRecord | None:
        pass

    @abstractmethod
    async def find_active_by_purchase(self, purchase_id: int) -> MovementRecord | None:
        pass

    @abstractmethod
    async def list_active_movements(self, material_id: int) -> list[MovementRecord]:
        """Active movements for a material, oldest first."""
        pass

    @abstractmethod
    async def count_purchase_movements(self, purchase_id: int) -> int:
        pass

    @abstractmethod
    async def get_purchase(self, purchase_id: int) -> PurchaseOrder | None:
        pass

    @abstractmethod
    async def save_purchase(self, purchase: PurchaseOrder) -> PurchaseOrder:
        """Insert (when ``id`` is None) or update a purchase."""
        pass

    @abstractmethod
    async def link_purchase_movement(
        self, purchase_id: int, movement_id: int | None
    ) -> None:
        """Point a purchase at its active movement (or clear the link)."""
        pass


class IUnitOfWork(ABC):
    """Factory for ledger transactions."""

    @abstractmethod
    def begin(self) -> AbstractAsyncContextManager[ILedgerTransaction]:
        """
        Open a transaction.

        Usage:
            async with uow.begin() as tx:
                material = await tx.lock_material(material_id)
        """
        pass

    @abstractmethod
    def snapshot(self) -> AbstractAsyncContextManager[ILedgerSnapshot]:
        """Open a read-only view; writes committed meanwhile are not seen."""
        pass
