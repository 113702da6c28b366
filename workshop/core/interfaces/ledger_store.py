"""Abstract interface for the movement ledger."""

from abc import ABC, abstractmethod

from workshop.core.entities.ledger import MovementSummaryRow
from workshop.core.entities.movement import MovementFilter, MovementRecord


class ILedgerStore(ABC):
    """
    Read access to movement records.

    Writes (append, deactivate) only happen through
    ``ILedgerTransaction`` so they share a transaction with the
    cached stock update.
    """

    @abstractmethod
    async def get_movement(self, movement_id: int) -> MovementRecord | None:
        """Get movement by ID."""
        pass

    @abstractmethod
    async def list_for_material(
        self, material_id: int, filters: MovementFilter | None = None
    ) -> list[MovementRecord]:
        """List movements for a material, newest first unless filters say otherwise."""
        pass

    @abstractmethod
    async def list_movements(self, filters: MovementFilter) -> list[MovementRecord]:
        """List movements across materials."""
        pass

    @abstractmethod
    async def list_active(self, material_id: int) -> list[MovementRecord]:
        """All active movements for a material in chronological order."""
        pass

    @abstractmethod
    async def find_by_purchase(self, purchase_id: int) -> MovementRecord | None:
        """The single active movement tied to a purchase, or None."""
        pass

    @abstractmethod
    async def count_for_purchase(self, purchase_id: int) -> int:
        """Count movements (active or not) that reference a purchase."""
        pass

    @abstractmethod
    async def summarize(self, filters: MovementFilter) -> list[MovementSummaryRow]:
        """Active movement totals grouped by type and source."""
        pass
