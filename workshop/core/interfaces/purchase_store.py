"""Abstract interface for purchase order storage."""

from abc import ABC, abstractmethod

from workshop.core.entities.purchase import PurchaseOrder, PurchaseStatus


class IPurchaseStore(ABC):
    """Read access to purchase orders. Writes go through ``ILedgerTransaction``."""

    @abstractmethod
    async def get_purchase(self, purchase_id: int) -> PurchaseOrder | None:
        """Get a non-deleted purchase by ID."""
        pass

    @abstractmethod
    async def list_purchases(
        self,
        material_id: int | None = None,
        status: PurchaseStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PurchaseOrder]:
        """List non-deleted purchases, newest purchase date first."""
        pass

    @abstractmethod
    async def count_by_status(self, status: PurchaseStatus) -> int:
        """Count non-deleted purchases in a status."""
        pass
