"""Abstract interface for material storage."""

from abc import ABC, abstractmethod

from workshop.core.entities.material import Material


class IMaterialStore(ABC):
    """Interface for material persistence (read side and creation)."""

    @abstractmethod
    async def create_material(self, material: Material) -> Material:
        """Create a new material. Its stock starts at zero."""
        pass

    @abstractmethod
    async def get_material(self, material_id: int) -> Material | None:
        """Get material by ID."""
        pass

    @abstractmethod
    async def list_materials(
        self, limit: int = 100, offset: int = 0, include_inactive: bool = False
    ) -> list[Material]:
        """List materials with pagination; inactive ones only when asked."""
        pass

    @abstractmethod
    async def list_below_safety_stock(
        self, limit: int = 100, offset: int = 0
    ) -> list[Material]:
        """List materials whose cached stock is at or below their safety stock."""
        pass
