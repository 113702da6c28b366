"""Create Material Use Case."""

from workshop.application.dto.requests import CreateMaterialRequest
from workshop.application.dto.responses import MaterialResponse
from workshop.config import get_settings
from workshop.core.entities.material import Material
from workshop.core.interfaces.material_store import IMaterialStore


class CreateMaterialUseCase:
    """
    Register a new material with zero stock.

    Opening stock is booked afterwards with an ADJUST movement so that
    the ledger explains every unit on hand.
    """

    def __init__(self, material_store: IMaterialStore | None = None):
        self._material_store = material_store

    async def _get_material_store(self) -> IMaterialStore:
        if self._material_store is None:
            from workshop.infrastructure.storage.sqlite import get_material_store

            self._material_store = await get_material_store()
        return self._material_store

    async def execute(self, request: CreateMaterialRequest) -> Material:
        store = await self._get_material_store()
        material = Material(
            code=request.code,
            name=request.name,
            unit=request.unit or get_settings().ledger.default_unit,
            safety_stock=request.safety_stock,
            description=request.description,
        )
        return await store.create_material(material)

    def to_response(self, material: Material) -> MaterialResponse:
        return MaterialResponse.from_entity(material)
