"""Delete Movement Use Case: deactivate a manual movement and compensate stock."""

from workshop.application.dto.responses import MovementResultResponse
from workshop.config import get_logger
from workshop.core.entities.ledger import MovementResult
from workshop.core.services import MovementService

logger = get_logger(__name__)


class DeleteMovementUseCase:
    """Soft-delete a manual IN/OUT movement."""

    def __init__(self, movement_service: MovementService | None = None):
        self._movement_service = movement_service

    async def _get_movement_service(self) -> MovementService:
        if self._movement_service is None:
            from workshop.application.services import get_movement_service

            self._movement_service = await get_movement_service()
        return self._movement_service

    async def execute(self, movement_id: int) -> MovementResult:
        logger.info("delete_movement_started", movement_id=movement_id)
        service = await self._get_movement_service()
        return await service.delete_manual_movement(movement_id)

    def to_response(self, result: MovementResult) -> MovementResultResponse:
        return MovementResultResponse.from_entity(result)
