"""Record Movement Use Case: manual IN, OUT or ADJUST through the Movement Service."""

from workshop.application.dto.requests import RecordMovementRequest
from workshop.application.dto.responses import MovementResultResponse
from workshop.config import get_logger
from workshop.core.entities.ledger import MovementResult
from workshop.core.services import MovementService

logger = get_logger(__name__)


class RecordMovementUseCase:
    """Record a manual stock movement."""

    def __init__(self, movement_service: MovementService | None = None):
        self._movement_service = movement_service

    async def _get_movement_service(self) -> MovementService:
        if self._movement_service is None:
            from workshop.application.services import get_movement_service

            self._movement_service = await get_movement_service()
        return self._movement_service

    async def execute(self, request: RecordMovementRequest) -> MovementResult:
        """Execute record movement use case."""
        logger.info(
            "record_movement_started",
            material_id=request.material_id,
            type=request.movement_type.value,
            quantity=str(request.quantity),
        )

        service = await self._get_movement_service()
        return await service.record_manual_movement(
            request.material_id,
            request.movement_type,
            request.quantity,
            unit_cost=request.unit_cost,
            notes=request.notes,
            order_id=request.order_id,
            user_id=request.user_id,
            reference_number=request.reference_number,
            description=request.description,
        )

    def to_response(self, result: MovementResult) -> MovementResultResponse:
        """Convert result to API response."""
        return MovementResultResponse.from_entity(result)
