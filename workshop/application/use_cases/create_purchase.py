"""Create Purchase Use Case."""

from datetime import date

from workshop.application.dto.requests import CreatePurchaseRequest
from workshop.application.dto.responses import (
    MovementResultResponse,
    PurchaseResponse,
    PurchaseTransitionResponse,
)
from workshop.config import get_logger
from workshop.core.entities.purchase import PurchaseOrder
from workshop.core.services import PurchaseReceiptStateMachine, PurchaseTransitionResult

logger = get_logger(__name__)


def transition_response(result: PurchaseTransitionResult) -> PurchaseTransitionResponse:
    """Shared purchase result conversion."""
    return PurchaseTransitionResponse(
        purchase=PurchaseResponse.from_entity(result.purchase),
        previous_status=result.previous_status.value if result.previous_status else None,
        effect=result.effect.value,
        movement=MovementResultResponse.from_entity(result.movement) if result.movement else None,
    )


class CreatePurchaseUseCase:
    """Create a purchase; one created as received books its stock at once."""

    def __init__(self, state_machine: PurchaseReceiptStateMachine | None = None):
        self._state_machine = state_machine

    async def _get_state_machine(self) -> PurchaseReceiptStateMachine:
        if self._state_machine is None:
            from workshop.application.services import get_purchase_state_machine

            self._state_machine = await get_purchase_state_machine()
        return self._state_machine

    async def execute(self, request: CreatePurchaseRequest) -> PurchaseTransitionResult:
        """Execute create purchase use case."""
        logger.info(
            "create_purchase_started",
            material_id=request.material_id,
            status=request.status.value,
        )
        purchase = PurchaseOrder(
            material_id=request.material_id,
            supplier=request.supplier,
            quantity=request.quantity,
            received_quantity=request.received_quantity,
            unit=request.unit,
            unit_price=request.unit_price,
            status=request.status,
            purchased_date=request.purchased_date or date.today(),
            delivery_date=request.delivery_date,
            pic_name=request.pic_name,
            notes=request.notes,
        )
        machine = await self._get_state_machine()
        return await machine.create_purchase(purchase)

    def to_response(self, result: PurchaseTransitionResult) -> PurchaseTransitionResponse:
        return transition_response(result)
