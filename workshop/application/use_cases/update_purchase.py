"""Update Purchase Use Case: field edits and status transitions."""

from workshop.application.dto.requests import PurchaseStatusRequest, UpdatePurchaseRequest
from workshop.application.dto.responses import PurchaseResponse, PurchaseTransitionResponse
from workshop.application.use_cases.create_purchase import transition_response
from workshop.config import get_logger
from workshop.core.entities.purchase import PurchaseOrder
from workshop.core.exceptions import ValidationError
from workshop.core.services import PurchaseReceiptStateMachine, PurchaseTransitionResult

logger = get_logger(__name__)

# Columns that may be cleared by sending null
NULLABLE_FIELDS = {"supplier", "received_quantity", "unit_price", "delivery_date", "pic_name", "notes"}


class UpdatePurchaseUseCase:
    """Edit a purchase and/or move it to another status."""

    def __init__(self, state_machine: PurchaseReceiptStateMachine | None = None):
        self._state_machine = state_machine

    async def _get_state_machine(self) -> PurchaseReceiptStateMachine:
        if self._state_machine is None:
            from workshop.application.services import get_purchase_state_machine

            self._state_machine = await get_purchase_state_machine()
        return self._state_machine

    async def execute(
        self,
        purchase_id: int,
        request: UpdatePurchaseRequest | PurchaseStatusRequest,
    ) -> PurchaseTransitionResult:
        """Execute update purchase use case."""
        machine = await self._get_state_machine()

        if isinstance(request, PurchaseStatusRequest):
            logger.info("purchase_transition_requested", purchase_id=purchase_id, status=request.status.value)
            return await machine.transition(purchase_id, request.status)

        changes = request.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None and field not in NULLABLE_FIELDS:
                raise ValidationError(field, "cannot be null")
        if not changes:
            raise ValidationError("body", "no fields to update")

        logger.info("purchase_update_requested", purchase_id=purchase_id, fields=sorted(changes))
        return await machine.update_purchase(purchase_id, changes)

    def to_response(self, result: PurchaseTransitionResult) -> PurchaseTransitionResponse:
        return transition_response(result)


class DeletePurchaseUseCase:
    """Soft-delete a purchase that never touched the ledger."""

    def __init__(self, state_machine: PurchaseReceiptStateMachine | None = None):
        self._state_machine = state_machine

    async def _get_state_machine(self) -> PurchaseReceiptStateMachine:
        if self._state_machine is None:
            from workshop.application.services import get_purchase_state_machine

            self._state_machine = await get_purchase_state_machine()
        return self._state_machine

    async def execute(self, purchase_id: int) -> PurchaseOrder:
        machine = await self._get_state_machine()
        return await machine.delete_purchase(purchase_id)

    def to_response(self, purchase: PurchaseOrder) -> PurchaseResponse:
        return PurchaseResponse.from_entity(purchase)
