"""Tests for RecordMovementUseCase and DeleteMovementUseCase."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from workshop.application.dto.requests import RecordMovementRequest
from workshop.application.use_cases import DeleteMovementUseCase, RecordMovementUseCase
from workshop.core.entities import MovementResult, MovementType
from workshop.core.exceptions import InsufficientStockError
from workshop.core.services import MovementService


@pytest.fixture
def mock_movement_service():
    return AsyncMock(spec=MovementService)


class TestRecordMovementUseCase:
    async def test_forwards_request(self, mock_movement_service, movement_factory):
        mock_movement_service.record_manual_movement.return_value = MovementResult(
            movement=movement_factory(1, MovementType.IN, "100", "100"),
            qty_on_hand=Decimal("100"),
        )
        use_case = RecordMovementUseCase(movement_service=mock_movement_service)
        request = RecordMovementRequest(
            material_id=1,
            movement_type=MovementType.IN,
            quantity=Decimal("100"),
            unit_cost=Decimal("4.20"),
            reference_number="GRN-88",
        )

        result = await use_case.execute(request)

        assert result.qty_on_hand == Decimal("100")
        call = mock_movement_service.record_manual_movement.await_args
        assert call.args == (1, MovementType.IN, Decimal("100"))
        assert call.kwargs["unit_cost"] == Decimal("4.20")
        assert call.kwargs["reference_number"] == "GRN-88"

    async def test_errors_propagate(self, mock_movement_service):
        mock_movement_service.record_manual_movement.side_effect = InsufficientStockError(
            1, requested=Decimal("10"), available=Decimal("0")
        )
        use_case = RecordMovementUseCase(movement_service=mock_movement_service)
        request = RecordMovementRequest(material_id=1, movement_type=MovementType.OUT, quantity=Decimal("10"))

        with pytest.raises(InsufficientStockError):
            await use_case.execute(request)

    def test_to_response(self, movement_factory):
        result = MovementResult(
            movement=movement_factory(4, MovementType.OUT, "30", "70"),
            qty_on_hand=Decimal("70"),
        )
        response = RecordMovementUseCase().to_response(result)
        assert response.movement.id == 4
        assert response.movement.movement_type == "out"
        assert response.qty_on_hand == Decimal("70")


class TestDeleteMovementUseCase:
    async def test_deletes_through_service(self, mock_movement_service, movement_factory):
        mock_movement_service.delete_manual_movement.return_value = MovementResult(
            movement=movement_factory(4, MovementType.OUT, "30", "70", is_active=False),
            qty_on_hand=Decimal("100"),
        )
        use_case = DeleteMovementUseCase(movement_service=mock_movement_service)

        result = await use_case.execute(4)

        mock_movement_service.delete_manual_movement.assert_awaited_once_with(4)
        assert use_case.to_response(result).movement.is_active is False
