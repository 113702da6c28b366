"""Stock movement endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from workshop.api.dependencies import (
    get_aggregator,
    get_delete_movement_use_case,
    get_ledger,
    get_record_movement_use_case,
)
from workshop.application.dto.requests import RecordMovementRequest
from workshop.application.dto.responses import (
    ErrorResponse,
    MovementListResponse,
    MovementResponse,
    MovementResultResponse,
    MovementSummaryResponse,
)
from workshop.application.use_cases import DeleteMovementUseCase, RecordMovementUseCase
from workshop.core.entities.movement import MovementFilter, MovementSource, MovementType
from workshop.core.exceptions import MovementNotFoundError
from workshop.core.interfaces import ILedgerStore
from workshop.core.services import StockAggregator

router = APIRouter(prefix="/api/movements", tags=["movements"])


@router.post(
    "",
    response_model=MovementResultResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def record_movement(
    request: RecordMovementRequest,
    use_case: RecordMovementUseCase = Depends(get_record_movement_use_case),
) -> MovementResultResponse:
    """Record a manual in, out or adjust movement."""
    result = await use_case.execute(request)
    return use_case.to_response(result)


@router.get("", response_model=MovementListResponse)
async def list_movements(
    material_id: int | None = None,
    movement_type: MovementType | None = None,
    source: MovementSource | None = None,
    order_id: int | None = None,
    purchase_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    active_only: bool = False,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    ledger: ILedgerStore = Depends(get_ledger),
) -> MovementListResponse:
    """Movements across all materials, newest first."""
    movements = await ledger.list_movements(
        MovementFilter(
            material_id=material_id,
            movement_type=movement_type,
            source=source,
            order_id=order_id,
            purchase_id=purchase_id,
            start_date=start_date,
            end_date=end_date,
            active_only=active_only,
            limit=limit,
            offset=offset,
        )
    )
    return MovementListResponse(
        movements=[MovementResponse.from_entity(m) for m in movements],
        total=len(movements),
        limit=limit,
        offset=offset,
        has_more=len(movements) == limit,
    )


@router.get("/summary", response_model=MovementSummaryResponse)
async def movement_summary(
    material_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    aggregator: StockAggregator = Depends(get_aggregator),
) -> MovementSummaryResponse:
    """Active movement totals grouped by type and source."""
    rows = await aggregator.summarize(
        MovementFilter(material_id=material_id, start_date=start_date, end_date=end_date)
    )
    return MovementSummaryResponse.from_rows(rows)


@router.get(
    "/{movement_id}",
    response_model=MovementResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_movement(
    movement_id: int,
    ledger: ILedgerStore = Depends(get_ledger),
) -> MovementResponse:
    movement = await ledger.get_movement(movement_id)
    if movement is None:
        raise MovementNotFoundError(movement_id)
    return MovementResponse.from_entity(movement)


@router.delete(
    "/{movement_id}",
    response_model=MovementResultResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_movement(
    movement_id: int,
    use_case: DeleteMovementUseCase = Depends(get_delete_movement_use_case),
) -> MovementResultResponse:
    """
    Reverse a manual movement.

    The record stays in the ledger as inactive; stock is compensated.
    Purchase, order and adjustment movements are refused.
    """
    result = await use_case.execute(movement_id)
    return use_case.to_response(result)
