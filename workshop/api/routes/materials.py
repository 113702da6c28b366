"""Material and stock endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from workshop.api.dependencies import (
    get_aggregator,
    get_check_consistency_use_case,
    get_create_material_use_case,
    get_ledger,
    get_mat_store,
)
from workshop.application.dto.requests import CreateMaterialRequest
from workshop.application.dto.responses import (
    ConsistencyReportResponse,
    DriftReportResponse,
    ErrorResponse,
    MaterialListResponse,
    MaterialResponse,
    MovementListResponse,
    MovementResponse,
    RunningBalanceResponse,
    StockBalanceResponse,
)
from workshop.application.use_cases import CheckStockConsistencyUseCase, CreateMaterialUseCase
from workshop.core.entities.movement import MovementFilter, MovementSource, MovementType
from workshop.core.exceptions import MaterialNotFoundError
from workshop.core.interfaces import ILedgerStore, IMaterialStore
from workshop.core.services import StockAggregator

router = APIRouter(prefix="/api/materials", tags=["materials"])


@router.post(
    "",
    response_model=MaterialResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_material(
    request: CreateMaterialRequest,
    use_case: CreateMaterialUseCase = Depends(get_create_material_use_case),
) -> MaterialResponse:
    """Register a material. Book opening stock with an adjust movement."""
    material = await use_case.execute(request)
    return use_case.to_response(material)


@router.get("", response_model=MaterialListResponse)
async def list_materials(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    store: IMaterialStore = Depends(get_mat_store),
) -> MaterialListResponse:
    """List active materials with their cached stock."""
    materials = await store.list_materials(limit=limit, offset=offset)
    return MaterialListResponse(
        materials=[MaterialResponse.from_entity(m) for m in materials],
        total=len(materials),
        limit=limit,
        offset=offset,
        has_more=len(materials) == limit,
    )


@router.get("/low-stock", response_model=list[MaterialResponse])
async def list_low_stock(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    aggregator: StockAggregator = Depends(get_aggregator),
) -> list[MaterialResponse]:
    """Materials at or below their safety stock."""
    materials = await aggregator.low_stock(limit=limit, offset=offset)
    return [MaterialResponse.from_entity(m) for m in materials]


@router.get("/consistency", response_model=ConsistencyReportResponse)
async def check_all_consistency(
    include_all: bool = Query(default=False, description="Include materials that are in sync"),
    use_case: CheckStockConsistencyUseCase = Depends(get_check_consistency_use_case),
) -> ConsistencyReportResponse:
    """Compare cached stock with the ledger for every material."""
    result = await use_case.execute()
    return use_case.to_response(result, include_all=include_all)


@router.get(
    "/{material_id}",
    response_model=MaterialResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_material(
    material_id: int,
    store: IMaterialStore = Depends(get_mat_store),
) -> MaterialResponse:
    material = await store.get_material(material_id)
    if material is None:
        raise MaterialNotFoundError(material_id)
    return MaterialResponse.from_entity(material)


@router.get(
    "/{material_id}/balance",
    response_model=StockBalanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_balance(
    material_id: int,
    aggregator: StockAggregator = Depends(get_aggregator),
) -> StockBalanceResponse:
    """Stock recomputed by replaying the ledger."""
    balance = await aggregator.compute_balance(material_id)
    return StockBalanceResponse.from_entity(balance)


@router.get(
    "/{material_id}/running-balance",
    response_model=RunningBalanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_running_balance(
    material_id: int,
    aggregator: StockAggregator = Depends(get_aggregator),
) -> RunningBalanceResponse:
    points = await aggregator.running_balance(material_id)
    return RunningBalanceResponse.from_points(material_id, points)


@router.get(
    "/{material_id}/movements",
    response_model=MovementListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_material_movements(
    material_id: int,
    movement_type: MovementType | None = None,
    source: MovementSource | None = None,
    order_id: int | None = None,
    purchase_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    active_only: bool = False,
    oldest_first: bool = False,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    store: IMaterialStore = Depends(get_mat_store),
    ledger: ILedgerStore = Depends(get_ledger),
) -> MovementListResponse:
    """Movement history for a material, newest first by default."""
    if await store.get_material(material_id) is None:
        raise MaterialNotFoundError(material_id)

    movements = await ledger.list_for_material(
        material_id,
        MovementFilter(
            movement_type=movement_type,
            source=source,
            order_id=order_id,
            purchase_id=purchase_id,
            start_date=start_date,
            end_date=end_date,
            active_only=active_only,
            newest_first=not oldest_first,
            limit=limit,
            offset=offset,
        ),
    )
    return MovementListResponse(
        movements=[MovementResponse.from_entity(m) for m in movements],
        total=len(movements),
        limit=limit,
        offset=offset,
        has_more=len(movements) == limit,
    )


@router.get(
    "/{material_id}/consistency",
    response_model=DriftReportResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def check_material_consistency(
    material_id: int,
    strict: bool = Query(default=False, description="Respond 409 when drift is found"),
    use_case: CheckStockConsistencyUseCase = Depends(get_check_consistency_use_case),
) -> DriftReportResponse:
    """Compare one material's cached stock with its ledger."""
    result = await use_case.execute(material_id, strict=strict)
    return DriftReportResponse.from_entity(result.reports[0], result.tolerance)
