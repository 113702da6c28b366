"""Purchase order endpoints with receipt automation."""

from fastapi import APIRouter, Depends, Query, status

from workshop.api.dependencies import (
    get_create_purchase_use_case,
    get_delete_purchase_use_case,
    get_purch_store,
    get_sync_purchases_use_case,
    get_update_purchase_use_case,
)
from workshop.application.dto.requests import (
    CreatePurchaseRequest,
    PurchaseStatusRequest,
    UpdatePurchaseRequest,
)
from workshop.application.dto.responses import (
    ErrorResponse,
    PurchaseListResponse,
    PurchaseResponse,
    PurchaseTransitionResponse,
    ReceiptStatsResponse,
    SyncResultResponse,
)
from workshop.application.use_cases import (
    CreatePurchaseUseCase,
    DeletePurchaseUseCase,
    SyncPurchaseReceiptsUseCase,
    UpdatePurchaseUseCase,
)
from workshop.core.entities.purchase import PurchaseStatus
from workshop.core.exceptions import PurchaseNotFoundError
from workshop.core.interfaces import IPurchaseStore

router = APIRouter(prefix="/api/purchases", tags=["purchases"])

_WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=PurchaseTransitionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_WRITE_ERRORS,
)
async def create_purchase(
    request: CreatePurchaseRequest,
    use_case: CreatePurchaseUseCase = Depends(get_create_purchase_use_case),
) -> PurchaseTransitionResponse:
    """Create a purchase. Status ``received`` books the stock immediately."""
    result = await use_case.execute(request)
    return use_case.to_response(result)


@router.get("", response_model=PurchaseListResponse)
async def list_purchases(
    material_id: int | None = None,
    status_filter: PurchaseStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    store: IPurchaseStore = Depends(get_purch_store),
) -> PurchaseListResponse:
    purchases = await store.list_purchases(
        material_id=material_id, status=status_filter, limit=limit, offset=offset
    )
    return PurchaseListResponse(
        purchases=[PurchaseResponse.from_entity(p) for p in purchases],
        total=len(purchases),
        limit=limit,
        offset=offset,
        has_more=len(purchases) == limit,
    )


@router.get("/stats", response_model=ReceiptStatsResponse)
async def receipt_stats(
    use_case: SyncPurchaseReceiptsUseCase = Depends(get_sync_purchases_use_case),
) -> ReceiptStatsResponse:
    """Received purchases versus their ledger movements."""
    stats = await use_case.stats()
    return use_case.stats_response(stats)


@router.post("/sync", response_model=SyncResultResponse)
async def sync_receipts(
    use_case: SyncPurchaseReceiptsUseCase = Depends(get_sync_purchases_use_case),
) -> SyncResultResponse:
    """Create missing movements for received purchases. Safe to repeat."""
    result = await use_case.execute()
    return use_case.to_response(result)


@router.get(
    "/{purchase_id}",
    response_model=PurchaseResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_purchase(
    purchase_id: int,
    store: IPurchaseStore = Depends(get_purch_store),
) -> PurchaseResponse:
    purchase = await store.get_purchase(purchase_id)
    if purchase is None:
        raise PurchaseNotFoundError(purchase_id)
    return PurchaseResponse.from_entity(purchase)


@router.patch(
    "/{purchase_id}",
    response_model=PurchaseTransitionResponse,
    responses=_WRITE_ERRORS,
)
async def update_purchase(
    purchase_id: int,
    request: UpdatePurchaseRequest,
    use_case: UpdatePurchaseUseCase = Depends(get_update_purchase_use_case),
) -> PurchaseTransitionResponse:
    """
    Edit a purchase.

    Editing material, quantity or price of a received purchase replaces
    its ledger movement atomically.
    """
    result = await use_case.execute(purchase_id, request)
    return use_case.to_response(result)


@router.put(
    "/{purchase_id}/status",
    response_model=PurchaseTransitionResponse,
    responses=_WRITE_ERRORS,
)
async def change_status(
    purchase_id: int,
    request: PurchaseStatusRequest,
    use_case: UpdatePurchaseUseCase = Depends(get_update_purchase_use_case),
) -> PurchaseTransitionResponse:
    """Move a purchase to another status, applying or reversing its receipt."""
    result = await use_case.execute(purchase_id, request)
    return use_case.to_response(result)


@router.delete(
    "/{purchase_id}",
    response_model=PurchaseResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_purchase(
    purchase_id: int,
    use_case: DeletePurchaseUseCase = Depends(get_delete_purchase_use_case),
) -> PurchaseResponse:
    """Soft-delete a purchase that never touched the ledger."""
    purchase = await use_case.execute(purchase_id)
    return use_case.to_response(purchase)
