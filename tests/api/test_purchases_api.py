"""API tests for purchase endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from workshop.api.dependencies import (
    get_create_purchase_use_case,
    get_delete_purchase_use_case,
    get_purch_store,
    get_sync_purchases_use_case,
    get_update_purchase_use_case,
)
from workshop.api.main import app
from workshop.application.use_cases import (
    CreatePurchaseUseCase,
    DeletePurchaseUseCase,
    SyncPurchaseReceiptsUseCase,
    UpdatePurchaseUseCase,
)
from workshop.core.entities import MovementResult, MovementSource, MovementType, PurchaseStatus
from workshop.core.exceptions import (
    ImmutabilityError,
    InsufficientStockError,
    InvalidTransitionError,
    PurchaseNotFoundError,
)
from workshop.core.services import (
    PurchaseReceiptStateMachine,
    PurchaseTransitionResult,
    ReceiptEffect,
    ReceiptStats,
    SyncResult,
)

OVERRIDES = (
    get_purch_store,
    get_create_purchase_use_case,
    get_update_purchase_use_case,
    get_delete_purchase_use_case,
    get_sync_purchases_use_case,
)


@pytest.fixture
def received_result(sample_purchase, movement_factory):
    purchase = sample_purchase.model_copy(
        update={"status": PurchaseStatus.RECEIVED, "movement_id": 21}
    )
    return PurchaseTransitionResult(
        purchase=purchase,
        previous_status=PurchaseStatus.PENDING,
        effect=ReceiptEffect.APPLY,
        movement=MovementResult(
            movement=movement_factory(
                21, MovementType.IN, "20", "120", source=MovementSource.PURCHASE, purchase_id=7
            ),
            qty_on_hand=Decimal("120"),
        ),
    )


@pytest.fixture
def mock_machine(sample_purchase, received_result):
    machine = AsyncMock(spec=PurchaseReceiptStateMachine)
    machine.create_purchase.side_effect = lambda p: PurchaseTransitionResult(
        purchase=p.model_copy(update={"id": 8})
    )
    machine.transition.return_value = received_result
    machine.update_purchase.return_value = received_result
    machine.delete_purchase.return_value = sample_purchase.model_copy(update={"is_deleted": True})
    machine.sync_received_purchases.return_value = SyncResult(total=3, created=1, skipped=2)
    machine.receipt_stats.return_value = ReceiptStats(total_received=4, purchase_movements=3)
    return machine


@pytest.fixture
def mock_purchase_store(sample_purchase):
    store = AsyncMock()
    store.get_purchase.return_value = sample_purchase
    store.list_purchases.return_value = [sample_purchase]
    return store


@pytest.fixture
async def po_client(mock_machine, mock_purchase_store):
    """Async client with purchase dependencies overridden."""
    app.dependency_overrides[get_purch_store] = lambda: mock_purchase_store
    app.dependency_overrides[get_create_purchase_use_case] = lambda: CreatePurchaseUseCase(
        state_machine=mock_machine
    )
    app.dependency_overrides[get_update_purchase_use_case] = lambda: UpdatePurchaseUseCase(
        state_machine=mock_machine
    )
    app.dependency_overrides[get_delete_purchase_use_case] = lambda: DeletePurchaseUseCase(
        state_machine=mock_machine
    )
    app.dependency_overrides[get_sync_purchases_use_case] = lambda: SyncPurchaseReceiptsUseCase(
        state_machine=mock_machine
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    for dep in OVERRIDES:
        app.dependency_overrides.pop(dep, None)


class TestCreatePurchase:
    async def test_create_pending(self, po_client: AsyncClient, mock_machine):
        response = await po_client.post(
            "/api/purchases",
            json={"material_id": 1, "quantity": "20", "unit": "sheet", "supplier": "Baja Steel"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["purchase"]["id"] == 8
        assert data["purchase"]["reference_number"] == "PO-000008"
        assert data["effect"] == "none"
        assert data["movement"] is None
        created = mock_machine.create_purchase.call_args.args[0]
        assert created.status == PurchaseStatus.PENDING

    async def test_zero_quantity(self, po_client: AsyncClient):
        response = await po_client.post("/api/purchases", json={"material_id": 1, "quantity": "0"})
        assert response.status_code == 422


class TestStatusChange:
    async def test_receive(self, po_client: AsyncClient, mock_machine):
        response = await po_client.put("/api/purchases/7/status", json={"status": "received"})

        assert response.status_code == 200
        data = response.json()
        assert data["effect"] == "apply"
        assert data["previous_status"] == "pending"
        assert data["movement"]["movement"]["source"] == "purchase"
        mock_machine.transition.assert_awaited_once_with(7, PurchaseStatus.RECEIVED)

    async def test_cancel_consumed_receipt(self, po_client: AsyncClient, mock_machine):
        mock_machine.transition.side_effect = InsufficientStockError(1, Decimal("20"), Decimal("5"))
        response = await po_client.put("/api/purchases/7/status", json={"status": "cancelled"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "INSUFFICIENT_STOCK"

    async def test_leave_cancelled(self, po_client: AsyncClient, mock_machine):
        mock_machine.transition.side_effect = InvalidTransitionError(7, "cancelled", "received")
        response = await po_client.put("/api/purchases/7/status", json={"status": "received"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TRANSITION"

    async def test_unknown_status(self, po_client: AsyncClient):
        response = await po_client.put("/api/purchases/7/status", json={"status": "lost"})
        assert response.status_code == 422


class TestEditPurchase:
    async def test_sends_only_set_fields(self, po_client: AsyncClient, mock_machine):
        response = await po_client.patch("/api/purchases/7", json={"received_quantity": "18"})

        assert response.status_code == 200
        mock_machine.update_purchase.assert_awaited_once_with(
            7, {"received_quantity": Decimal("18")}
        )

    async def test_empty_body(self, po_client: AsyncClient):
        response = await po_client.patch("/api/purchases/7", json={})
        assert response.status_code == 400

    async def test_null_quantity(self, po_client: AsyncClient):
        response = await po_client.patch("/api/purchases/7", json={"quantity": None})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "quantity"

    async def test_missing(self, po_client: AsyncClient, mock_machine):
        mock_machine.update_purchase.side_effect = PurchaseNotFoundError(70)
        response = await po_client.patch("/api/purchases/70", json={"notes": "late"})
        assert response.status_code == 404


class TestDeletePurchase:
    async def test_delete(self, po_client: AsyncClient):
        response = await po_client.delete("/api/purchases/7")
        assert response.status_code == 200
        assert response.json()["id"] == 7

    async def test_referenced_by_movements(self, po_client: AsyncClient, mock_machine):
        mock_machine.delete_purchase.side_effect = ImmutabilityError(
            "Purchase 7 is referenced by 2 ledger movement(s)",
            code="PURCHASE_HAS_MOVEMENTS",
            purchase_id=7,
            movement_count=2,
        )
        response = await po_client.delete("/api/purchases/7")

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "PURCHASE_HAS_MOVEMENTS"
        assert body["details"]["movement_count"] == 2


class TestSyncAndStats:
    async def test_sync(self, po_client: AsyncClient):
        response = await po_client.post("/api/purchases/sync")
        assert response.status_code == 200
        assert response.json() == {"total": 3, "created": 1, "skipped": 2, "errors": []}

    async def test_stats(self, po_client: AsyncClient):
        response = await po_client.get("/api/purchases/stats")

        assert response.status_code == 200
        assert response.json()["sync_percentage"] == 75.0

    async def test_get_missing(self, po_client: AsyncClient, mock_purchase_store):
        mock_purchase_store.get_purchase.return_value = None
        response = await po_client.get("/api/purchases/9")
        assert response.status_code == 404
        assert response.json()["error_code"] == "PURCHASE_NOT_FOUND"

    async def test_list_by_status(self, po_client: AsyncClient, mock_purchase_store):
        response = await po_client.get("/api/purchases", params={"status": "pending"})

        assert response.status_code == 200
        assert mock_purchase_store.list_purchases.call_args.kwargs["status"] == PurchaseStatus.PENDING
