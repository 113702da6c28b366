"""Sync Purchase Receipts Use Case: back-fill movements for received purchases."""

from workshop.application.dto.responses import ReceiptStatsResponse, SyncResultResponse
from workshop.config import get_settings
from workshop.core.services import PurchaseReceiptStateMachine, ReceiptStats, SyncResult


class SyncPurchaseReceiptsUseCase:
    """Create missing ledger movements for RECEIVED purchases."""

    def __init__(self, state_machine: PurchaseReceiptStateMachine | None = None):
        self._state_machine = state_machine

    async def _get_state_machine(self) -> PurchaseReceiptStateMachine:
        if self._state_machine is None:
            from workshop.application.services import get_purchase_state_machine

            self._state_machine = await get_purchase_state_machine()
        return self._state_machine

    async def execute(self) -> SyncResult:
        machine = await self._get_state_machine()
        return await machine.sync_received_purchases(page_size=get_settings().ledger.scan_page_size)

    async def stats(self) -> ReceiptStats:
        machine = await self._get_state_machine()
        return await machine.receipt_stats()

    def to_response(self, result: SyncResult) -> SyncResultResponse:
        return SyncResultResponse(
            total=result.total,
            created=result.created,
            skipped=result.skipped,
            errors=result.errors,
        )

    def stats_response(self, stats: ReceiptStats) -> ReceiptStatsResponse:
        return ReceiptStatsResponse(
            total_received=stats.total_received,
            purchase_movements=stats.purchase_movements,
            sync_percentage=stats.sync_percentage,
        )
