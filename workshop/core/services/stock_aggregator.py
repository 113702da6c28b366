"""
Stock aggregation over the movement ledger.

The ledger is the system of record; ``Material.qty_on_hand`` is only a
cache of what ``replay`` computes here.
"""

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from decimal import Decimal

from workshop.config import get_logger
from workshop.core.entities.ledger import (
    BalancePoint,
    DriftReport,
    MovementSummaryRow,
    StockBalance,
)
from workshop.core.entities.material import Material
from workshop.core.entities.movement import MovementFilter, MovementRecord, MovementType
from workshop.core.exceptions import MaterialNotFoundError
from workshop.core.interfaces.ledger_store import ILedgerStore
from workshop.core.interfaces.material_store import IMaterialStore
from workshop.core.interfaces.unit_of_work import ILedgerSnapshot, IUnitOfWork
from workshop.core.services.consistency_guard import ConsistencyGuard

logger = get_logger(__name__)


def replay(material_id: int, movements: Iterable[MovementRecord]) -> StockBalance:
    """
    Recompute stock from movements in chronological order.

    IN adds and OUT subtracts. An ADJUST resets the running balance to
    its own ``qty_after``, so only the last adjustment matters as a
    baseline for the deltas that follow it. Inactive records are skipped.
    """
    balance = StockBalance(material_id=material_id)
    running = Decimal("0")
    for movement in movements:
        if not movement.is_active:
            continue
        balance.movement_count += 1
        if movement.movement_type == MovementType.IN:
            balance.total_in += movement.quantity
            running += movement.quantity
        elif movement.movement_type == MovementType.OUT:
            balance.total_out += movement.quantity
            running -= movement.quantity
        else:
            running = movement.qty_after
            balance.last_adjustment_id = movement.id
    balance.current_stock = running
    return balance


def running_series(movements: Iterable[MovementRecord]) -> list[BalancePoint]:
    """Running balance after each active movement, oldest first."""
    points: list[BalancePoint] = []
    running = Decimal("0")
    for movement in movements:
        if not movement.is_active:
            continue
        if movement.movement_type == MovementType.ADJUST:
            running = movement.qty_after
        else:
            running += movement.signed_delta
        points.append(
            BalancePoint(
                movement_id=movement.id or 0,
                movement_type=movement.movement_type,
                quantity=movement.quantity,
                balance=running,
                created_at=movement.created_at,
            )
        )
    return points


class _StoreView(ILedgerSnapshot):
    """Reads straight through the stores, each on its own connection."""

    def __init__(self, material_store: IMaterialStore, ledger_store: ILedgerStore):
        self._materials = material_store
        self._ledger = ledger_store

    async def get_material(self, material_id: int) -> Material | None:
        return await self._materials.get_material(material_id)

    async def list_active_movements(self, material_id: int) -> list[MovementRecord]:
        return await self._ledger.list_active(material_id)


class StockAggregator:
    """
    Derives stock figures and drift reports from the ledger.

    Read-only: it never writes the cached stock, even when it finds
    drift. Drift is reported for an operator to investigate.

    With a ``unit_of_work`` each drift check reads the cached figure and
    the movements from one snapshot, so a write landing between the two
    reads cannot show up as drift.
    """

    def __init__(
        self,
        ledger_store: ILedgerStore,
        material_store: IMaterialStore,
        drift_tolerance: Decimal = Decimal("0"),
        guard: ConsistencyGuard | None = None,
        unit_of_work: IUnitOfWork | None = None,
    ):
        self._ledger_store = ledger_store
        self._material_store = material_store
        self._drift_tolerance = drift_tolerance
        self._guard = guard or ConsistencyGuard()
        self._uow = unit_of_work

    async def _require_material(self, material_id: int) -> Material:
        material = await self._material_store.get_material(material_id)
        if material is None:
            raise MaterialNotFoundError(material_id)
        return material

    async def compute_balance(self, material_id: int) -> StockBalance:
        """Replay all active movements for a material."""
        await self._require_material(material_id)
        movements = await self._ledger_store.list_active(material_id)
        return replay(material_id, movements)

    async def running_balance(self, material_id: int) -> list[BalancePoint]:
        """Per-movement running balance for display."""
        await self._require_material(material_id)
        movements = await self._ledger_store.list_active(material_id)
        return running_series(movements)

    @asynccontextmanager
    async def _read_view(self) -> AsyncIterator[ILedgerSnapshot]:
        if self._uow is None:
            yield _StoreView(self._material_store, self._ledger_store)
            return
        async with self._uow.snapshot() as view:
            yield view

    async def _drift_report(self, material_id: int) -> DriftReport:
        async with self._read_view() as view:
            material = await view.get_material(material_id)
            if material is None:
                raise MaterialNotFoundError(material_id)
            movements = await view.list_active_movements(material_id)
        return DriftReport(
            material_id=material_id,
            cached=material.qty_on_hand,
            computed=replay(material_id, movements).current_stock,
        )

    def _log_drift(self, report: DriftReport) -> None:
        logger.warning(
            "stock_drift_detected",
            material_id=report.material_id,
            cached=str(report.cached),
            computed=str(report.computed),
            difference=str(report.difference),
        )

    async def check_drift(self, material_id: int) -> DriftReport:
        """Compare the cached stock with the replayed ledger."""
        report = await self._drift_report(material_id)
        if not report.in_sync(self._drift_tolerance):
            self._log_drift(report)
        return report

    async def assert_consistent(self, material_id: int) -> DriftReport:
        """Like ``check_drift`` but raises ``ConsistencyDriftError`` on drift."""
        report = await self.check_drift(material_id)
        self._guard.ensure_in_sync(report, self._drift_tolerance)
        return report

    async def check_all(self, page_size: int = 200) -> list[DriftReport]:
        """
        Drift reports for every material, drifted or not.

        Retired materials are included: they keep their movement history
        and their cached figure.
        """
        reports: list[DriftReport] = []
        offset = 0
        while True:
            materials = await self._material_store.list_materials(
                limit=page_size, offset=offset, include_inactive=True
            )
            if not materials:
                break
            for material in materials:
                reports.append(await self._drift_report(material.id))  # type: ignore[arg-type]
            offset += page_size

        drifted = [r for r in reports if not r.in_sync(self._drift_tolerance)]
        for report in drifted:
            self._log_drift(report)
        logger.info("consistency_scan_complete", checked=len(reports), drifted=len(drifted))
        return reports

    async def low_stock(self, limit: int = 100, offset: int = 0) -> list[Material]:
        """Materials at or below their safety stock."""
        return await self._material_store.list_below_safety_stock(limit=limit, offset=offset)

    async def summarize(self, filters: MovementFilter) -> list[MovementSummaryRow]:
        """Active movement totals grouped by type and source."""
        return await self._ledger_store.summarize(filters)

    @property
    def drift_tolerance(self) -> Decimal:
        return self._drift_tolerance
