"""Check Stock Consistency Use Case: compare cached stock with the ledger."""

from dataclasses import dataclass, field
from decimal import Decimal

from workshop.application.dto.responses import ConsistencyReportResponse, DriftReportResponse
from workshop.config import get_logger, get_settings
from workshop.core.entities.ledger import DriftReport
from workshop.core.exceptions import ConsistencyDriftError
from workshop.core.services import StockAggregator

logger = get_logger(__name__)


@dataclass
class ConsistencyCheckResult:
    """Drift reports from one scan."""

    reports: list[DriftReport]
    tolerance: Decimal
    drifted: list[DriftReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.drifted


class CheckStockConsistencyUseCase:
    """Scan one or all materials for drift. Reports only; never corrects."""

    def __init__(self, aggregator: StockAggregator | None = None):
        self._aggregator = aggregator

    async def _get_aggregator(self) -> StockAggregator:
        if self._aggregator is None:
            from workshop.application.services import get_stock_aggregator

            self._aggregator = await get_stock_aggregator()
        return self._aggregator

    async def execute(
        self, material_id: int | None = None, strict: bool = False
    ) -> ConsistencyCheckResult:
        """
        Run the scan.

        With ``strict`` the first drifted material raises
        ``ConsistencyDriftError`` instead of being reported.
        """
        aggregator = await self._get_aggregator()
        if material_id is not None:
            reports = [await aggregator.check_drift(material_id)]
        else:
            reports = await aggregator.check_all(page_size=get_settings().ledger.scan_page_size)

        tolerance = aggregator.drift_tolerance
        drifted = [r for r in reports if not r.in_sync(tolerance)]
        if strict and drifted:
            first = drifted[0]
            logger.warning("strict_consistency_check_failed", material_id=first.material_id, drifted=len(drifted))
            raise ConsistencyDriftError(first.material_id, first.cached, first.computed)
        return ConsistencyCheckResult(reports=reports, tolerance=tolerance, drifted=drifted)

    def to_response(
        self, result: ConsistencyCheckResult, include_all: bool = False
    ) -> ConsistencyReportResponse:
        shown = result.reports if include_all else result.drifted
        return ConsistencyReportResponse(
            checked=len(result.reports),
            drifted=len(result.drifted),
            tolerance=result.tolerance,
            reports=[DriftReportResponse.from_entity(r, result.tolerance) for r in shown],
        )
