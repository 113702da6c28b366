"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from workshop.core.entities import (
    Material,
    MovementRecord,
    MovementSource,
    MovementType,
    PurchaseOrder,
    PurchaseStatus,
)


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def mock_settings(temp_db_path: Path) -> MagicMock:
    """Mock settings with temp database path."""
    mock = MagicMock()
    mock.storage.db_path = temp_db_path
    mock.storage.pool_size = 2
    mock.storage.busy_timeout = 5000
    mock.ledger.default_unit = "pcs"
    mock.ledger.drift_tolerance = Decimal("0")
    return mock


@pytest.fixture
async def ledger_db(temp_db_path: Path, mock_settings: MagicMock) -> AsyncGenerator[Path, None]:
    """Migrated temp database wired into the global connection pool."""
    import workshop.infrastructure.storage.sqlite.connection as conn_module
    from workshop.application.services import reset_services
    from workshop.infrastructure.storage.sqlite.migrations import migrator

    conn_module._pool = None
    reset_services()

    with (
        patch.object(conn_module, "get_settings", return_value=mock_settings),
        patch.object(migrator, "get_settings", return_value=mock_settings),
    ):
        results = await migrator.run_migrations(temp_db_path, create_backup_before=False)
        assert results and all(r.success for r in results)
        try:
            yield temp_db_path
        finally:
            await conn_module.close_pool()
            reset_services()


@pytest.fixture
def sample_material() -> Material:
    """Material with 100 units cached."""
    return Material(
        id=1,
        code="STL-PLT-3MM",
        name="Steel plate 3mm",
        unit="sheet",
        qty_on_hand=Decimal("100"),
        safety_stock=Decimal("10"),
    )


@pytest.fixture
def sample_purchase() -> PurchaseOrder:
    """Pending purchase of 20 sheets."""
    return PurchaseOrder(
        id=7,
        material_id=1,
        supplier="Baja Steel",
        quantity=Decimal("20"),
        unit="sheet",
        unit_price=Decimal("12.50"),
        status=PurchaseStatus.PENDING,
        pic_name="Rina",
    )


def make_movement(
    movement_id: int,
    movement_type: MovementType,
    quantity: str,
    qty_after: str,
    *,
    material_id: int = 1,
    source: MovementSource = MovementSource.MANUAL,
    purchase_id: int | None = None,
    is_active: bool = True,
) -> MovementRecord:
    """Build a stored movement for unit tests."""
    return MovementRecord(
        id=movement_id,
        material_id=material_id,
        movement_type=movement_type,
        quantity=Decimal(quantity),
        qty_after=Decimal(qty_after),
        source=source,
        purchase_id=purchase_id,
        is_active=is_active,
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )


@pytest.fixture
def movement_factory():
    """Expose ``make_movement`` to tests."""
    return make_movement
