"""Unit tests for domain exceptions."""

from decimal import Decimal

import pytest

from workshop.core.exceptions import (
    ConsistencyDriftError,
    DatabaseError,
    DuplicateAutomationError,
    ImmutabilityError,
    InsufficientStockError,
    InvalidTransitionError,
    LedgerError,
    MaterialNotFoundError,
    MovementNotFoundError,
    PurchaseNotFoundError,
    StorageError,
    SupersededMovementError,
    ValidationError,
    WorkshopError,
)


class TestWorkshopError:
    """Tests for base WorkshopError exception."""

    def test_basic_initialization(self):
        error = WorkshopError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.code == "WorkshopError"
        assert error.details == {}

    def test_with_custom_code(self):
        error = WorkshopError("Error message", code="CUSTOM_ERROR")
        assert error.code == "CUSTOM_ERROR"

    def test_to_dict(self):
        error = WorkshopError("Test error", code="TEST_CODE", details={"extra": "info"})
        assert error.to_dict() == {
            "error": "TEST_CODE",
            "message": "Test error",
            "details": {"extra": "info"},
        }


class TestValidationErrors:
    def test_validation_error_details(self):
        error = ValidationError("quantity", "must be greater than 0", Decimal("-1"))
        assert error.code == "VALIDATION_ERROR"
        assert error.details["field"] == "quantity"
        assert error.details["value"] == "-1"

    def test_value_is_truncated(self):
        error = ValidationError("notes", "too long", "x" * 500)
        assert len(error.details["value"]) == 100

    @pytest.mark.parametrize(
        "error, code, key",
        [
            (MaterialNotFoundError(3), "MATERIAL_NOT_FOUND", "material_id"),
            (MovementNotFoundError(4), "MOVEMENT_NOT_FOUND", "movement_id"),
            (PurchaseNotFoundError(5), "PURCHASE_NOT_FOUND", "purchase_id"),
        ],
    )
    def test_not_found_errors(self, error, code, key):
        assert isinstance(error, ValidationError)
        assert error.code == code
        assert key in error.details

    def test_invalid_transition(self):
        error = InvalidTransitionError(9, "cancelled", "received")
        assert error.code == "INVALID_TRANSITION"
        assert error.details["from_status"] == "cancelled"
        assert error.details["to_status"] == "received"


class TestLedgerErrors:
    def test_insufficient_stock_reports_shortfall(self):
        error = InsufficientStockError(1, requested=Decimal("100"), available=Decimal("70"))
        assert isinstance(error, LedgerError)
        assert error.code == "INSUFFICIENT_STOCK"
        assert error.shortfall == Decimal("30")
        assert error.details["available"] == "70"

    def test_duplicate_automation(self):
        error = DuplicateAutomationError(7, 12)
        assert error.code == "DUPLICATE_AUTOMATION"
        assert error.details == {"purchase_id": 7, "existing_movement_id": 12}

    def test_immutability_details_from_kwargs(self):
        error = ImmutabilityError("nope", movement_id=5)
        assert error.code == "IMMUTABLE_RECORD"
        assert error.details == {"movement_id": 5}

    def test_superseded_is_immutability(self):
        error = SupersededMovementError(3, 8)
        assert isinstance(error, ImmutabilityError)
        assert error.code == "SUPERSEDED_MOVEMENT"
        assert error.details["adjustment_id"] == 8

    def test_consistency_drift_difference(self):
        error = ConsistencyDriftError(1, cached=Decimal("10"), computed=Decimal("12"))
        assert error.details["difference"] == "2"


class TestStorageErrors:
    def test_database_error(self):
        error = DatabaseError("insert", "disk full")
        assert isinstance(error, StorageError)
        assert error.code == "DATABASE_ERROR"
        assert "insert" in error.message
