"""
Domain exceptions for the workshop ledger.

Provides specific exception types for different error scenarios.
"""

from decimal import Decimal
from typing import Any


class WorkshopError(Exception):
    """Base exception for all workshop errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(WorkshopError):
    """Base exception for storage operations."""

    pass


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


# Validation Exceptions
class ValidationError(WorkshopError):
    """Input validation failed."""

    def __init__(
        self,
        field: str,
        message: str,
        value: Any = None,
        code: str = "VALIDATION_ERROR",
    ):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code=code,
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class MaterialNotFoundError(ValidationError):
    """Referenced material does not exist."""

    def __init__(self, material_id: int):
        super().__init__(
            field="material_id",
            message=f"material {material_id} not found",
            value=material_id,
            code="MATERIAL_NOT_FOUND",
        )
        self.details["material_id"] = material_id


class MovementNotFoundError(ValidationError):
    """Referenced movement does not exist."""

    def __init__(self, movement_id: int):
        super().__init__(
            field="movement_id",
            message=f"movement {movement_id} not found",
            value=movement_id,
            code="MOVEMENT_NOT_FOUND",
        )
        self.details["movement_id"] = movement_id


class PurchaseNotFoundError(ValidationError):
    """Referenced purchase order does not exist (or was deleted)."""

    def __init__(self, purchase_id: int):
        super().__init__(
            field="purchase_id",
            message=f"purchase {purchase_id} not found",
            value=purchase_id,
            code="PURCHASE_NOT_FOUND",
        )
        self.details["purchase_id"] = purchase_id


class InvalidTransitionError(ValidationError):
    """Purchase status change is not allowed."""

    def __init__(self, purchase_id: int | None, from_status: str, to_status: str):
        super().__init__(
            field="status",
            message=f"cannot move purchase from '{from_status}' to '{to_status}'",
            value=to_status,
            code="INVALID_TRANSITION",
        )
        self.details.update(
            {
                "purchase_id": purchase_id,
                "from_status": from_status,
                "to_status": to_status,
            }
        )


# Ledger Exceptions
class LedgerError(WorkshopError):
    """Base exception for ledger invariant violations."""

    pass


class InsufficientStockError(LedgerError):
    """Movement would drive cached stock below zero."""

    def __init__(self, material_id: int, requested: Decimal, available: Decimal):
        shortfall = requested - available
        super().__init__(
            f"Insufficient stock for material {material_id}: "
            f"requested {requested}, available {available} (short by {shortfall})",
            code="INSUFFICIENT_STOCK",
            details={
                "material_id": material_id,
                "requested": str(requested),
                "available": str(available),
                "shortfall": str(shortfall),
            },
        )
        self.shortfall = shortfall


class DuplicateAutomationError(LedgerError):
    """An active automated movement already exists for the purchase."""

    def __init__(self, purchase_id: int, existing_movement_id: int | None):
        super().__init__(
            f"Movement already exists for purchase {purchase_id}",
            code="DUPLICATE_AUTOMATION",
            details={
                "purchase_id": purchase_id,
                "existing_movement_id": existing_movement_id,
            },
        )


class ImmutabilityError(LedgerError):
    """Attempt to edit or delete an audit-protected record."""

    def __init__(self, message: str, code: str = "IMMUTABLE_RECORD", **details: Any):
        super().__init__(message, code=code, details=details)


class SupersededMovementError(ImmutabilityError):
    """Movement is older than an active stock adjustment and can no longer be reversed."""

    def __init__(self, movement_id: int, adjustment_id: int):
        super().__init__(
            f"Movement {movement_id} is superseded by adjustment {adjustment_id}",
            code="SUPERSEDED_MOVEMENT",
            movement_id=movement_id,
            adjustment_id=adjustment_id,
        )


class ConsistencyDriftError(LedgerError):
    """Cached stock disagrees with the replayed ledger."""

    def __init__(self, material_id: int, cached: Decimal, computed: Decimal):
        super().__init__(
            f"Stock drift for material {material_id}: cached {cached}, ledger {computed}",
            code="CONSISTENCY_DRIFT",
            details={
                "material_id": material_id,
                "cached": str(cached),
                "computed": str(computed),
                "difference": str(computed - cached),
            },
        )


class ConfigurationError(WorkshopError):
    """Configuration error."""

    pass
