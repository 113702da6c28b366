"""
Core business logic services.

Layer-pure services that depend only on:
- workshop/core/entities/*
- workshop/core/interfaces/*
- workshop/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from workshop.core.services.consistency_guard import ConsistencyGuard
from workshop.core.services.movement_service import MovementService
from workshop.core.services.purchase_receipt import (
    PurchaseReceiptStateMachine,
    PurchaseTransitionResult,
    ReceiptEffect,
    ReceiptStats,
    SyncResult,
    resolve_effect,
)
from workshop.core.services.stock_aggregator import StockAggregator, replay, running_series

__all__ = [
    # Consistency Guard
    "ConsistencyGuard",
    # Movement Service
    "MovementService",
    # Purchase Receipts
    "PurchaseReceiptStateMachine",
    "PurchaseTransitionResult",
    "ReceiptEffect",
    "ReceiptStats",
    "SyncResult",
    "resolve_effect",
    # Stock Aggregation
    "StockAggregator",
    "replay",
    "running_series",
]
