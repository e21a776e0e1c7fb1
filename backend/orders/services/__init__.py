"""
Orders services package - service layer for order management.

- OrderService: Order lifecycle (create, forward status moves, cancel, reopen)
- OrderItemService: Item management (add, change quantity, cancel, fire)
- OrderCalculationService: Subtotal/tax/total and ledger-derived adjustments
- OrderCompletionService: Decides when an order's payments settle it
"""

from .order_service import OrderService
from .calculation_service import OrderCalculationService
from .item_service import OrderItemService
from .completion_service import (
    CompletionDecision,
    CompletionResult,
    OrderCompletionService,
    FALLBACK_TOLERANCE,
    STRICT_TOLERANCE,
)

__all__ = [
    'OrderService',
    'OrderCalculationService',
    'OrderItemService',
    'OrderCompletionService',
    'CompletionDecision',
    'CompletionResult',
    'STRICT_TOLERANCE',
    'FALLBACK_TOLERANCE',
]
