"""
Payment views package.

- base.py: Shared base class for payment command endpoints
- process.py: Single and split payment processing
- viewsets.py: Ledger, payment method and split bill viewsets
"""

from .base import BasePaymentView
from .process import PaymentProcessView, SplitPaymentProcessView
from .viewsets import PaymentMethodViewSet, PaymentViewSet, SplitBillViewSet

__all__ = [
    "BasePaymentView",
    "PaymentProcessView",
    "SplitPaymentProcessView",
    "PaymentViewSet",
    "PaymentMethodViewSet",
    "SplitBillViewSet",
]
