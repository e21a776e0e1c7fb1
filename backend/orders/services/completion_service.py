"""
Order completion evaluation.

One place decides whether an order's payments cover its total. It runs at the
end of every payment-affecting transaction and is:

- idempotent: an already Completed (or Cancelled) order is left untouched;
- monotonic: it only ever moves an order forward to Completed.

Tolerance is two-tier: the strict 0.05 check first, then 0.50 to absorb the
gap between whole-unit settlement and the exact total.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
import logging

from django.db import transaction
from django.utils import timezone

from payments.ledger import LedgerSums, PaymentLedger
from payments.money import ZERO
from settings.config import RestaurantPolicy, resolve_policy
from ..signals import order_completed

logger = logging.getLogger(__name__)

STRICT_TOLERANCE = Decimal("0.05")
FALLBACK_TOLERANCE = Decimal("0.50")


@dataclass(frozen=True)
class CompletionDecision:
    completable: bool
    reason: str
    eligible_sum: Decimal = ZERO
    shortfall: Decimal = ZERO
    tolerance: Optional[Decimal] = None


@dataclass
class CompletionResult:
    order_status: int
    completed: bool
    changed: bool
    decision: Optional[CompletionDecision] = None
    warnings: list = field(default_factory=list)


class OrderCompletionService:
    PAID = "paid"
    PAID_WITHIN_FALLBACK = "paid_within_fallback_tolerance"
    INSUFFICIENT = "insufficient_payment"
    AWAITING_DISCOUNT_APPROVAL = "awaiting_discount_approval"
    NO_PAYMENTS = "no_payments"
    ALREADY_FINAL = "already_final"

    @staticmethod
    def evaluate(total_amount: Decimal, sums: LedgerSums, policy: RestaurantPolicy) -> CompletionDecision:
        """
        Pure decision: do the counted payments cover `total_amount`?

        Counted = approved payments + the pending payments the policy lets
        count (all pending when discount approval is off, undiscounted pending
        only when it is on). A parked discount is left out of the sum but does
        not stop other payments from completing the order; when it is the
        reason the order is short, the decision says so.
        """
        eligible_sum = sums.eligible_sum(policy)
        shortfall = max(total_amount - eligible_sum, ZERO)

        if sums.eligible_count(policy) > 0:
            if eligible_sum >= total_amount - STRICT_TOLERANCE:
                return CompletionDecision(
                    True, OrderCompletionService.PAID, eligible_sum, shortfall, STRICT_TOLERANCE
                )
            if eligible_sum >= total_amount - FALLBACK_TOLERANCE:
                return CompletionDecision(
                    True, OrderCompletionService.PAID_WITHIN_FALLBACK, eligible_sum, shortfall, FALLBACK_TOLERANCE
                )

        if policy.discount_approval_required and sums.pending_discounted_count > 0:
            reason = OrderCompletionService.AWAITING_DISCOUNT_APPROVAL
        elif sums.eligible_count(policy) == 0:
            reason = OrderCompletionService.NO_PAYMENTS
        else:
            reason = OrderCompletionService.INSUFFICIENT
        return CompletionDecision(False, reason, eligible_sum, shortfall)

    @staticmethod
    @transaction.atomic
    def try_complete(order, policy: RestaurantPolicy = None, sums: LedgerSums = None) -> CompletionResult:
        """
        Complete the order if its payments now cover the total.

        `order` is the caller's locked instance and is updated in place. The
        write is conditional on the stored status still being below Completed,
        so a redundant or concurrent call cannot complete twice or move
        completed_at.
        """
        from orders.models import Order

        if order.status >= Order.OrderStatus.COMPLETED:
            return CompletionResult(
                order_status=order.status,
                completed=order.status == Order.OrderStatus.COMPLETED,
                changed=False,
                decision=CompletionDecision(False, OrderCompletionService.ALREADY_FINAL),
            )

        policy = resolve_policy(policy)
        if sums is None:
            sums = PaymentLedger(order).sums()

        decision = OrderCompletionService.evaluate(order.total_amount, sums, policy)
        if not decision.completable:
            logger.info(
                f"Order {order.order_number}: not completed ({decision.reason}); "
                f"total={order.total_amount} eligible={decision.eligible_sum} shortfall={decision.shortfall}"
            )
            return CompletionResult(order_status=order.status, completed=False, changed=False, decision=decision)

        completed_at = order.completed_at or timezone.now()
        updated = Order.objects.filter(pk=order.pk, status__lt=Order.OrderStatus.COMPLETED).update(
            status=Order.OrderStatus.COMPLETED,
            completed_at=completed_at,
            updated_at=timezone.now(),
        )
        if not updated:
            order.refresh_from_db(fields=["status", "completed_at"])
            return CompletionResult(
                order_status=order.status,
                completed=order.status == Order.OrderStatus.COMPLETED,
                changed=False,
                decision=decision,
            )

        order.status = Order.OrderStatus.COMPLETED
        order.completed_at = completed_at

        logger.info(
            f"Order {order.order_number}: completed ({decision.reason}); "
            f"total={order.total_amount} eligible={decision.eligible_sum} tolerance={decision.tolerance}"
        )

        transaction.on_commit(
            lambda: order_completed.send(sender=Order, order=order, completed_at=completed_at)
        )
        return CompletionResult(order_status=order.status, completed=True, changed=True, decision=decision)
