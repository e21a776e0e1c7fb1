from django.db import transaction
import logging
import time

from core_backend.exceptions import NotFoundError
from payments.ledger import LedgerSums, PaymentLedger
from settings.config import RestaurantPolicy, resolve_policy
from ..calculators import OrderCalculator

logger = logging.getLogger(__name__)


class OrderCalculationService:
    """
    Owner of an order's monetary fields.

    Subtotal/tax/total come from the items; discount/tip/roundoff come from the
    payment ledger. Both paths end in a save() with explicit update_fields, and
    any failure aborts the caller's transaction.
    """

    TOTAL_FIELDS = ["subtotal", "tax_amount", "total_amount", "updated_at"]
    LEDGER_FIELDS = ["discount_amount", "tip_amount", "roundoff_adjustment_amt", "updated_at"]

    @staticmethod
    def _lock(order_or_id):
        from orders.models import Order

        order_id = getattr(order_or_id, "pk", order_or_id)
        try:
            return Order.objects.select_for_update().get(pk=order_id)
        except Order.DoesNotExist:
            raise NotFoundError("Order", order_id)

    @staticmethod
    @transaction.atomic
    def recalculate_order_totals(order, policy: RestaurantPolicy = None):
        """
        Recompute subtotal, tax and total for an order.

        Accepts an Order (the caller's locked instance, updated in place) or an
        order id (locked here). Discount and tip are taken as they stand on the
        order; tax is GST on max(subtotal - discount, 0).
        """
        from orders.models import Order

        start_time = time.monotonic()
        if not isinstance(order, Order):
            order = OrderCalculationService._lock(order)
        policy = resolve_policy(policy)

        calculator = OrderCalculator(order)
        totals = calculator.calculate_totals(policy.gst_percentage)

        order.subtotal = totals["subtotal"]
        order.tax_amount = totals["tax_amount"]
        order.total_amount = totals["total_amount"]
        order.save(update_fields=OrderCalculationService.TOTAL_FIELDS)

        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            "OrderCalculationService.recalculate_order_totals order_id=%s items=%d subtotal=%s "
            "discount=%s tax=%s tip=%s total=%s elapsed_ms=%.2f",
            order.id,
            len(calculator.items),
            order.subtotal,
            order.discount_amount,
            order.tax_amount,
            order.tip_amount,
            order.total_amount,
            elapsed_ms,
        )
        return order

    @staticmethod
    def apply_ledger_adjustments(order, sums: LedgerSums):
        """
        Copy the live-ledger discount, tip and roundoff aggregates onto the order.
        """
        order.discount_amount = sums.discount_total
        order.tip_amount = sums.tip_total
        order.roundoff_adjustment_amt = sums.roundoff_total
        order.save(update_fields=OrderCalculationService.LEDGER_FIELDS)
        return order

    @staticmethod
    @transaction.atomic
    def refresh_from_ledger(order, policy: RestaurantPolicy = None) -> LedgerSums:
        """
        Re-derive everything the ledger feeds into the order, then the totals.

        Runs after every ledger mutation: (1) ledger aggregates, (2) order
        adjustments, (3) order totals. Returns the aggregates so the caller can
        evaluate completion without reading the ledger again.
        """
        policy = resolve_policy(policy)
        sums = PaymentLedger(order).sums()
        OrderCalculationService.apply_ledger_adjustments(order, sums)
        OrderCalculationService.recalculate_order_totals(order, policy)
        return sums

    @staticmethod
    @transaction.atomic
    def recalculate_in_progress_orders(policy: RestaurantPolicy = None) -> int:
        """
        Recalculates totals for all open orders when configuration changes.
        Returns the number of orders whose total changed.
        """
        from orders.models import Order

        policy = resolve_policy(policy)
        open_orders = Order.objects.select_for_update().exclude(status__in=Order.TERMINAL_STATUSES)

        count = 0
        for order in open_orders:
            old_total = order.total_amount
            OrderCalculationService.recalculate_order_totals(order, policy)
            if old_total != order.total_amount:
                count += 1
                logger.info(
                    f"Order {order.order_number}: total {old_total} -> {order.total_amount} "
                    f"after configuration change"
                )

        logger.info(f"Recalculated {count} in-progress orders due to configuration change")
        return count
