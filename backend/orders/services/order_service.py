from decimal import Decimal
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from core_backend.exceptions import InvalidStateTransition, NotFoundError, ValidationError
from core_backend.transactions import atomic_operation
from payments.audit import PaymentAuditService
from payments.ledger import PaymentLedger
from payments.models import PaymentAuditLog
from payments.money import ZERO
from settings.config import resolve_policy
from ..models import Order, OrderItem
from ..signals import order_cancelled
from .calculation_service import OrderCalculationService

logger = logging.getLogger(__name__)


class OrderService:
    """
    Order lifecycle: creation, forward status moves, cancellation.

    Completed is never set here; only OrderCompletionService completes an order.
    """

    # Forward-only moves available to staff. Completed/Cancelled have their own paths.
    VALID_STATUS_TRANSITIONS = {
        Order.OrderStatus.OPEN: [Order.OrderStatus.IN_PROGRESS, Order.OrderStatus.READY],
        Order.OrderStatus.IN_PROGRESS: [Order.OrderStatus.READY],
        Order.OrderStatus.READY: [],
        Order.OrderStatus.COMPLETED: [],
        Order.OrderStatus.CANCELLED: [],
    }

    @staticmethod
    def get_order(order_id, for_update=False) -> Order:
        queryset = Order.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Order", order_id)

    @staticmethod
    def lock_order(order_id) -> Order:
        """Fetch the order with a row lock held until the surrounding transaction ends."""
        return OrderService.get_order(order_id, for_update=True)

    @staticmethod
    @atomic_operation
    def create_order(table_name="", created_by=None, items=None, policy=None) -> Order:
        """
        Open a new order, optionally with initial items.

        `items` is an iterable of dicts with menu_item_name, unit_price,
        quantity and optional special_instructions.
        """
        order = Order.objects.create(table_name=table_name or "", created_by=created_by)
        for item in items or []:
            OrderService._build_item(order, **item)
        OrderCalculationService.recalculate_order_totals(order, policy)
        logger.info(f"Order {order.order_number} created with {len(items or [])} item(s)")
        return order

    @staticmethod
    def _build_item(order, menu_item_name, unit_price, quantity=1, special_instructions="") -> OrderItem:
        if not menu_item_name:
            raise ValidationError("Menu item name is required.")
        try:
            unit_price = Decimal(str(unit_price))
            quantity = int(quantity)
        except (ArithmeticError, TypeError, ValueError):
            raise ValidationError("Invalid unit price or quantity.")
        if unit_price < ZERO:
            raise ValidationError("Unit price cannot be negative.")
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1.")
        return OrderItem.objects.create(
            order=order,
            menu_item_name=menu_item_name,
            unit_price=unit_price,
            quantity=quantity,
            special_instructions=special_instructions or "",
        )

    @staticmethod
    @atomic_operation
    def update_order_status(order_id, new_status) -> Order:
        """
        Move an order forward (Open -> In Progress -> Ready).

        Raises:
            InvalidStateTransition: backwards moves, Completed (reserved for the
                completion evaluator) and Cancelled (use cancel_order)
        """
        order = OrderService.lock_order(order_id)
        try:
            new_status = Order.OrderStatus(int(new_status))
        except (TypeError, ValueError):
            raise ValidationError(f"Unknown order status '{new_status}'.")

        if new_status == order.status:
            return order

        if new_status not in OrderService.VALID_STATUS_TRANSITIONS.get(order.status, []):
            if new_status == Order.OrderStatus.COMPLETED:
                message = "Orders are completed automatically once fully paid."
            elif new_status == Order.OrderStatus.CANCELLED:
                message = "Use the cancel operation to cancel an order."
            else:
                message = (
                    f"Cannot move order {order.order_number} from "
                    f"{order.get_status_display()} to {new_status.label}."
                )
            raise InvalidStateTransition(order.get_status_display(), new_status.label, message=message)

        old_status = order.status
        order.status = new_status
        order.save(update_fields=["status", "updated_at"])
        logger.info(f"Order {order.order_number}: status {old_status} -> {new_status}")
        return order

    @staticmethod
    @atomic_operation
    def cancel_order(order_id, reason="", cancelled_by_name="") -> Order:
        """
        Cancel an order that is still Open, In Progress or Ready.

        Items that have not been fired are cancelled with it. Fails fast, with
        nothing written, when the order is already Completed or Cancelled.
        """
        order = OrderService.lock_order(order_id)

        if order.status == Order.OrderStatus.COMPLETED:
            raise InvalidStateTransition(
                order.get_status_display(),
                Order.OrderStatus.CANCELLED.label,
                message="Cannot cancel order that has already been completed.",
            )
        if order.status == Order.OrderStatus.CANCELLED:
            raise InvalidStateTransition(
                order.get_status_display(),
                Order.OrderStatus.CANCELLED.label,
                message="This order has already been cancelled.",
            )

        old_status = order.get_status_display()
        cancelled_items = order.items.filter(status=OrderItem.ItemStatus.NEW).update(
            status=OrderItem.ItemStatus.CANCELLED, updated_at=timezone.now()
        )

        order.status = Order.OrderStatus.CANCELLED
        order.cancelled_at = timezone.now()
        order.cancellation_reason = (reason or "")[:255]
        order.save(update_fields=["status", "cancelled_at", "cancellation_reason", "updated_at"])

        live_payments = PaymentLedger(order).live_payments().count()
        if live_payments:
            logger.warning(
                f"Order {order.order_number} cancelled with {live_payments} live payment(s) on it"
            )
        logger.info(
            f"Order {order.order_number} cancelled ({cancelled_items} unfired item(s) cancelled)"
        )

        PaymentAuditService.record(
            PaymentAuditLog.Action.ORDER_CANCELLED,
            order=order,
            from_status=old_status,
            to_status=order.get_status_display(),
            amount=order.total_amount,
            actor_name=cancelled_by_name,
            reason=reason,
            details={"cancelled_items": cancelled_items},
        )
        transaction.on_commit(lambda: order_cancelled.send(sender=Order, order=order, reason=reason))
        return order

    @staticmethod
    def reopen_order(order, reason="", actor_name=""):
        """
        Take a Completed order back to Ready after a void left it underpaid.

        Only the payment void path calls this; the caller holds the order lock.
        """
        if order.status != Order.OrderStatus.COMPLETED:
            raise InvalidStateTransition(
                order.get_status_display(),
                Order.OrderStatus.READY.label,
                message="Only completed orders can be reopened.",
            )

        order.status = Order.OrderStatus.READY
        order.completed_at = None
        order.save(update_fields=["status", "completed_at", "updated_at"])
        logger.warning(f"Order {order.order_number} reopened: {reason}")

        return PaymentAuditService.record(
            PaymentAuditLog.Action.ORDER_REOPENED,
            order=order,
            from_status=Order.OrderStatus.COMPLETED.label,
            to_status=Order.OrderStatus.READY.label,
            amount=order.total_amount,
            actor_name=actor_name,
            reason=reason,
        )

    @staticmethod
    def payment_summary(order_id, policy=None) -> dict:
        """
        Read-only projection of an order's totals against its ledger.

        `balance_due` is measured against the same counted sum the completion
        evaluator uses (approved plus the pending payments the policy counts).
        """
        order = OrderService.get_order(order_id)
        policy = resolve_policy(policy)
        sums = PaymentLedger(order).sums()
        counted = sums.eligible_sum(policy)
        balance_due = ZERO if order.status == Order.OrderStatus.COMPLETED else max(order.total_amount - counted, ZERO)
        return {
            "order_id": order.id,
            "order_number": order.order_number,
            "status": order.status,
            "status_display": order.get_status_display(),
            "subtotal": order.subtotal,
            "discount_amount": order.discount_amount,
            "tax_amount": order.tax_amount,
            "tip_amount": order.tip_amount,
            "total_amount": order.total_amount,
            "roundoff_adjustment_amt": order.roundoff_adjustment_amt,
            "approved_sum": sums.approved_sum,
            "pending_sum": sums.pending_sum,
            "counted_pending_sum": sums.counted_pending_sum(policy),
            "counted_sum": counted,
            "balance_due": balance_due,
            "gst_percentage": policy.gst_percentage,
        }
