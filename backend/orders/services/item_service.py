from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Sum
import logging

from core_backend.exceptions import InvalidStateTransition, NotFoundError, ValidationError
from core_backend.transactions import atomic_operation
from orders.models import Order, OrderItem

logger = logging.getLogger(__name__)


class OrderItemService:
    """
    Service for managing order items - adding, changing quantity, cancelling, firing.

    Every mutation locks the order first and ends with a call to
    OrderCalculationService; item code never writes order totals itself.
    """

    @staticmethod
    def _lock_open_order(order_id) -> Order:
        from .order_service import OrderService

        order = OrderService.lock_order(order_id)
        if order.is_terminal:
            raise InvalidStateTransition(
                order.get_status_display(),
                message=f"Cannot change items on a {order.get_status_display().lower()} order.",
            )
        return order

    @staticmethod
    def _get_item(item_id) -> OrderItem:
        try:
            return OrderItem.objects.get(pk=item_id)
        except (OrderItem.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Order item", item_id)

    @staticmethod
    @atomic_operation
    def add_item(order_id, menu_item_name, unit_price, quantity=1, special_instructions="", policy=None) -> OrderItem:
        """
        Add a line to an open order and recalculate its totals.
        """
        from .calculation_service import OrderCalculationService
        from .order_service import OrderService

        order = OrderItemService._lock_open_order(order_id)
        item = OrderService._build_item(
            order,
            menu_item_name=menu_item_name,
            unit_price=unit_price,
            quantity=quantity,
            special_instructions=special_instructions,
        )
        OrderCalculationService.recalculate_order_totals(order, policy)
        logger.info(f"Order {order.order_number}: added {item.quantity} x {item.menu_item_name}")
        return item

    @staticmethod
    @atomic_operation
    def update_item_quantity(item_id, quantity, policy=None) -> OrderItem:
        """
        Change the quantity of a New (unfired) item.

        The new quantity may not drop below what active split bills have
        already carved out of the item.
        """
        from payments.models import SplitBill, SplitBillItem
        from .calculation_service import OrderCalculationService

        item = OrderItemService._get_item(item_id)
        order = OrderItemService._lock_open_order(item.order_id)
        item.refresh_from_db()

        try:
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise ValidationError("Quantity must be a whole number.")
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1. Cancel the item to remove it.")
        if item.status != OrderItem.ItemStatus.NEW:
            raise InvalidStateTransition(
                item.get_status_display(),
                message="Only items that have not been fired can be changed.",
            )

        split_quantity = (
            SplitBillItem.objects.filter(order_item=item)
            .exclude(split_bill__status=SplitBill.SplitBillStatus.VOIDED)
            .aggregate(total=Sum("quantity"))["total"]
            or 0
        )
        if quantity < split_quantity:
            raise ValidationError(
                f"{split_quantity} of '{item.menu_item_name}' are already on split bills."
            )

        item.quantity = quantity
        item.save(update_fields=["quantity", "subtotal", "updated_at"])
        OrderCalculationService.recalculate_order_totals(order, policy)
        return item

    @staticmethod
    @atomic_operation
    def cancel_item(item_id, policy=None) -> OrderItem:
        """
        Cancel a New item; fired items are already with the kitchen.
        """
        from .calculation_service import OrderCalculationService

        item = OrderItemService._get_item(item_id)
        order = OrderItemService._lock_open_order(item.order_id)
        item.refresh_from_db()

        if item.status != OrderItem.ItemStatus.NEW:
            raise InvalidStateTransition(
                item.get_status_display(),
                OrderItem.ItemStatus.CANCELLED.label,
                message="Only items that have not been fired can be cancelled.",
            )

        item.status = OrderItem.ItemStatus.CANCELLED
        item.save(update_fields=["status", "updated_at"])
        OrderCalculationService.recalculate_order_totals(order, policy)
        logger.info(f"Order {order.order_number}: cancelled item {item.menu_item_name}")
        return item

    @staticmethod
    @atomic_operation
    def fire_items(order_id, item_ids=None) -> int:
        """
        Send New items to the kitchen. An Open order moves to In Progress.

        Returns the number of items fired.
        """
        order = OrderItemService._lock_open_order(order_id)
        items = order.items.filter(status=OrderItem.ItemStatus.NEW)
        if item_ids:
            items = items.filter(pk__in=item_ids)

        fired = items.update(status=OrderItem.ItemStatus.FIRED)
        if fired and order.status == Order.OrderStatus.OPEN:
            order.status = Order.OrderStatus.IN_PROGRESS
            order.save(update_fields=["status", "updated_at"])

        logger.info(f"Order {order.order_number}: fired {fired} item(s)")
        return fired
