from dataclasses import dataclass
from decimal import Decimal
from typing import List
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Sum
from django.utils import timezone

from core_backend.exceptions import InvalidStateTransition, NotFoundError, ValidationError
from core_backend.transactions import atomic_operation
from orders.calculators import compute_tax
from orders.models import Order, OrderItem
from orders.services import OrderService
from settings.config import SettingsProvider, resolve_policy
from .audit import PaymentAuditService
from .models import PaymentAuditLog, SplitBill, SplitBillItem
from .money import ZERO, round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailableItem:
    """How much of one order item is still free to put on a split bill."""

    order_item_id: object
    menu_item_name: str
    unit_price: Decimal
    quantity: int
    allocated_quantity: int

    @property
    def available_quantity(self) -> int:
        return max(self.quantity - self.allocated_quantity, 0)

    def as_dict(self) -> dict:
        return {
            "order_item_id": str(self.order_item_id),
            "menu_item_name": self.menu_item_name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "allocated_quantity": self.allocated_quantity,
            "available_quantity": self.available_quantity,
        }


class SplitBillService:
    """
    Carves an order's items into independently payable sub-bills.

    Split bills never touch the order's own totals. The only invariant they
    carry is that, per item, the quantity on non-voided split bills never
    exceeds the item's quantity.
    """

    @staticmethod
    def _allocated_quantities(order) -> dict:
        rows = (
            SplitBillItem.objects.filter(split_bill__order=order)
            .exclude(split_bill__status=SplitBill.SplitBillStatus.VOIDED)
            .values("order_item_id")
            .annotate(total=Sum("quantity"))
        )
        return {row["order_item_id"]: row["total"] or 0 for row in rows}

    @staticmethod
    def available_items(order_id) -> List[AvailableItem]:
        """
        Per item: ordered quantity minus what non-voided split bills hold.
        Cancelled items are never available.
        """
        order = OrderService.get_order(order_id)
        allocated = SplitBillService._allocated_quantities(order)
        return [
            AvailableItem(
                order_item_id=item.id,
                menu_item_name=item.menu_item_name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                allocated_quantity=allocated.get(item.id, 0),
            )
            for item in order.items.exclude(status=OrderItem.ItemStatus.CANCELLED)
        ]

    @staticmethod
    def _get_split_bill(split_bill_id, for_update=False) -> SplitBill:
        queryset = SplitBill.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=split_bill_id)
        except (SplitBill.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Split bill", split_bill_id)

    @staticmethod
    @atomic_operation
    def create_split_bill(
        order_id, items, notes="", created_by_name="", settings_provider: SettingsProvider = None
    ) -> SplitBill:
        """
        Create a split bill from `items`, a list of {"order_item_id", "quantity"}.

        Raises:
            ValidationError: empty selection, unknown or cancelled items, or a
                quantity above what is still available
            InvalidStateTransition: order is Completed or Cancelled
        """
        policy = resolve_policy(provider=settings_provider)
        order = OrderService.lock_order(order_id)
        if order.is_terminal:
            raise InvalidStateTransition(
                order.get_status_display(),
                message=f"Cannot split a {order.get_status_display().lower()} order.",
            )
        if not items:
            raise ValidationError("Select at least one item for the split bill.")

        order_items = {
            item.id: item for item in order.items.exclude(status=OrderItem.ItemStatus.CANCELLED)
        }
        allocated = SplitBillService._allocated_quantities(order)

        requested = {}
        for entry in items:
            item = next(
                (candidate for key, candidate in order_items.items() if str(key) == str(entry.get("order_item_id"))),
                None,
            )
            if item is None:
                raise ValidationError(f"Item {entry.get('order_item_id')} is not an active item on this order.")
            try:
                quantity = int(entry.get("quantity", 0))
            except (TypeError, ValueError):
                raise ValidationError("Quantity must be a whole number.")
            if quantity < 1:
                raise ValidationError("Quantity must be at least 1.")
            requested[item.id] = requested.get(item.id, 0) + quantity

        for item_id, quantity in requested.items():
            item = order_items[item_id]
            available = item.quantity - allocated.get(item_id, 0)
            if quantity > available:
                raise ValidationError(
                    f"Only {max(available, 0)} of '{item.menu_item_name}' left to split; {quantity} requested."
                )

        split_bill = SplitBill.objects.create(order=order, notes=notes or "", created_by_name=created_by_name or "")
        amount = ZERO
        for item_id, quantity in requested.items():
            line_amount = round_money(order_items[item_id].unit_price * quantity)
            SplitBillItem.objects.create(
                split_bill=split_bill, order_item=order_items[item_id], quantity=quantity, amount=line_amount
            )
            amount += line_amount

        split_bill.amount = amount
        split_bill.tax_amount = compute_tax(amount, ZERO, policy.gst_percentage).tax
        split_bill.save(update_fields=["amount", "tax_amount", "updated_at"])

        PaymentAuditService.record(
            PaymentAuditLog.Action.SPLIT_BILL_CREATED,
            order=order,
            to_status=split_bill.get_status_display(),
            amount=split_bill.total_amount,
            actor_name=created_by_name,
            details={"split_bill_id": str(split_bill.id), "lines": len(requested)},
        )
        logger.info(
            f"Order {order.order_number}: split bill {split_bill.id} created for {amount} "
            f"+ tax {split_bill.tax_amount}"
        )
        return split_bill

    @staticmethod
    def _resolve(split_bill_id, target_status, actor_name="", reason="") -> SplitBill:
        split_bill = SplitBillService._get_split_bill(split_bill_id)
        order = OrderService.lock_order(split_bill.order_id)
        split_bill = SplitBillService._get_split_bill(split_bill_id, for_update=True)

        if split_bill.status != SplitBill.SplitBillStatus.ACTIVE:
            raise InvalidStateTransition(
                split_bill.get_status_display(),
                SplitBill.SplitBillStatus(target_status).label,
                message=f"Split bill is already {split_bill.get_status_display().lower()}.",
            )

        now = timezone.now()
        split_bill.status = target_status
        if target_status == SplitBill.SplitBillStatus.SETTLED:
            split_bill.settled_at = now
            timestamp_field = "settled_at"
            action = PaymentAuditLog.Action.SPLIT_BILL_SETTLED
        else:
            split_bill.voided_at = now
            timestamp_field = "voided_at"
            action = PaymentAuditLog.Action.SPLIT_BILL_VOIDED
        split_bill.save(update_fields=["status", timestamp_field, "updated_at"])

        PaymentAuditService.record(
            action,
            order=order,
            from_status=SplitBill.SplitBillStatus.ACTIVE.label,
            to_status=split_bill.get_status_display(),
            amount=split_bill.total_amount,
            actor_name=actor_name,
            reason=reason,
            details={"split_bill_id": str(split_bill.id)},
        )
        logger.info(f"Order {order.order_number}: split bill {split_bill.id} {split_bill.get_status_display().lower()}")
        return split_bill

    @staticmethod
    @atomic_operation
    def settle_split_bill(split_bill_id, settled_by_name="") -> SplitBill:
        return SplitBillService._resolve(split_bill_id, SplitBill.SplitBillStatus.SETTLED, settled_by_name)

    @staticmethod
    @atomic_operation
    def void_split_bill(split_bill_id, reason="", voided_by_name="") -> SplitBill:
        """Void an active split bill; its items become available to split again."""
        return SplitBillService._resolve(split_bill_id, SplitBill.SplitBillStatus.VOIDED, voided_by_name, reason)
