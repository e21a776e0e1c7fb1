from decimal import Decimal
import re
import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import IntegrityError, models, transaction
from django.utils.translation import gettext_lazy as _

from payments.money import round_money


class Order(models.Model):
    """
    A table's order and its running financial state.

    Monetary fields are owned by OrderCalculationService: subtotal/tax/total
    are recomputed from the items, and discount/tip/roundoff are re-derived
    from the payment ledger. Nothing else writes them.
    """

    class OrderStatus(models.IntegerChoices):
        OPEN = 0, _("Open")
        IN_PROGRESS = 1, _("In Progress")
        READY = 2, _("Ready")
        COMPLETED = 3, _("Completed")
        CANCELLED = 4, _("Cancelled")

    TERMINAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=20, unique=True, blank=True)
    table_name = models.CharField(max_length=50, blank=True, default="")
    status = models.IntegerField(choices=OrderStatus.choices, default=OrderStatus.OPEN)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("GST on (subtotal - discount); CGST + SGST."),
    )
    discount_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Sum of discounts carried by live (pending or approved) payments."),
    )
    tip_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Sum of tips carried by live (pending or approved) payments."),
    )
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("(subtotal - discount) + tax + tip"),
    )
    roundoff_adjustment_amt = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Sum of roundoff adjustments of live payments. Signed."),
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders_created",
    )
    cancellation_reason = models.CharField(max_length=255, blank=True, default="")
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "order_number"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
        ]

    def __str__(self):
        return f"Order {self.order_number or self.pk} - {self.get_status_display()}"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def net_subtotal(self) -> Decimal:
        return max(self.subtotal - self.discount_amount, Decimal("0.00"))

    def save(self, *args, **kwargs):
        # Generate order_number only if it's not already set
        if self.order_number:
            super().save(*args, **kwargs)
            return

        max_retries = 5
        for _attempt in range(max_retries):
            self.order_number = self._generate_sequential_order_number()
            try:
                with transaction.atomic():
                    super().save(*args, **kwargs)
                return
            except IntegrityError:
                # Another request took the number; try the next one
                continue
        raise IntegrityError("Failed to generate a unique order number after multiple retries.")

    def _generate_sequential_order_number(self):
        """
        Next number in the ORD-00001, ORD-00002, ... sequence.
        """
        prefix = "ORD-"
        last_order = (
            Order.objects.filter(order_number__startswith=prefix)
            .order_by("-order_number")
            .first()
        )

        next_number = 1
        if last_order and last_order.order_number:
            match = re.match(rf"^{re.escape(prefix)}(\d+)$", last_order.order_number)
            if match:
                next_number = int(match.group(1)) + 1

        return f"{prefix}{next_number:05d}"


class OrderItem(models.Model):
    class ItemStatus(models.IntegerChoices):
        NEW = 0, _("New")
        FIRED = 1, _("Fired")
        PREPARING = 2, _("Preparing")
        READY = 3, _("Ready")
        SERVED = 4, _("Served")
        CANCELLED = 5, _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    menu_item_name = models.CharField(max_length=150)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.00"))]
    )
    subtotal = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("unit_price x quantity"),
    )
    status = models.IntegerField(choices=ItemStatus.choices, default=ItemStatus.NEW)
    special_instructions = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.quantity} x {self.menu_item_name} ({self.get_status_display()})"

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.ItemStatus.CANCELLED

    def save(self, *args, **kwargs):
        self.subtotal = round_money(self.unit_price * self.quantity)
        super().save(*args, **kwargs)
