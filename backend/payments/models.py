from decimal import Decimal
import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from orders.models import Order, OrderItem

# name, display_name, requires_card_info, requires_card_present
DEFAULT_PAYMENT_METHODS = [
    ("CASH", "Cash", False, False),
    ("CARD", "Credit/Debit Card", True, True),
    ("UPI", "UPI", False, False),
    ("COMPLEMENTARY", "Complementary", False, False),
]


class PaymentMethod(models.Model):
    """
    A tender the restaurant accepts (Cash, Card, UPI, Complementary, ...).

    Seeded by migration 0002 and by the `seed_payment_methods` command.
    """

    COMPLEMENTARY = "COMPLEMENTARY"
    UPI = "UPI"

    name = models.CharField(max_length=50, unique=True, help_text=_("Stable code, e.g. CASH, CARD, UPI."))
    display_name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)
    requires_card_info = models.BooleanField(
        default=False,
        help_text=_("Card type and last four digits must be captured; subject to card approval policy."),
    )
    requires_card_present = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["display_name"]

    def __str__(self):
        return self.display_name

    @property
    def is_complementary(self) -> bool:
        return self.name.upper() == self.COMPLEMENTARY

    @property
    def is_upi(self) -> bool:
        return self.name.upper() == self.UPI


class Payment(models.Model):
    """
    One payment attempt against an order: an append-only ledger row.

    `amount` is the canonical pre-rounding amount for goods + tax;
    `roundoff_adjustment_amt` is stored beside it so that
    `amount + roundoff_adjustment_amt` is the whole-unit sum the customer paid.
    Once status leaves PENDING only the annotation fields (notes) change.
    """

    class PaymentStatus(models.IntegerChoices):
        PENDING = 0, _("Pending")
        APPROVED = 1, _("Approved")
        REJECTED = 2, _("Rejected")
        VOIDED = 3, _("Voided")

    LIVE_STATUSES = (PaymentStatus.PENDING, PaymentStatus.APPROVED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="payments")
    payment_method = models.ForeignKey(PaymentMethod, on_delete=models.PROTECT, related_name="payments")
    status = models.IntegerField(
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        help_text=_("Inserted as PENDING, then forced to the approval policy's decision."),
    )

    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tip_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    disc_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Discount this payment applies to the order."),
    )
    gst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    cgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    sgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    gst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    cgst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    sgst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    amount_excl_gst = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    roundoff_adjustment_amt = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("-1000.00")), MaxValueValidator(Decimal("1000.00"))],
    )

    reference_number = models.CharField(max_length=100, blank=True, default="")
    last_four_digits = models.CharField(
        max_length=4,
        blank=True,
        default="",
        validators=[RegexValidator(r"^\d{4}$", _("Enter exactly four digits."))],
    )
    card_type = models.CharField(max_length=50, blank=True, default="")
    authorization_code = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments_processed",
    )
    processed_by_name = models.CharField(max_length=150, blank=True, default="")
    reviewed_by_name = models.CharField(
        max_length=150, blank=True, default="", help_text=_("Who approved, rejected or voided it.")
    )
    status_reason = models.CharField(max_length=255, blank=True, default="")
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="payment_order_status_idx"),
        ]

    def __str__(self):
        return f"Payment {self.id} on {self.order} - {self.amount} ({self.get_status_display()})"

    @property
    def settled_amount(self) -> Decimal:
        """What the customer actually handed over: amount + tip + roundoff."""
        return self.amount + self.tip_amount + self.roundoff_adjustment_amt

    @property
    def is_live(self) -> bool:
        return self.status in self.LIVE_STATUSES


class SplitBill(models.Model):
    """
    A carve-out of order items into an independently payable sub-bill.

    Does not change the parent order's totals; it only limits how much of each
    item is still available for further splitting.
    """

    class SplitBillStatus(models.IntegerChoices):
        ACTIVE = 0, _("Active")
        SETTLED = 1, _("Settled")
        VOIDED = 2, _("Voided")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="split_bills")
    status = models.IntegerField(choices=SplitBillStatus.choices, default=SplitBillStatus.ACTIVE)
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    notes = models.TextField(blank=True, default="")
    created_by_name = models.CharField(max_length=150, blank=True, default="")
    settled_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"Split bill {self.id} of {self.order} ({self.get_status_display()})"

    @property
    def total_amount(self) -> Decimal:
        return self.amount + self.tax_amount


class SplitBillItem(models.Model):
    split_bill = models.ForeignKey(SplitBill, on_delete=models.CASCADE, related_name="items")
    order_item = models.ForeignKey(OrderItem, on_delete=models.PROTECT, related_name="split_allocations")
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    def __str__(self):
        return f"{self.quantity} x {self.order_item.menu_item_name}"


class PaymentAuditLog(models.Model):
    """
    Audit trail of ledger and order state changes.

    Written in its own savepoint; a failed write never rolls back the financial
    operation it describes.
    """

    class Action(models.TextChoices):
        PAYMENT_RECORDED = "PAYMENT_RECORDED", _("Payment recorded")
        PAYMENT_APPROVED = "PAYMENT_APPROVED", _("Payment approved")
        PAYMENT_REJECTED = "PAYMENT_REJECTED", _("Payment rejected")
        PAYMENT_VOIDED = "PAYMENT_VOIDED", _("Payment voided")
        ORDER_COMPLETED = "ORDER_COMPLETED", _("Order completed")
        ORDER_REOPENED = "ORDER_REOPENED", _("Order reopened after void")
        ORDER_CANCELLED = "ORDER_CANCELLED", _("Order cancelled")
        SPLIT_BILL_CREATED = "SPLIT_BILL_CREATED", _("Split bill created")
        SPLIT_BILL_SETTLED = "SPLIT_BILL_SETTLED", _("Split bill settled")
        SPLIT_BILL_VOIDED = "SPLIT_BILL_VOIDED", _("Split bill voided")

    action = models.CharField(max_length=32, choices=Action.choices)
    order = models.ForeignKey(
        Order, on_delete=models.SET_NULL, null=True, blank=True, related_name="audit_logs"
    )
    payment = models.ForeignKey(
        Payment, on_delete=models.SET_NULL, null=True, blank=True, related_name="audit_logs"
    )
    from_status = models.CharField(max_length=32, blank=True, default="")
    to_status = models.CharField(max_length=32, blank=True, default="")
    amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    actor_name = models.CharField(max_length=150, blank=True, default="")
    reason = models.CharField(max_length=255, blank=True, default="")
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="audit_order_created_idx"),
        ]

    def __str__(self):
        return f"{self.get_action_display()} at {self.created_at:%Y-%m-%d %H:%M}"
