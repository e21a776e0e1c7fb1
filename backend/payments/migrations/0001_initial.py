from decimal import Decimal
import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def money_field(**kwargs):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10, **kwargs)


def percent_field():
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentMethod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(help_text="Stable code, e.g. CASH, CARD, UPI.", max_length=50, unique=True)),
                ("display_name", models.CharField(max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "requires_card_info",
                    models.BooleanField(
                        default=False,
                        help_text="Card type and last four digits must be captured; subject to card approval policy.",
                    ),
                ),
                ("requires_card_present", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["display_name"],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "status",
                    models.IntegerField(
                        choices=[(0, "Pending"), (1, "Approved"), (2, "Rejected"), (3, "Voided")],
                        default=0,
                        help_text="Inserted as PENDING, then forced to the approval policy's decision.",
                    ),
                ),
                ("amount", money_field()),
                ("tip_amount", money_field()),
                ("disc_amount", money_field(help_text="Discount this payment applies to the order.")),
                ("gst_percentage", percent_field()),
                ("cgst_percentage", percent_field()),
                ("sgst_percentage", percent_field()),
                ("gst_amount", money_field()),
                ("cgst_amount", money_field()),
                ("sgst_amount", money_field()),
                ("amount_excl_gst", money_field()),
                (
                    "roundoff_adjustment_amt",
                    money_field(
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("-1000.00")),
                            django.core.validators.MaxValueValidator(Decimal("1000.00")),
                        ]
                    ),
                ),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                (
                    "last_four_digits",
                    models.CharField(
                        blank=True,
                        default="",
                        max_length=4,
                        validators=[django.core.validators.RegexValidator("^\\d{4}$", "Enter exactly four digits.")],
                    ),
                ),
                ("card_type", models.CharField(blank=True, default="", max_length=50)),
                ("authorization_code", models.CharField(blank=True, default="", max_length=100)),
                ("notes", models.TextField(blank=True, default="")),
                ("processed_by_name", models.CharField(blank=True, default="", max_length=150)),
                (
                    "reviewed_by_name",
                    models.CharField(
                        blank=True, default="", help_text="Who approved, rejected or voided it.", max_length=150
                    ),
                ),
                ("status_reason", models.CharField(blank=True, default="", max_length=255)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="orders.order"
                    ),
                ),
                (
                    "payment_method",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="payments.paymentmethod",
                    ),
                ),
                (
                    "processed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payments_processed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["order", "status"], name="payment_order_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SplitBill",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "status",
                    models.IntegerField(choices=[(0, "Active"), (1, "Settled"), (2, "Voided")], default=0),
                ),
                ("amount", money_field()),
                ("tax_amount", money_field()),
                ("notes", models.TextField(blank=True, default="")),
                ("created_by_name", models.CharField(blank=True, default="", max_length=150)),
                ("settled_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="split_bills", to="orders.order"
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="SplitBillItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("amount", money_field()),
                (
                    "order_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="split_allocations",
                        to="orders.orderitem",
                    ),
                ),
                (
                    "split_bill",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="items", to="payments.splitbill"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="PaymentAuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("PAYMENT_RECORDED", "Payment recorded"),
                            ("PAYMENT_APPROVED", "Payment approved"),
                            ("PAYMENT_REJECTED", "Payment rejected"),
                            ("PAYMENT_VOIDED", "Payment voided"),
                            ("ORDER_COMPLETED", "Order completed"),
                            ("ORDER_REOPENED", "Order reopened after void"),
                            ("ORDER_CANCELLED", "Order cancelled"),
                            ("SPLIT_BILL_CREATED", "Split bill created"),
                            ("SPLIT_BILL_SETTLED", "Split bill settled"),
                            ("SPLIT_BILL_VOIDED", "Split bill voided"),
                        ],
                        max_length=32,
                    ),
                ),
                ("from_status", models.CharField(blank=True, default="", max_length=32)),
                ("to_status", models.CharField(blank=True, default="", max_length=32)),
                ("amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("actor_name", models.CharField(blank=True, default="", max_length=150)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_logs",
                        to="orders.order",
                    ),
                ),
                (
                    "payment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_logs",
                        to="payments.payment",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["order", "created_at"], name="audit_order_created_idx"),
                ],
            },
        ),
    ]
