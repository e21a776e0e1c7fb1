from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RestaurantSettings",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("restaurant_name", models.CharField(default="My Restaurant", max_length=150)),
                (
                    "currency",
                    models.CharField(
                        default="INR",
                        help_text="ISO 4217 code. A single currency is used for every order.",
                        max_length=3,
                    ),
                ),
                (
                    "default_gst_percentage",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("5.00"),
                        help_text="GST applied to the discounted subtotal of every order.",
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0.00")),
                            django.core.validators.MaxValueValidator(Decimal("100.00")),
                        ],
                    ),
                ),
                (
                    "is_discount_approval_required",
                    models.BooleanField(
                        default=False,
                        help_text="Payments carrying a discount are parked as Pending until a manager approves them.",
                    ),
                ),
                (
                    "is_card_payment_approval_required",
                    models.BooleanField(
                        default=False,
                        help_text="Card payments (methods requiring card info) are parked as Pending until approved.",
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Restaurant Settings",
                "verbose_name_plural": "Restaurant Settings",
            },
        ),
    ]
