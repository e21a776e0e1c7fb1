from decimal import Decimal

from django.conf import settings as django_settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class RestaurantSettings(models.Model):
    """
    Restaurant-wide configuration. A singleton: there is exactly one row (pk=1).

    Read at the start of every order/payment operation through
    `settings.config.DatabaseSettingsProvider`, so edits take effect on the
    next operation without a restart.
    """

    SINGLETON_PK = 1

    restaurant_name = models.CharField(max_length=150, default="My Restaurant")
    currency = models.CharField(
        max_length=3,
        default="INR",
        help_text=_("ISO 4217 code. A single currency is used for every order."),
    )
    default_gst_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("5.00"),
        validators=[MinValueValidator(Decimal("0.00")), MaxValueValidator(Decimal("100.00"))],
        help_text=_("GST applied to the discounted subtotal of every order."),
    )
    is_discount_approval_required = models.BooleanField(
        default=False,
        help_text=_("Payments carrying a discount are parked as Pending until a manager approves them."),
    )
    is_card_payment_approval_required = models.BooleanField(
        default=False,
        help_text=_("Card payments (methods requiring card info) are parked as Pending until approved."),
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Restaurant Settings")
        verbose_name_plural = _("Restaurant Settings")

    def __str__(self):
        return f"{self.restaurant_name} settings (GST {self.default_gst_percentage}%)"

    def clean(self):
        if self.pk is not None and self.pk != self.SINGLETON_PK:
            raise ValidationError(_("Only one RestaurantSettings record may exist."))

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(_("RestaurantSettings cannot be deleted."))

    @classmethod
    def load(cls):
        """Return the singleton row, creating it from the deployment defaults on first use."""
        instance, _created = cls.objects.get_or_create(
            pk=cls.SINGLETON_PK,
            defaults={
                "default_gst_percentage": getattr(
                    django_settings, "DEFAULT_GST_PERCENTAGE", Decimal("5.00")
                ),
                "currency": getattr(django_settings, "DEFAULT_CURRENCY", "INR"),
            },
        )
        return instance
