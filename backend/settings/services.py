from decimal import Decimal, InvalidOperation
import logging

from django.db import transaction

from core_backend.exceptions import ValidationError
from .models import RestaurantSettings

logger = logging.getLogger(__name__)


class SettingsService:
    """Service layer for editing the RestaurantSettings singleton."""

    EDITABLE_FIELDS = (
        "restaurant_name",
        "currency",
        "default_gst_percentage",
        "is_discount_approval_required",
        "is_card_payment_approval_required",
    )

    @staticmethod
    def get_settings() -> RestaurantSettings:
        return RestaurantSettings.load()

    @staticmethod
    @transaction.atomic
    def update_settings(**changes) -> RestaurantSettings:
        """
        Apply a partial update to the restaurant settings.

        Saving triggers the post_save handler in settings.signals, which
        recalculates every open order in this same transaction.

        Raises:
            ValidationError: unknown field, or GST outside 0..100
        """
        unknown = set(changes) - set(SettingsService.EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")

        if "default_gst_percentage" in changes:
            try:
                gst = Decimal(str(changes["default_gst_percentage"]))
            except (InvalidOperation, ValueError):
                raise ValidationError("GST percentage must be a number.")
            if gst < 0 or gst > 100:
                raise ValidationError("GST percentage must be between 0 and 100.")
            changes["default_gst_percentage"] = gst

        if "currency" in changes:
            changes["currency"] = str(changes["currency"]).upper()

        instance = RestaurantSettings.objects.select_for_update().get(
            pk=RestaurantSettings.load().pk
        )
        for field, value in changes.items():
            setattr(instance, field, value)
        instance.save()

        logger.info(f"Restaurant settings updated: {sorted(changes)}")
        return instance
