"""
Signal handlers for the settings app.
Applies configuration changes to orders that are still open.
"""

from django.db.models.signals import post_save
from django.dispatch import receiver
import logging

from .models import RestaurantSettings

logger = logging.getLogger(__name__)


@receiver(post_save, sender=RestaurantSettings)
def recalculate_open_orders_on_settings_change(sender, instance, created, **kwargs):
    """
    Recalculate every non-terminal order after the settings row is edited, so a
    new GST rate is reflected on open orders immediately.

    Failures propagate: the settings save and the recalculation commit together.
    """
    if created:
        return

    from orders.services import OrderCalculationService

    recalculated_count = OrderCalculationService.recalculate_in_progress_orders()
    logger.info(f"Applied configuration changes to {recalculated_count} in-progress orders")
