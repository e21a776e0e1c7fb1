from django.dispatch import Signal, receiver
import logging

from orders.signals import order_cancelled, order_completed

logger = logging.getLogger(__name__)

# Sent after the transaction that recorded or moved a payment commits.
# Arguments: payment, old_status (None for a new payment), new_status
payment_status_changed = Signal()


@receiver(order_completed)
def log_order_completed(sender, order, completed_at, **kwargs):
    logger.info(f"Order {order.order_number} completed at {completed_at:%Y-%m-%d %H:%M:%S}")


@receiver(order_cancelled)
def log_order_cancelled(sender, order, reason="", **kwargs):
    logger.info(f"Order {order.order_number} cancelled: {reason or 'no reason given'}")


@receiver(payment_status_changed)
def log_payment_status_changed(sender, payment, old_status, new_status, **kwargs):
    old_label = sender.PaymentStatus(old_status).label if old_status is not None else "New"
    logger.info(
        f"Payment {payment.id} on order {payment.order_id}: {old_label} -> "
        f"{sender.PaymentStatus(new_status).label}"
    )
