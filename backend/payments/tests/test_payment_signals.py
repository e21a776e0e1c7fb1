"""
Signals fire only after the enclosing transaction commits, once per event.
"""
import pytest

from orders.models import Order
from orders.services import OrderService
from orders.signals import order_cancelled, order_completed
from payments.models import Payment
from payments.services import PaymentService
from payments.signals import payment_status_changed


@pytest.fixture
def received():
    events = []

    def on_completed(sender, order, completed_at, **kwargs):
        events.append(("completed", order.pk))

    def on_cancelled(sender, order, reason="", **kwargs):
        events.append(("cancelled", order.pk))

    def on_payment(sender, payment, old_status, new_status, **kwargs):
        events.append(("payment", old_status, new_status))

    order_completed.connect(on_completed, dispatch_uid="test-order-completed")
    order_cancelled.connect(on_cancelled, dispatch_uid="test-order-cancelled")
    payment_status_changed.connect(on_payment, dispatch_uid="test-payment-status")
    yield events
    order_completed.disconnect(dispatch_uid="test-order-completed")
    order_cancelled.disconnect(dispatch_uid="test-order-cancelled")
    payment_status_changed.disconnect(dispatch_uid="test-payment-status")


@pytest.mark.django_db
class TestPaymentSignals:
    def test_full_payment_emits_payment_and_completion(
        self, order_100, cash_method, settings_provider, received, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            PaymentService.process_payment(
                order_100.pk, cash_method.pk, amount="105.00", settings_provider=settings_provider
            )

        assert ("payment", None, Payment.PaymentStatus.APPROVED) in received
        assert received.count(("completed", order_100.pk)) == 1

    def test_nothing_is_sent_before_commit(
        self, order_100, cash_method, settings_provider, received, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            PaymentService.process_payment(
                order_100.pk, cash_method.pk, amount="105.00", settings_provider=settings_provider
            )

        assert received == []
        assert len(callbacks) == 2

    def test_partial_payment_does_not_complete(
        self, order_100, cash_method, settings_provider, received, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            PaymentService.process_payment(
                order_100.pk, cash_method.pk, amount="40.00", settings_provider=settings_provider
            )

        assert not any(event[0] == "completed" for event in received)

    def test_pending_payment_then_approval(
        self, order_100, card_method, card_approval_provider, received, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            result = PaymentService.process_payment(
                order_100.pk, card_method.pk, amount="105.00",
                last_four_digits="4242", card_type="Visa",
                settings_provider=card_approval_provider,
            )
        assert ("payment", None, Payment.PaymentStatus.PENDING) in received

        with django_capture_on_commit_callbacks(execute=True):
            PaymentService.approve_payment(result.payment_id, settings_provider=card_approval_provider)

        assert (
            "payment", Payment.PaymentStatus.PENDING, Payment.PaymentStatus.APPROVED
        ) in received
        assert received.count(("completed", order_100.pk)) == 1

    def test_cancel_emits_order_cancelled(self, order_50, received, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            OrderService.cancel_order(order_50.pk, reason="Guest left")

        assert received == [("cancelled", order_50.pk)]
        assert Order.objects.get(pk=order_50.pk).status == Order.OrderStatus.CANCELLED
