"""
Approve / reject / void tests, including what a void does to a completed order.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import InvalidStateTransition, NotFoundError
from core_backend.tests.fixtures import reload
from orders.models import Order
from payments.models import Payment, PaymentAuditLog
from payments.services import PaymentService

Status = Payment.PaymentStatus


@pytest.mark.django_db
class TestVoid:
    def test_void_discounted_payment_reopens_underpaid_order(self, order_100, cash_method, settings_provider):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="84.00", discount="20.00",
            settings_provider=settings_provider,
        )
        assert reload(order_100).status == Order.OrderStatus.COMPLETED

        voided = PaymentService.void_payment(
            result.payment_id, reason="Wrong discount", voided_by_name="Manager",
            settings_provider=settings_provider,
        )

        order = reload(order_100)
        assert order.discount_amount == Decimal("0.00")
        assert order.tax_amount == Decimal("5.00")
        assert order.total_amount == Decimal("105.00")
        assert order.status == Order.OrderStatus.READY
        assert order.completed_at is None
        assert not voided.order_completed
        assert "reopened" in voided.message
        assert PaymentAuditLog.objects.filter(order=order, action=PaymentAuditLog.Action.ORDER_REOPENED).exists()

        payment = Payment.objects.get(pk=result.payment_id)
        assert payment.status == Status.VOIDED
        assert payment.status_reason == "Wrong discount"
        assert payment.notes.endswith("Voided: Wrong discount")

    def test_void_keeps_completed_order_that_is_still_covered(
        self, order_100, cash_method, card_method, card_approval_provider
    ):
        cash = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="50.00", settings_provider=card_approval_provider
        )
        card = PaymentService.process_payment(
            order_100.pk, card_method.pk, amount="105.00", last_four_digits="1111", card_type="VISA",
            settings_provider=card_approval_provider,
        )
        assert card.order_completed
        PaymentService.approve_payment(card.payment_id, settings_provider=card_approval_provider)

        voided = PaymentService.void_payment(cash.payment_id, settings_provider=card_approval_provider)

        assert voided.order_completed
        assert reload(order_100).status == Order.OrderStatus.COMPLETED

    def test_void_on_open_order_recalculates_roundoff(self, order_100, cash_method, settings_provider):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="49.60", settings_provider=settings_provider
        )
        assert reload(order_100).roundoff_adjustment_amt == Decimal("0.40")

        PaymentService.void_payment(result.payment_id, settings_provider=settings_provider)

        order = reload(order_100)
        assert order.roundoff_adjustment_amt == Decimal("0.00")
        assert order.status == Order.OrderStatus.OPEN

    def test_only_approved_payments_can_be_voided(self, order_100, cash_method, discount_approval_provider):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="84.00", discount="20.00",
            settings_provider=discount_approval_provider,
        )
        with pytest.raises(InvalidStateTransition):
            PaymentService.void_payment(result.payment_id, settings_provider=discount_approval_provider)
        assert Payment.objects.get(pk=result.payment_id).status == Status.PENDING


@pytest.mark.django_db
class TestApproveReject:
    def test_approve_requires_pending(self, order_100, cash_method, settings_provider):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="10.00", settings_provider=settings_provider
        )
        with pytest.raises(InvalidStateTransition):
            PaymentService.approve_payment(result.payment_id, settings_provider=settings_provider)

    def test_reject_requires_pending(self, order_100, cash_method, settings_provider):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="10.00", settings_provider=settings_provider
        )
        with pytest.raises(InvalidStateTransition):
            PaymentService.reject_payment(result.payment_id, settings_provider=settings_provider)

    def test_unknown_payment(self, settings_provider):
        with pytest.raises(NotFoundError):
            PaymentService.approve_payment(
                "00000000-0000-0000-0000-000000000000", settings_provider=settings_provider
            )

    def test_completed_order_is_not_reverted_by_reject(self, order_100, card_method, card_approval_provider):
        card = PaymentService.process_payment(
            order_100.pk, card_method.pk, amount="105.00", last_four_digits="1111", card_type="VISA",
            settings_provider=card_approval_provider,
        )
        assert reload(order_100).status == Order.OrderStatus.COMPLETED
        completed_at = reload(order_100).completed_at

        PaymentService.reject_payment(card.payment_id, reason="Declined", settings_provider=card_approval_provider)

        order = reload(order_100)
        assert order.status == Order.OrderStatus.COMPLETED
        assert order.completed_at == completed_at

    def test_status_changes_are_audited(self, order_100, cash_method, discount_approval_provider):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="84.00", discount="20.00",
            settings_provider=discount_approval_provider,
        )
        PaymentService.reject_payment(
            result.payment_id, reason="No manager", rejected_by_name="Manager",
            settings_provider=discount_approval_provider,
        )

        entry = PaymentAuditLog.objects.get(payment_id=result.payment_id, action=PaymentAuditLog.Action.PAYMENT_REJECTED)
        assert entry.from_status == "Pending"
        assert entry.to_status == "Rejected"
        assert entry.reason == "No manager"
        assert entry.actor_name == "Manager"
