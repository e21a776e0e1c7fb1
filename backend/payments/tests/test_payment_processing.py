"""
Payment processing tests.

Covers recording a payment end to end: approval policy, discount and tax
attribution, roundoff, and completion of the order.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import InvalidStateTransition, NotFoundError, ValidationError
from core_backend.tests.fixtures import reload
from orders.models import Order
from orders.services import OrderService
from payments.models import Payment, PaymentAuditLog
from payments.services import PaymentService

Status = Payment.PaymentStatus


@pytest.mark.django_db
class TestOrderTotals:
    def test_hundred_rupee_order_at_five_percent(self, order_100):
        order = reload(order_100)
        assert order.subtotal == Decimal("100.00")
        assert order.tax_amount == Decimal("5.00")
        assert order.total_amount == Decimal("105.00")


@pytest.mark.django_db
class TestDiscountApprovalRequired:
    def test_discounted_payment_is_parked_and_order_stays_open(
        self, order_100, cash_method, discount_approval_provider
    ):
        result = PaymentService.process_payment(
            order_100.pk,
            cash_method.pk,
            amount="84.00",
            discount="20.00",
            settings_provider=discount_approval_provider,
        )

        assert result.payment_status == Status.PENDING
        assert result.requires_approval
        assert not result.order_completed
        assert result.message == (
            "Payment with discount of ₹20.00 requires approval. It has been saved as pending."
        )
        order = reload(order_100)
        assert order.status != Order.OrderStatus.COMPLETED
        assert order.discount_amount == Decimal("20.00")
        assert order.total_amount == Decimal("84.00")

    def test_approving_the_discount_completes_the_order(
        self, order_100, cash_method, discount_approval_provider
    ):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="84.00", discount="20.00",
            settings_provider=discount_approval_provider,
        )
        approved = PaymentService.approve_payment(
            result.payment_id, approved_by_name="Manager", settings_provider=discount_approval_provider
        )

        assert approved.payment_status == Status.APPROVED
        assert approved.order_completed
        assert reload(order_100).status == Order.OrderStatus.COMPLETED

    def test_rejecting_the_discount_removes_it_from_the_order(
        self, order_100, cash_method, discount_approval_provider
    ):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="84.00", discount="20.00",
            settings_provider=discount_approval_provider,
        )
        PaymentService.reject_payment(
            result.payment_id, reason="Not authorised", settings_provider=discount_approval_provider
        )

        order = reload(order_100)
        assert order.discount_amount == Decimal("0.00")
        assert order.tax_amount == Decimal("5.00")
        assert order.total_amount == Decimal("105.00")
        assert order.status == Order.OrderStatus.OPEN
        assert Payment.objects.get(pk=result.payment_id).status == Status.REJECTED

    def test_approved_payment_covering_total_completes_despite_parked_discount(
        self, order_100, cash_method, discount_approval_provider
    ):
        parked = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="0.00", discount="20.00",
            settings_provider=discount_approval_provider,
        )
        assert parked.payment_status == Status.PENDING

        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="105.00",
            settings_provider=discount_approval_provider,
        )

        assert result.payment_status == Status.APPROVED
        assert result.order_completed
        order = reload(order_100)
        assert order.status == Order.OrderStatus.COMPLETED
        assert order.total_amount == Decimal("84.00")
        assert Payment.objects.get(pk=parked.payment_id).status == Status.PENDING

    def test_void_keeps_order_completed_while_remaining_payments_cover_it(
        self, order_100, cash_method, discount_approval_provider
    ):
        PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="0.00", discount="20.00",
            settings_provider=discount_approval_provider,
        )
        first = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="50.00", settings_provider=discount_approval_provider
        )
        second = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="100.00", settings_provider=discount_approval_provider
        )
        assert not first.order_completed
        assert second.order_completed

        voided = PaymentService.void_payment(
            first.payment_id, reason="Duplicate", settings_provider=discount_approval_provider
        )

        assert voided.order_completed
        assert reload(order_100).status == Order.OrderStatus.COMPLETED


@pytest.mark.django_db
class TestDiscountApprovalNotRequired:
    def test_discounted_payment_is_approved_and_completes_order(self, order_100, cash_method, settings_provider):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="84.00", discount="20.00",
            settings_provider=settings_provider,
        )

        assert result.payment_status == Status.APPROVED
        assert result.order_completed
        assert result.message == (
            f"Payment processed successfully. Order {order_100.order_number} is now completed."
        )

        order = reload(order_100)
        assert order.discount_amount == Decimal("20.00")
        assert order.tax_amount == Decimal("4.00")
        assert order.total_amount == Decimal("84.00")
        assert order.status == Order.OrderStatus.COMPLETED

        payment = Payment.objects.get(pk=result.payment_id)
        assert payment.gst_amount == Decimal("4.00")
        assert payment.cgst_amount + payment.sgst_amount == payment.gst_amount
        assert payment.amount_excl_gst == Decimal("80.00")

    def test_percent_discount(self, order_100, cash_method, settings_provider):
        PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="94.50", discount="10", discount_type="percent",
            settings_provider=settings_provider,
        )
        order = reload(order_100)
        assert order.discount_amount == Decimal("10.00")
        assert order.total_amount == Decimal("94.50")

    def test_discount_larger_than_subtotal_is_rejected(self, order_100, cash_method, settings_provider):
        with pytest.raises(ValidationError):
            PaymentService.process_payment(
                order_100.pk, cash_method.pk, amount="0", discount="150.00",
                settings_provider=settings_provider,
            )
        assert not Payment.objects.exists()


@pytest.mark.django_db
class TestComplementary:
    def test_complementary_zeroes_the_order_and_completes_it(
        self, order_50, complementary_method, settings_provider
    ):
        result = PaymentService.process_payment(
            order_50.pk, complementary_method.pk, amount="999.00", settings_provider=settings_provider
        )

        payment = Payment.objects.get(pk=result.payment_id)
        assert payment.amount == Decimal("0.00")
        assert payment.disc_amount == Decimal("50.00")
        assert payment.gst_amount == Decimal("0.00")

        order = reload(order_50)
        assert order.discount_amount == Decimal("50.00")
        assert order.tax_amount == Decimal("0.00")
        assert order.total_amount == Decimal("0.00")
        assert order.status == Order.OrderStatus.COMPLETED


@pytest.mark.django_db
class TestPartialPayments:
    def test_remaining_balance_then_completion(self, order_100, cash_method, upi_method, settings_provider):
        first = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="50.00", settings_provider=settings_provider
        )
        assert not first.order_completed
        assert first.message == "Payment processed successfully. Remaining balance: ₹55.00."

        second = PaymentService.process_payment(
            order_100.pk, upi_method.pk, amount="55.00", upi_reference="UPI-7781",
            settings_provider=settings_provider,
        )
        assert second.order_completed
        assert Payment.objects.get(pk=second.payment_id).reference_number == "UPI-7781"

    def test_tip_is_added_to_order_total(self, order_100, cash_method, settings_provider):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="105.00", tip_amount="10.00",
            settings_provider=settings_provider,
        )
        order = reload(order_100)
        assert order.tip_amount == Decimal("10.00")
        assert order.total_amount == Decimal("115.00")
        assert result.order_completed


@pytest.mark.django_db
class TestRoundoff:
    def test_roundoff_is_computed_and_aggregated(self, order_factory, cash_method, settings_provider):
        # 99.60 + 5% = 104.58
        order = order_factory([("Thali", "99.60", 1)])
        assert reload(order).total_amount == Decimal("104.58")

        result = PaymentService.process_payment(
            order.pk, cash_method.pk, amount="104.58", roundoff_hint="0.42",
            settings_provider=settings_provider,
        )

        payment = Payment.objects.get(pk=result.payment_id)
        assert payment.roundoff_adjustment_amt == Decimal("0.42")
        assert payment.amount + payment.roundoff_adjustment_amt == Decimal("105")
        assert reload(order).roundoff_adjustment_amt == Decimal("0.42")
        assert result.order_completed

    def test_mismatched_client_roundoff_is_logged_and_ignored(
        self, order_100, cash_method, settings_provider, caplog
    ):
        result = PaymentService.process_payment(
            order_100.pk, cash_method.pk, amount="104.60", roundoff_hint="1.00",
            settings_provider=settings_provider,
        )
        assert Payment.objects.get(pk=result.payment_id).roundoff_adjustment_amt == Decimal("0.40")
        assert "client roundoff" in caplog.text


@pytest.mark.django_db
class TestCardPayments:
    def test_card_fields_are_required(self, order_100, card_method, settings_provider):
        with pytest.raises(ValidationError, match="Last four digits are required"):
            PaymentService.process_payment(
                order_100.pk, card_method.pk, amount="105.00", card_type="VISA",
                settings_provider=settings_provider,
            )
        with pytest.raises(ValidationError, match="Card type is required"):
            PaymentService.process_payment(
                order_100.pk, card_method.pk, amount="105.00", last_four_digits="4242",
                settings_provider=settings_provider,
            )
        assert not Payment.objects.exists()

    def test_card_payment_parked_when_card_approval_required(self, order_100, card_method, card_approval_provider):
        result = PaymentService.process_payment(
            order_100.pk, card_method.pk, amount="105.00", last_four_digits="4242", card_type="VISA",
            settings_provider=card_approval_provider,
        )
        assert result.payment_status == Status.PENDING
        assert result.message == "Card payment requires approval. It has been saved as pending."
        # Undiscounted pending payments count toward completion
        assert result.order_completed

    def test_card_payment_approved_without_card_policy(self, order_100, card_method, settings_provider):
        result = PaymentService.process_payment(
            order_100.pk, card_method.pk, amount="105.00", last_four_digits="4242", card_type="VISA",
            settings_provider=settings_provider,
        )
        assert result.payment_status == Status.APPROVED


@pytest.mark.django_db
class TestPaymentGuards:
    def test_unknown_order(self, cash_method, settings_provider):
        with pytest.raises(NotFoundError):
            PaymentService.process_payment(
                "00000000-0000-0000-0000-000000000000", cash_method.pk, amount="10.00",
                settings_provider=settings_provider,
            )

    def test_unknown_payment_method(self, order_100, settings_provider):
        with pytest.raises(NotFoundError):
            PaymentService.process_payment(order_100.pk, 999999, amount="10.00", settings_provider=settings_provider)

    def test_inactive_payment_method(self, order_100, cash_method, settings_provider):
        cash_method.is_active = False
        cash_method.save()
        with pytest.raises(ValidationError):
            PaymentService.process_payment(
                order_100.pk, cash_method.pk, amount="10.00", settings_provider=settings_provider
            )

    @pytest.mark.parametrize("amount, tip", [("-1.00", "0"), ("10.00", "-1.00"), ("0", "0")])
    def test_bad_amounts(self, order_100, cash_method, settings_provider, amount, tip):
        with pytest.raises(ValidationError):
            PaymentService.process_payment(
                order_100.pk, cash_method.pk, amount=amount, tip_amount=tip,
                settings_provider=settings_provider,
            )

    def test_completed_order_refuses_payments(self, order_100, cash_method, settings_provider):
        PaymentService.process_payment(order_100.pk, cash_method.pk, amount="105.00", settings_provider=settings_provider)
        with pytest.raises(InvalidStateTransition):
            PaymentService.process_payment(
                order_100.pk, cash_method.pk, amount="1.00", settings_provider=settings_provider
            )

    def test_cancelled_order_refuses_payments(self, order_100, cash_method, settings_provider):
        OrderService.cancel_order(order_100.pk, reason="Walked out")
        with pytest.raises(InvalidStateTransition):
            PaymentService.process_payment(
                order_100.pk, cash_method.pk, amount="105.00", settings_provider=settings_provider
            )


@pytest.mark.django_db
def test_payment_and_completion_are_audited(order_100, cash_method, settings_provider, staff_user):
    result = PaymentService.process_payment(
        order_100.pk, cash_method.pk, amount="105.00", processed_by=staff_user,
        settings_provider=settings_provider,
    )

    assert result.warnings == []
    recorded = PaymentAuditLog.objects.get(order=order_100, action=PaymentAuditLog.Action.PAYMENT_RECORDED)
    assert recorded.payment_id == result.payment_id
    assert recorded.to_status == "Approved"
    assert recorded.actor_name == "Asha Rao"
    assert PaymentAuditLog.objects.filter(order=order_100, action=PaymentAuditLog.Action.ORDER_COMPLETED).count() == 1
