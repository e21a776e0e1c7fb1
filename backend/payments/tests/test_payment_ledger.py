"""
Payment ledger tests: aggregates, status enforcement and the payment state
machine.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import InvalidStateTransition, NotFoundError
from payments.ledger import PaymentLedger
from payments.models import Payment
from settings.config import RestaurantPolicy

Status = Payment.PaymentStatus


def _record(ledger, method, status, amount, tip="0.00", disc="0.00", roundoff="0.00"):
    payment = ledger.record(
        payment_method=method,
        amount=Decimal(amount),
        tip_amount=Decimal(tip),
        disc_amount=Decimal(disc),
        roundoff_adjustment_amt=Decimal(roundoff),
    )
    ledger.enforce_status(payment, status)
    return payment


@pytest.mark.django_db
class TestLedgerSums:
    def test_empty_ledger(self, order_100):
        sums = PaymentLedger(order_100).sums()
        assert sums.approved_sum == Decimal("0.00")
        assert sums.approved_count == 0
        assert sums.pending_count == 0

    def test_sums_by_status(self, order_100, cash_method):
        ledger = PaymentLedger(order_100)
        _record(ledger, cash_method, Status.APPROVED, "50.00", tip="5.00", roundoff="0.40")
        _record(ledger, cash_method, Status.PENDING, "30.00", disc="10.00")
        _record(ledger, cash_method, Status.PENDING, "10.00")
        rejected = _record(ledger, cash_method, Status.PENDING, "99.00", disc="5.00")
        ledger.transition(rejected, Status.REJECTED, reason="typo")

        sums = ledger.sums()
        assert sums.approved_sum == Decimal("55.40")
        assert sums.approved_count == 1
        assert sums.pending_sum == Decimal("40.00")
        assert sums.pending_count == 2
        assert sums.pending_undiscounted_sum == Decimal("10.00")
        assert sums.pending_discounted_count == 1
        # Rejected rows contribute nothing
        assert sums.discount_total == Decimal("10.00")
        assert sums.tip_total == Decimal("5.00")
        assert sums.roundoff_total == Decimal("0.40")
        assert sums.live_amount_total == Decimal("90.00")

    def test_counted_pending_follows_discount_policy(self, order_100, cash_method):
        ledger = PaymentLedger(order_100)
        _record(ledger, cash_method, Status.PENDING, "30.00", disc="10.00")
        _record(ledger, cash_method, Status.PENDING, "10.00")
        sums = ledger.sums()

        assert sums.counted_pending_sum(RestaurantPolicy(discount_approval_required=False)) == Decimal("40.00")
        assert sums.counted_pending_sum(RestaurantPolicy(discount_approval_required=True)) == Decimal("10.00")


@pytest.mark.django_db
class TestStatusEnforcement:
    def test_new_row_starts_pending_then_is_forced_to_decision(self, order_100, cash_method):
        ledger = PaymentLedger(order_100)
        payment = ledger.record(payment_method=cash_method, amount=Decimal("10.00"), status=Status.APPROVED)
        # The insert ignores any status passed in
        assert Payment.objects.get(pk=payment.pk).status == Status.PENDING

        assert ledger.enforce_status(payment, Status.APPROVED) is True
        stored = Payment.objects.get(pk=payment.pk)
        assert stored.status == Status.APPROVED
        assert stored.approved_at is not None

    def test_enforce_is_idempotent(self, order_100, cash_method):
        ledger = PaymentLedger(order_100)
        payment = _record(ledger, cash_method, Status.APPROVED, "10.00")
        assert ledger.enforce_status(payment, Status.APPROVED) is False


@pytest.mark.django_db
class TestTransitions:
    def test_pending_can_be_approved_once(self, order_100, cash_method):
        ledger = PaymentLedger(order_100)
        payment = _record(ledger, cash_method, Status.PENDING, "10.00")
        ledger.transition(payment, Status.APPROVED, actor_name="Manager")

        assert payment.reviewed_by_name == "Manager"
        with pytest.raises(InvalidStateTransition):
            ledger.transition(payment, Status.APPROVED)

    def test_reject_records_reason_in_notes(self, order_100, cash_method):
        ledger = PaymentLedger(order_100)
        payment = _record(ledger, cash_method, Status.PENDING, "10.00")
        ledger.transition(payment, Status.REJECTED, reason="wrong table")

        stored = Payment.objects.get(pk=payment.pk)
        assert stored.status == Status.REJECTED
        assert stored.notes == "Rejected: wrong table"
        assert stored.rejected_at is not None

    @pytest.mark.parametrize(
        "start, target",
        [
            (Status.PENDING, Status.VOIDED),
            (Status.APPROVED, Status.REJECTED),
            (Status.APPROVED, Status.PENDING),
        ],
    )
    def test_invalid_transitions(self, order_100, cash_method, start, target):
        ledger = PaymentLedger(order_100)
        payment = _record(ledger, cash_method, start, "10.00")
        with pytest.raises(InvalidStateTransition):
            ledger.transition(payment, target)
        assert Payment.objects.get(pk=payment.pk).status == start

    def test_voided_and_rejected_are_terminal(self, order_100, cash_method):
        ledger = PaymentLedger(order_100)
        payment = _record(ledger, cash_method, Status.APPROVED, "10.00")
        ledger.transition(payment, Status.VOIDED, reason="duplicate")
        for target in (Status.APPROVED, Status.PENDING, Status.REJECTED):
            with pytest.raises(InvalidStateTransition):
                ledger.transition(payment, target)


@pytest.mark.django_db
@pytest.mark.parametrize("payment_id", ["00000000-0000-0000-0000-000000000000", "not-a-uuid"])
def test_get_payment_not_found(payment_id):
    with pytest.raises(NotFoundError):
        PaymentLedger.get_payment(payment_id)
