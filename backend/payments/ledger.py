"""
Per-order payment ledger.

Payments are only ever appended; afterwards their status moves along
VALID_TRANSITIONS and nothing else about their money changes. Every aggregate
the order needs (approved/pending sums, live discount/tip/roundoff) is read
back from the rows in one query, never patched incrementally.
"""

from dataclasses import dataclass
from decimal import Decimal
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from core_backend.exceptions import InvalidStateTransition, NotFoundError
from settings.config import RestaurantPolicy
from .models import Payment
from .money import ZERO, round_money

logger = logging.getLogger(__name__)

Status = Payment.PaymentStatus


@dataclass(frozen=True)
class LedgerSums:
    """Aggregates over one order's payments. Sums include amount + tip + roundoff."""

    approved_sum: Decimal = ZERO
    approved_count: int = 0
    pending_sum: Decimal = ZERO
    pending_count: int = 0
    pending_undiscounted_sum: Decimal = ZERO
    pending_undiscounted_count: int = 0
    live_amount_total: Decimal = ZERO
    discount_total: Decimal = ZERO
    tip_total: Decimal = ZERO
    roundoff_total: Decimal = ZERO

    @property
    def pending_discounted_count(self) -> int:
        return self.pending_count - self.pending_undiscounted_count

    def counted_pending_sum(self, policy: RestaurantPolicy) -> Decimal:
        """
        Pending payments that count toward completion: all of them when
        discount approval is off, only the undiscounted ones when it is on.
        """
        if policy.discount_approval_required:
            return self.pending_undiscounted_sum
        return self.pending_sum

    def counted_pending_count(self, policy: RestaurantPolicy) -> int:
        if policy.discount_approval_required:
            return self.pending_undiscounted_count
        return self.pending_count

    def eligible_sum(self, policy: RestaurantPolicy) -> Decimal:
        return self.approved_sum + self.counted_pending_sum(policy)

    def eligible_count(self, policy: RestaurantPolicy) -> int:
        return self.approved_count + self.counted_pending_count(policy)


class PaymentLedger:
    """
    Ledger operations for a single order. The caller holds the order row lock.
    """

    # Pending resolves exactly once; Approved may only be voided; the rest are terminal.
    VALID_TRANSITIONS = {
        Status.PENDING: [Status.APPROVED, Status.REJECTED],
        Status.APPROVED: [Status.VOIDED],
        Status.REJECTED: [],
        Status.VOIDED: [],
    }

    def __init__(self, order):
        self.order = order

    @staticmethod
    def get_payment(payment_id, for_update=False) -> Payment:
        queryset = Payment.objects.select_related("payment_method", "order")
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=payment_id)
        except (Payment.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Payment", payment_id)

    @staticmethod
    def _validate_transition(current_status, target_status) -> bool:
        return target_status in PaymentLedger.VALID_TRANSITIONS.get(current_status, [])

    def record(self, **fields) -> Payment:
        """
        Append a payment row. Status is left to the column default (PENDING);
        the caller then calls enforce_status with the policy decision.
        """
        fields.pop("status", None)
        return Payment.objects.create(order=self.order, **fields)

    def enforce_status(self, payment: Payment, target_status) -> bool:
        """
        Force a freshly recorded payment's stored status to the policy decision.

        Reads the status back from the database rather than trusting the
        instance, so whatever default the insert path applied is corrected.
        Returns True if the stored row had to change.
        """
        stored_status = Payment.objects.filter(pk=payment.pk).values_list("status", flat=True).get()
        if stored_status == target_status:
            payment.status = stored_status
            return False

        now = timezone.now()
        update = {"status": target_status, "updated_at": now}
        if target_status == Status.APPROVED:
            update["approved_at"] = now
        Payment.objects.filter(pk=payment.pk).update(**update)
        for field, value in update.items():
            setattr(payment, field, value)

        logger.info(
            f"Payment {payment.id}: stored status {Status(stored_status).label} "
            f"corrected to {Status(target_status).label}"
        )
        return True

    def transition(self, payment: Payment, target_status, reason: str = "", actor_name: str = "") -> Payment:
        """
        Move a payment along the approval state machine.

        Raises:
            InvalidStateTransition: target is not reachable from the current status
        """
        if not self._validate_transition(payment.status, target_status):
            raise InvalidStateTransition(
                Status(payment.status).label,
                Status(target_status).label,
                message=(
                    f"Cannot change payment from {Status(payment.status).label} to "
                    f"{Status(target_status).label}."
                ),
            )

        old_status = payment.status
        now = timezone.now()
        payment.status = target_status
        payment.reviewed_by_name = actor_name or payment.reviewed_by_name
        update_fields = ["status", "reviewed_by_name", "updated_at"]

        if target_status == Status.APPROVED:
            payment.approved_at = now
            update_fields.append("approved_at")
        elif target_status == Status.REJECTED:
            payment.rejected_at = now
            payment.status_reason = reason
            payment.notes = self._append_note(payment.notes, f"Rejected: {reason}" if reason else "Rejected")
            update_fields += ["rejected_at", "status_reason", "notes"]
        elif target_status == Status.VOIDED:
            payment.voided_at = now
            payment.status_reason = reason
            payment.notes = self._append_note(payment.notes, f"Voided: {reason}" if reason else "Voided")
            update_fields += ["voided_at", "status_reason", "notes"]

        payment.save(update_fields=update_fields)

        logger.info(
            f"Payment {payment.id}: Status transition {Status(old_status).label} -> "
            f"{Status(target_status).label}"
        )
        return payment

    @staticmethod
    def _append_note(notes: str, note: str) -> str:
        return f"{notes} | {note}" if notes else note

    def sums(self) -> LedgerSums:
        """All ledger aggregates for the order, read in a single query."""
        settled = F("amount") + F("tip_amount") + F("roundoff_adjustment_amt")
        approved = Q(status=Status.APPROVED)
        pending = Q(status=Status.PENDING)
        pending_undiscounted = pending & Q(disc_amount=0)
        live = Q(status__in=Payment.LIVE_STATUSES)

        totals = Payment.objects.filter(order_id=self.order.pk).aggregate(
            approved_sum=Sum(settled, filter=approved),
            approved_count=Count("id", filter=approved),
            pending_sum=Sum(settled, filter=pending),
            pending_count=Count("id", filter=pending),
            pending_undiscounted_sum=Sum(settled, filter=pending_undiscounted),
            pending_undiscounted_count=Count("id", filter=pending_undiscounted),
            live_amount_total=Sum("amount", filter=live),
            discount_total=Sum("disc_amount", filter=live),
            tip_total=Sum("tip_amount", filter=live),
            roundoff_total=Sum("roundoff_adjustment_amt", filter=live),
        )

        return LedgerSums(
            **{
                key: (value or 0) if key.endswith("_count") else round_money(value or ZERO)
                for key, value in totals.items()
            }
        )

    def live_payments(self):
        return Payment.objects.filter(order_id=self.order.pk, status__in=Payment.LIVE_STATUSES)
