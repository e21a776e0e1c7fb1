"""
Approval policy for new payments.

Decides whether a payment enters the ledger as APPROVED or parks as PENDING
for a manager. Rules, first match wins:

1. The payment carries a discount: pending iff discount approval is required.
   Card policy is not consulted for a discounted payment.
2. The method requires card info and card approval is required: pending.
3. Otherwise: approved.
"""

from dataclasses import dataclass
from decimal import Decimal

from settings.config import RestaurantPolicy
from .models import Payment, PaymentMethod
from .money import format_money, to_decimal


@dataclass(frozen=True)
class ApprovalDecision:
    status: int
    reason: str
    note: str = ""

    @property
    def requires_approval(self) -> bool:
        return self.status == Payment.PaymentStatus.PENDING


class ApprovalPolicyEvaluator:
    DISCOUNT_APPROVAL = "discount_approval_required"
    CARD_APPROVAL = "card_approval_required"
    AUTO_APPROVED = "auto_approved"

    @staticmethod
    def decide_initial_status(
        disc_amount, payment_method: PaymentMethod, policy: RestaurantPolicy
    ) -> ApprovalDecision:
        if to_decimal(disc_amount) > Decimal("0"):
            if policy.discount_approval_required:
                return ApprovalDecision(
                    status=Payment.PaymentStatus.PENDING,
                    reason=ApprovalPolicyEvaluator.DISCOUNT_APPROVAL,
                    note="Discount applied - requires approval",
                )
            return ApprovalDecision(
                status=Payment.PaymentStatus.APPROVED,
                reason=ApprovalPolicyEvaluator.AUTO_APPROVED,
            )

        if payment_method.requires_card_info and policy.card_payment_approval_required:
            return ApprovalDecision(
                status=Payment.PaymentStatus.PENDING,
                reason=ApprovalPolicyEvaluator.CARD_APPROVAL,
                note="Requires approval",
            )

        return ApprovalDecision(
            status=Payment.PaymentStatus.APPROVED,
            reason=ApprovalPolicyEvaluator.AUTO_APPROVED,
        )

    @staticmethod
    def pending_message(decision: ApprovalDecision, disc_amount, currency: str) -> str:
        """User-facing explanation for a payment that was parked as pending."""
        if decision.reason == ApprovalPolicyEvaluator.DISCOUNT_APPROVAL:
            return (
                f"Payment with discount of {format_money(currency, disc_amount)} requires approval. "
                "It has been saved as pending."
            )
        if decision.reason == ApprovalPolicyEvaluator.CARD_APPROVAL:
            return "Card payment requires approval. It has been saved as pending."
        return "Payment requires approval. It has been saved as pending."
