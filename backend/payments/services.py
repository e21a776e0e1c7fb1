from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core_backend.exceptions import InvalidStateTransition, NotFoundError, ValidationError
from core_backend.transactions import atomic_operation
from orders.calculators import compute_tax, discount_from_input, split_gst
from orders.models import Order
from orders.services import OrderCalculationService, OrderCompletionService, OrderService
from settings.config import RestaurantPolicy, SettingsProvider, resolve_policy
from .audit import PaymentAuditService
from .ledger import PaymentLedger
from .models import Payment, PaymentAuditLog, PaymentMethod
from .money import (
    ZERO,
    allocate_proportionally,
    compute_roundoff,
    format_money,
    round_money,
    to_decimal,
)
from .policies import ApprovalPolicyEvaluator
from .signals import payment_status_changed

logger = logging.getLogger(__name__)

Status = Payment.PaymentStatus

# Split payment lines must add up to the balance they settle within this much.
SPLIT_SUM_TOLERANCE = Decimal("0.50")


@dataclass
class PaymentResult:
    """Outcome of a payment operation, as reported to the caller."""

    payment_id: object
    payment_status: int
    order_id: object
    order_status: int
    order_completed: bool
    message: str
    requires_approval: bool = False
    warnings: List[str] = field(default_factory=list)
    payment: Optional[Payment] = field(default=None, repr=False)

    @property
    def payment_status_display(self) -> str:
        return Status(self.payment_status).label

    def as_dict(self) -> dict:
        return {
            "payment_id": str(self.payment_id),
            "payment_status": self.payment_status,
            "payment_status_display": self.payment_status_display,
            "requires_approval": self.requires_approval,
            "order_id": str(self.order_id),
            "order_status": self.order_status,
            "order_completed": self.order_completed,
            "message": self.message,
            "warnings": self.warnings,
        }


@dataclass
class SplitPaymentResult:
    order_id: object
    order_status: int
    order_completed: bool
    message: str
    payments: List[PaymentResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "order_id": str(self.order_id),
            "order_status": self.order_status,
            "order_completed": self.order_completed,
            "message": self.message,
            "payments": [payment.as_dict() for payment in self.payments],
            "warnings": self.warnings,
        }


class PaymentService:
    """
    Payment transaction orchestrator.

    Every public operation is one database transaction that locks the order row
    first, then runs in strict phase order:

      1. mutate the ledger (insert / approve / reject / void)
      2. re-derive the order's discount, tip, roundoff and totals from it
      3. evaluate completion

    A policy snapshot is taken once at the start and used by every phase.
    Database failures surface as PersistenceError with nothing written.
    """

    # ------------------------------------------------------------------
    # Lookups and validation
    # ------------------------------------------------------------------

    @staticmethod
    def _get_payment_method(payment_method_id) -> PaymentMethod:
        try:
            method = PaymentMethod.objects.get(pk=payment_method_id)
        except (PaymentMethod.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFoundError("Payment method", payment_method_id)
        if not method.is_active:
            raise ValidationError(f"Payment method '{method.display_name}' is not active.")
        return method

    @staticmethod
    def _lock_payable_order(order_id) -> Order:
        order = OrderService.lock_order(order_id)
        if order.status == Order.OrderStatus.COMPLETED:
            raise InvalidStateTransition(
                order.get_status_display(),
                message=f"Order {order.order_number} has already been completed and paid.",
            )
        if order.status == Order.OrderStatus.CANCELLED:
            raise InvalidStateTransition(
                order.get_status_display(),
                message=f"Cannot process payment for cancelled order {order.order_number}.",
            )
        return order

    @staticmethod
    def _lock_payment(payment_id):
        """
        Lock the payment's order first, then the payment itself, in that order
        for every operation so two requests on one order serialize cleanly.
        """
        payment = PaymentLedger.get_payment(payment_id)
        order = OrderService.lock_order(payment.order_id)
        payment = PaymentLedger.get_payment(payment_id, for_update=True)
        return order, payment

    @staticmethod
    def _validate_card_fields(method: PaymentMethod, last_four_digits, card_type):
        if not method.requires_card_info:
            return
        if not last_four_digits:
            raise ValidationError("Last four digits are required for card payments.")
        if not str(last_four_digits).isdigit() or len(str(last_four_digits)) != 4:
            raise ValidationError("Last four digits must be exactly four digits.")
        if not card_type:
            raise ValidationError("Card type is required for card payments.")

    @staticmethod
    def _validate_amounts(amount: Decimal, tip_amount: Decimal):
        if amount < ZERO:
            raise ValidationError("Payment amount cannot be negative.")
        if tip_amount < ZERO:
            raise ValidationError("Tip amount cannot be negative.")

    @staticmethod
    def _money(value, label) -> Decimal:
        try:
            return round_money(to_decimal(value))
        except (ArithmeticError, TypeError, ValueError):
            raise ValidationError(f"Invalid {label}: {value!r}")

    @staticmethod
    def _tax_share(amount: Decimal, net_subtotal: Decimal, tax: Decimal) -> Decimal:
        """
        Portion of the order's GST carried by a payment of `amount`, in
        proportion to the goods + tax it settles.
        """
        gross = net_subtotal + tax
        if gross <= ZERO or amount <= ZERO:
            return ZERO
        return min(round_money(tax * amount / gross), tax)

    @staticmethod
    def _gst_fields(amount: Decimal, gst_amount: Decimal, policy: RestaurantPolicy) -> dict:
        cgst_amount, sgst_amount = split_gst(gst_amount)
        cgst_percentage, sgst_percentage = split_gst(policy.gst_percentage)
        return {
            "gst_percentage": policy.gst_percentage,
            "cgst_percentage": cgst_percentage,
            "sgst_percentage": sgst_percentage,
            "gst_amount": gst_amount,
            "cgst_amount": cgst_amount,
            "sgst_amount": sgst_amount,
            "amount_excl_gst": amount - gst_amount,
        }

    @staticmethod
    def _remaining_undiscounted(order: Order) -> Decimal:
        return max(order.subtotal - order.discount_amount, ZERO)

    @staticmethod
    def _actor_name(user) -> str:
        if user is None:
            return ""
        return user.get_full_name() or user.get_username()

    @staticmethod
    def _notify(payment: Payment, old_status):
        new_status = payment.status
        transaction.on_commit(
            lambda: payment_status_changed.send(
                sender=Payment, payment=payment, old_status=old_status, new_status=new_status
            )
        )

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------

    @staticmethod
    @atomic_operation
    def process_payment(
        order_id,
        payment_method_id,
        amount,
        tip_amount=0,
        discount=0,
        discount_type="amount",
        roundoff_hint=None,
        reference_number="",
        last_four_digits="",
        card_type="",
        authorization_code="",
        upi_reference="",
        notes="",
        processed_by=None,
        settings_provider: SettingsProvider = None,
    ) -> PaymentResult:
        """
        Record one payment against an order.

        Validates the method's required fields, works out the discount
        (Complementary takes the whole remaining subtotal and zero amount),
        attributes GST, computes the whole-unit roundoff, decides approval,
        then refreshes the order from the ledger and evaluates completion.

        Raises:
            NotFoundError: unknown order or payment method
            ValidationError: missing card fields, negative amounts, discount
                larger than the remaining subtotal
            InvalidStateTransition: order already completed or cancelled
        """
        policy = resolve_policy(provider=settings_provider)
        order = PaymentService._lock_payable_order(order_id)
        method = PaymentService._get_payment_method(payment_method_id)

        amount = PaymentService._money(amount, "amount")
        tip_amount = PaymentService._money(tip_amount, "tip amount")
        PaymentService._validate_amounts(amount, tip_amount)
        PaymentService._validate_card_fields(method, last_four_digits, card_type)

        remaining_subtotal = PaymentService._remaining_undiscounted(order)
        if method.is_complementary:
            disc_amount = remaining_subtotal
            amount = ZERO
        else:
            disc_amount = discount_from_input(order.subtotal, discount, discount_type)
            if disc_amount > remaining_subtotal:
                raise ValidationError(
                    f"Discount {format_money(policy.currency, disc_amount)} exceeds the remaining "
                    f"subtotal {format_money(policy.currency, remaining_subtotal)}."
                )
            if amount == ZERO and tip_amount == ZERO and disc_amount == ZERO:
                raise ValidationError("Payment amount must be greater than zero.")

        # Order tax as it will stand once this payment's discount is applied
        breakdown = compute_tax(order.subtotal, order.discount_amount + disc_amount, policy.gst_percentage)
        gst_amount = PaymentService._tax_share(amount, breakdown.net_subtotal, breakdown.tax)

        roundoff = compute_roundoff(amount)
        if roundoff_hint not in (None, "") and PaymentService._money(roundoff_hint, "roundoff") != roundoff.adjustment:
            logger.warning(
                f"Order {order.order_number}: client roundoff {roundoff_hint} disagrees with "
                f"computed {roundoff.adjustment} for amount {amount}; using computed value"
            )

        if method.is_upi and upi_reference:
            reference_number = upi_reference

        decision = ApprovalPolicyEvaluator.decide_initial_status(disc_amount, method, policy)
        if decision.note:
            notes = f"{notes} | {decision.note}" if notes else decision.note

        # Phase 1: ledger
        ledger = PaymentLedger(order)
        payment = ledger.record(
            payment_method=method,
            amount=amount,
            tip_amount=tip_amount,
            disc_amount=disc_amount,
            roundoff_adjustment_amt=roundoff.adjustment,
            reference_number=reference_number or "",
            last_four_digits=last_four_digits or "",
            card_type=card_type or "",
            authorization_code=authorization_code or "",
            notes=notes or "",
            processed_by=processed_by,
            processed_by_name=PaymentService._actor_name(processed_by),
            **PaymentService._gst_fields(amount, gst_amount, policy),
        )
        ledger.enforce_status(payment, decision.status)

        # Phase 2: order adjustments and totals
        sums = OrderCalculationService.refresh_from_ledger(order, policy)

        # Phase 3: completion
        completion = OrderCompletionService.try_complete(order, policy, sums)

        warnings = PaymentService._audit_payment(
            PaymentAuditLog.Action.PAYMENT_RECORDED, order, payment, "", Status(payment.status).label,
            actor_name=payment.processed_by_name,
            details={"disc_amount": disc_amount, "tip_amount": tip_amount, "policy": decision.reason},
        )
        warnings += PaymentService._audit_completion(order, completion, payment.processed_by_name)
        PaymentService._notify(payment, None)

        if decision.requires_approval:
            message = ApprovalPolicyEvaluator.pending_message(decision, disc_amount, policy.currency)
        elif completion.completed:
            message = f"Payment processed successfully. Order {order.order_number} is now completed."
        else:
            message = (
                f"Payment processed successfully. Remaining balance: "
                f"{format_money(policy.currency, completion.decision.shortfall)}."
            )

        logger.info(
            f"Order {order.order_number}: payment {payment.id} via {method.name} amount={amount} "
            f"tip={tip_amount} disc={disc_amount} roundoff={roundoff.adjustment} "
            f"status={Status(payment.status).label} approved_sum={sums.approved_sum} "
            f"pending_sum={sums.pending_sum} total={order.total_amount} completed={completion.completed}"
        )

        return PaymentResult(
            payment_id=payment.id,
            payment_status=payment.status,
            order_id=order.id,
            order_status=order.status,
            order_completed=completion.completed,
            message=message,
            requires_approval=decision.requires_approval,
            warnings=warnings,
            payment=payment,
        )

    @staticmethod
    @atomic_operation
    def process_split_payments(
        order_id,
        lines,
        discount=0,
        discount_type="amount",
        processed_by=None,
        settings_provider: SettingsProvider = None,
    ) -> SplitPaymentResult:
        """
        Settle an order's balance with several payment lines in one transaction.

        Each line is a dict with payment_method_id, amount and optionally
        tip_amount, last_four_digits, card_type, authorization_code,
        reference_number, upi_reference and notes. The order-level discount
        rides on the first line. Line amounts must add up to the balance they
        settle within SPLIT_SUM_TOLERANCE, or nothing is written.
        """
        policy = resolve_policy(provider=settings_provider)
        order = PaymentService._lock_payable_order(order_id)

        prepared = []
        for line in lines or []:
            amount = PaymentService._money(line.get("amount", 0), "amount")
            tip_amount = PaymentService._money(line.get("tip_amount", 0), "tip amount")
            PaymentService._validate_amounts(amount, tip_amount)
            if amount == ZERO and tip_amount == ZERO:
                continue
            method = PaymentService._get_payment_method(line.get("payment_method_id"))
            if method.is_complementary:
                raise ValidationError("Complementary cannot be combined with other payments.")
            PaymentService._validate_card_fields(method, line.get("last_four_digits"), line.get("card_type"))
            prepared.append((line, method, amount, tip_amount))

        if not prepared:
            raise ValidationError("Please add at least one payment.")

        remaining_subtotal = PaymentService._remaining_undiscounted(order)
        disc_amount = discount_from_input(order.subtotal, discount, discount_type)
        if disc_amount > remaining_subtotal:
            raise ValidationError(
                f"Discount {format_money(policy.currency, disc_amount)} exceeds the remaining "
                f"subtotal {format_money(policy.currency, remaining_subtotal)}."
            )

        ledger = PaymentLedger(order)
        breakdown = compute_tax(order.subtotal, order.discount_amount + disc_amount, policy.gst_percentage)
        already_paid = ledger.sums().live_amount_total
        balance = max(breakdown.net_subtotal + breakdown.tax - already_paid, ZERO)
        line_sum = sum((amount for _line, _method, amount, _tip in prepared), ZERO)

        if abs(balance - line_sum) > SPLIT_SUM_TOLERANCE:
            raise ValidationError(
                f"Split payments total ({format_money(policy.currency, line_sum)}) does not match "
                f"the balance due ({format_money(policy.currency, balance)}). Difference must be "
                f"≤ {format_money(policy.currency, SPLIT_SUM_TOLERANCE)}."
            )

        lines_tax = PaymentService._tax_share(line_sum, breakdown.net_subtotal, breakdown.tax)
        gst_shares = allocate_proportionally(lines_tax, [amount for _line, _method, amount, _tip in prepared])

        # Phase 1: ledger
        recorded = []
        for idx, ((line, method, amount, tip_amount), gst_amount) in enumerate(zip(prepared, gst_shares)):
            line_discount = disc_amount if idx == 0 else ZERO
            decision = ApprovalPolicyEvaluator.decide_initial_status(line_discount, method, policy)
            roundoff = compute_roundoff(amount)

            reference_number = line.get("reference_number") or ""
            if method.is_upi and line.get("upi_reference"):
                reference_number = line["upi_reference"]
            notes = line.get("notes") or ""
            if decision.note:
                notes = f"{notes} | {decision.note}" if notes else decision.note

            payment = ledger.record(
                payment_method=method,
                amount=amount,
                tip_amount=tip_amount,
                disc_amount=line_discount,
                roundoff_adjustment_amt=roundoff.adjustment,
                reference_number=reference_number,
                last_four_digits=line.get("last_four_digits") or "",
                card_type=line.get("card_type") or "",
                authorization_code=line.get("authorization_code") or "",
                notes=notes,
                processed_by=processed_by,
                processed_by_name=PaymentService._actor_name(processed_by),
                **PaymentService._gst_fields(amount, gst_amount, policy),
            )
            ledger.enforce_status(payment, decision.status)
            recorded.append((payment, decision, line_discount))

        # Phase 2 and 3
        sums = OrderCalculationService.refresh_from_ledger(order, policy)
        completion = OrderCompletionService.try_complete(order, policy, sums)

        warnings = []
        results = []
        for payment, decision, line_discount in recorded:
            warnings += PaymentService._audit_payment(
                PaymentAuditLog.Action.PAYMENT_RECORDED, order, payment, "", Status(payment.status).label,
                actor_name=payment.processed_by_name,
                details={"disc_amount": line_discount, "split": True, "policy": decision.reason},
            )
            PaymentService._notify(payment, None)
            results.append(
                PaymentResult(
                    payment_id=payment.id,
                    payment_status=payment.status,
                    order_id=order.id,
                    order_status=order.status,
                    order_completed=completion.completed,
                    message=(
                        ApprovalPolicyEvaluator.pending_message(decision, line_discount, policy.currency)
                        if decision.requires_approval
                        else "Payment recorded."
                    ),
                    requires_approval=decision.requires_approval,
                    payment=payment,
                )
            )
        warnings += PaymentService._audit_completion(order, completion, PaymentService._actor_name(processed_by))

        pending = sum(1 for result in results if result.requires_approval)
        if pending:
            message = f"{len(results)} payments recorded; {pending} require approval and were saved as pending."
        elif completion.completed:
            message = f"Split payments processed successfully. Order {order.order_number} is now completed."
        else:
            message = f"{len(results)} payments recorded."

        logger.info(
            f"Order {order.order_number}: {len(results)} split payment(s) line_sum={line_sum} "
            f"balance={balance} disc={disc_amount} pending={pending} completed={completion.completed}"
        )

        return SplitPaymentResult(
            order_id=order.id,
            order_status=order.status,
            order_completed=completion.completed,
            message=message,
            payments=results,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Approve / reject / void
    # ------------------------------------------------------------------

    @staticmethod
    @atomic_operation
    def approve_payment(payment_id, approved_by_name="", settings_provider: SettingsProvider = None) -> PaymentResult:
        """
        Approve a Pending payment, then re-derive the order and evaluate completion.
        """
        policy = resolve_policy(provider=settings_provider)
        order, payment = PaymentService._lock_payment(payment_id)
        old_status = payment.status

        PaymentLedger(order).transition(payment, Status.APPROVED, actor_name=approved_by_name)
        sums = OrderCalculationService.refresh_from_ledger(order, policy)
        completion = OrderCompletionService.try_complete(order, policy, sums)

        warnings = PaymentService._audit_payment(
            PaymentAuditLog.Action.PAYMENT_APPROVED, order, payment, Status(old_status).label,
            Status(payment.status).label, actor_name=approved_by_name,
        )
        warnings += PaymentService._audit_completion(order, completion, approved_by_name)
        PaymentService._notify(payment, old_status)

        message = "Payment approved."
        if completion.completed:
            message = f"Payment approved. Order {order.order_number} is now completed."

        logger.info(
            f"Order {order.order_number}: payment {payment.id} approved by {approved_by_name or 'unknown'}; "
            f"approved_sum={sums.approved_sum} total={order.total_amount} completed={completion.completed}"
        )
        return PaymentService._result(order, payment, completion.completed, message, warnings)

    @staticmethod
    @atomic_operation
    def reject_payment(
        payment_id, reason="", rejected_by_name="", settings_provider: SettingsProvider = None
    ) -> PaymentResult:
        """
        Reject a Pending payment.

        The rejected row stops counting as live, so any discount or tip it
        carried comes back off the order when the ledger is re-derived.
        """
        policy = resolve_policy(provider=settings_provider)
        order, payment = PaymentService._lock_payment(payment_id)
        old_status = payment.status

        PaymentLedger(order).transition(payment, Status.REJECTED, reason=reason, actor_name=rejected_by_name)
        sums = OrderCalculationService.refresh_from_ledger(order, policy)
        completion = OrderCompletionService.try_complete(order, policy, sums)

        warnings = PaymentService._audit_payment(
            PaymentAuditLog.Action.PAYMENT_REJECTED, order, payment, Status(old_status).label,
            Status(payment.status).label, actor_name=rejected_by_name, reason=reason,
        )
        warnings += PaymentService._audit_completion(order, completion, rejected_by_name)
        PaymentService._notify(payment, old_status)

        logger.info(
            f"Order {order.order_number}: payment {payment.id} rejected ({reason or 'no reason given'}); "
            f"discount={order.discount_amount} total={order.total_amount}"
        )
        return PaymentService._result(order, payment, completion.completed, "Payment rejected.", warnings)

    @staticmethod
    @atomic_operation
    def void_payment(
        payment_id, reason="", voided_by_name="", settings_provider: SettingsProvider = None
    ) -> PaymentResult:
        """
        Void an Approved payment.

        Discount, tax, total and roundoff are re-derived from the remaining live
        payments. A Completed order that is no longer covered goes back to
        Ready so it can be paid again; one that is still covered stays Completed.
        """
        policy = resolve_policy(provider=settings_provider)
        order, payment = PaymentService._lock_payment(payment_id)
        old_status = payment.status

        PaymentLedger(order).transition(payment, Status.VOIDED, reason=reason, actor_name=voided_by_name)
        sums = OrderCalculationService.refresh_from_ledger(order, policy)

        warnings = PaymentService._audit_payment(
            PaymentAuditLog.Action.PAYMENT_VOIDED, order, payment, Status(old_status).label,
            Status(payment.status).label, actor_name=voided_by_name, reason=reason,
        )

        reopened = False
        if order.status == Order.OrderStatus.COMPLETED:
            decision = OrderCompletionService.evaluate(order.total_amount, sums, policy)
            if not decision.completable:
                audit_warning = OrderService.reopen_order(
                    order,
                    reason=(
                        f"Payment {payment.id} voided; balance due "
                        f"{format_money(policy.currency, decision.shortfall)}"
                    ),
                    actor_name=voided_by_name,
                )
                if audit_warning:
                    warnings.append(audit_warning)
                reopened = True
            order_completed = not reopened
        else:
            completion = OrderCompletionService.try_complete(order, policy, sums)
            warnings += PaymentService._audit_completion(order, completion, voided_by_name)
            order_completed = completion.completed

        PaymentService._notify(payment, old_status)

        message = "Payment voided."
        if reopened:
            message = (
                f"Payment voided. Order {order.order_number} is no longer fully paid and has been "
                f"reopened; balance due {format_money(policy.currency, max(order.total_amount - sums.eligible_sum(policy), ZERO))}."
            )

        logger.info(
            f"Order {order.order_number}: payment {payment.id} voided ({reason or 'no reason given'}); "
            f"discount={order.discount_amount} tax={order.tax_amount} total={order.total_amount} "
            f"roundoff={order.roundoff_adjustment_amt} reopened={reopened}"
        )
        return PaymentService._result(order, payment, order_completed, message, warnings)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _result(order, payment, order_completed, message, warnings) -> PaymentResult:
        return PaymentResult(
            payment_id=payment.id,
            payment_status=payment.status,
            order_id=order.id,
            order_status=order.status,
            order_completed=order_completed,
            message=message,
            requires_approval=payment.status == Status.PENDING,
            warnings=warnings,
            payment=payment,
        )

    @staticmethod
    def _audit_payment(action, order, payment, from_status, to_status, actor_name="", reason="", details=None):
        warning = PaymentAuditService.record(
            action,
            order=order,
            payment=payment,
            from_status=from_status,
            to_status=to_status,
            amount=payment.settled_amount,
            actor_name=actor_name,
            reason=reason,
            details=details,
        )
        return [warning] if warning else []

    @staticmethod
    def _audit_completion(order, completion, actor_name=""):
        if not completion.changed:
            return []
        warning = PaymentAuditService.record(
            PaymentAuditLog.Action.ORDER_COMPLETED,
            order=order,
            from_status="",
            to_status=order.get_status_display(),
            amount=order.total_amount,
            actor_name=actor_name,
            reason=completion.decision.reason,
            details={"eligible_sum": completion.decision.eligible_sum},
        )
        return [warning] if warning else []
