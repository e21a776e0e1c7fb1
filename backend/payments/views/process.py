from payments.serializers import ProcessPaymentSerializer, SplitPaymentSerializer
from payments.services import PaymentService

from .base import BasePaymentView


class PaymentProcessView(BasePaymentView):
    """
    POST /api/payments/process/

    Records one payment against an order. The response says whether the
    payment was approved or parked as pending, and whether the order is now
    completed.
    """

    serializer_class = ProcessPaymentSerializer

    def perform_payment(self, data):
        return PaymentService.process_payment(
            order_id=data["order_id"],
            payment_method_id=data["payment_method_id"],
            amount=data["amount"],
            tip_amount=data["tip_amount"],
            discount=data["discount"],
            discount_type=data["discount_type"],
            roundoff_hint=data.get("roundoff"),
            reference_number=data["reference_number"],
            last_four_digits=data["last_four_digits"],
            card_type=data["card_type"],
            authorization_code=data["authorization_code"],
            upi_reference=data["upi_reference"],
            notes=data["notes"],
            processed_by=self.request.user,
        )


class SplitPaymentProcessView(BasePaymentView):
    """
    POST /api/payments/split/

    Settles an order with several tenders at once; all lines are written or
    none are.
    """

    serializer_class = SplitPaymentSerializer

    def perform_payment(self, data):
        return PaymentService.process_split_payments(
            order_id=data["order_id"],
            lines=[dict(line) for line in data["payments"]],
            discount=data["discount"],
            discount_type=data["discount_type"],
            processed_by=self.request.user,
        )
