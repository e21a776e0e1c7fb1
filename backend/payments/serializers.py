from decimal import Decimal

from rest_framework import serializers

from core_backend.base import BaseModelSerializer, FieldsetMixin
from .models import Payment, PaymentMethod, SplitBill, SplitBillItem

DISCOUNT_TYPE_CHOICES = [("amount", "Amount"), ("percent", "Percent")]
MONEY = {"max_digits": 10, "decimal_places": 2}


# ============================================================================
# READ SERIALIZERS
# ============================================================================

class PaymentMethodSerializer(BaseModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ["id", "name", "display_name", "is_active", "requires_card_info", "requires_card_present"]


class PaymentSerializer(FieldsetMixin, BaseModelSerializer):
    """
    Ledger row as exposed by the API.

    Fieldsets:
    - list: the money and status columns
    - detail: everything, GST breakdown and card details included
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    payment_method = serializers.SlugRelatedField(slug_field="name", read_only=True)
    order_number = serializers.CharField(source="order.order_number", read_only=True)
    settled_amount = serializers.DecimalField(read_only=True, **MONEY)

    class Meta:
        model = Payment
        exclude = ["processed_by"]
        read_only_fields = [field.name for field in Payment._meta.fields if field.name != "processed_by"]

        fieldsets = {
            "list": [
                "id",
                "order",
                "order_number",
                "payment_method",
                "status",
                "status_display",
                "amount",
                "tip_amount",
                "disc_amount",
                "roundoff_adjustment_amt",
                "settled_amount",
                "created_at",
            ],
            "detail": "__all__",
        }

        required_fields = {"id"}


class SplitBillItemSerializer(BaseModelSerializer):
    menu_item_name = serializers.CharField(source="order_item.menu_item_name", read_only=True)

    class Meta:
        model = SplitBillItem
        fields = ["id", "order_item", "menu_item_name", "quantity", "amount"]
        read_only_fields = fields


class SplitBillSerializer(BaseModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    items = SplitBillItemSerializer(many=True, read_only=True)
    total_amount = serializers.DecimalField(read_only=True, **MONEY)

    class Meta:
        model = SplitBill
        fields = [
            "id",
            "order",
            "status",
            "status_display",
            "amount",
            "tax_amount",
            "total_amount",
            "notes",
            "created_by_name",
            "items",
            "settled_at",
            "voided_at",
            "created_at",
        ]
        read_only_fields = fields


# ============================================================================
# INPUT SERIALIZERS
# ============================================================================

class PaymentLineSerializer(serializers.Serializer):
    """One tender: method, amount, tip and the method-specific fields."""

    payment_method_id = serializers.IntegerField()
    amount = serializers.DecimalField(min_value=Decimal("0.00"), **MONEY)
    tip_amount = serializers.DecimalField(min_value=Decimal("0.00"), default=Decimal("0.00"), **MONEY)
    reference_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    last_four_digits = serializers.CharField(max_length=4, required=False, allow_blank=True, default="")
    card_type = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    authorization_code = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    upi_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ProcessPaymentSerializer(PaymentLineSerializer):
    order_id = serializers.UUIDField()
    discount = serializers.DecimalField(min_value=Decimal("0.00"), default=Decimal("0.00"), **MONEY)
    discount_type = serializers.ChoiceField(choices=DISCOUNT_TYPE_CHOICES, default="amount")
    roundoff = serializers.DecimalField(required=False, allow_null=True, default=None, **MONEY)


class SplitPaymentSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    payments = PaymentLineSerializer(many=True)
    discount = serializers.DecimalField(min_value=Decimal("0.00"), default=Decimal("0.00"), **MONEY)
    discount_type = serializers.ChoiceField(choices=DISCOUNT_TYPE_CHOICES, default="amount")

    def validate_payments(self, value):
        if not value:
            raise serializers.ValidationError("Please add at least one payment.")
        return value


class PaymentReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class SplitBillItemInputSerializer(serializers.Serializer):
    order_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateSplitBillSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    items = SplitBillItemInputSerializer(many=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
