from rest_framework import serializers

from core_backend.base import BaseModelSerializer, FieldsetMixin
from orders.models import Order
from .order_item_serializers import AddItemSerializer, OrderItemSerializer


class OrderSerializer(FieldsetMixin, BaseModelSerializer):
    """
    Read serializer for orders.

    Fieldsets:
    - list: number, table, status and the headline money fields
    - detail: everything, with items nested
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    net_subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    created_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "table_name",
            "status",
            "status_display",
            "subtotal",
            "discount_amount",
            "net_subtotal",
            "tax_amount",
            "tip_amount",
            "total_amount",
            "roundoff_adjustment_amt",
            "cancellation_reason",
            "created_by",
            "items",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

        fieldsets = {
            "list": [
                "id",
                "order_number",
                "table_name",
                "status",
                "status_display",
                "total_amount",
                "created_at",
            ],
            "detail": "__all__",
        }

        required_fields = {"id"}


class OrderCreateSerializer(serializers.Serializer):
    table_name = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    items = AddItemSerializer(many=True, required=False, default=list)
