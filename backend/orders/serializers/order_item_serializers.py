from decimal import Decimal

from rest_framework import serializers

from core_backend.base import BaseModelSerializer
from orders.models import OrderItem


class OrderItemSerializer(BaseModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "menu_item_name",
            "quantity",
            "unit_price",
            "subtotal",
            "status",
            "status_display",
            "special_instructions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AddItemSerializer(serializers.Serializer):
    """Input for adding a line to an order (also used for items on order creation)."""

    menu_item_name = serializers.CharField(max_length=150)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0.00"))
    quantity = serializers.IntegerField(min_value=1, default=1)
    special_instructions = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateItemQuantitySerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class ItemReferenceSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
