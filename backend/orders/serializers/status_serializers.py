from rest_framework import serializers

from orders.models import Order


class UpdateOrderStatusSerializer(serializers.Serializer):
    """
    Validates the requested status; whether the move is allowed is the
    service's decision.
    """

    status = serializers.ChoiceField(choices=Order.OrderStatus.choices)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class FireItemsSerializer(serializers.Serializer):
    item_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)
