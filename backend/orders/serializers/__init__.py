"""
Orders serializers package - modular serializer layer.
"""

# Order item serializers
from .order_item_serializers import (
    AddItemSerializer,
    ItemReferenceSerializer,
    OrderItemSerializer,
    UpdateItemQuantitySerializer,
)

# Order serializers
from .order_serializers import OrderCreateSerializer, OrderSerializer

# Status serializers
from .status_serializers import (
    CancelOrderSerializer,
    FireItemsSerializer,
    UpdateOrderStatusSerializer,
)

__all__ = [
    # Order items
    'AddItemSerializer',
    'ItemReferenceSerializer',
    'OrderItemSerializer',
    'UpdateItemQuantitySerializer',

    # Orders
    'OrderCreateSerializer',
    'OrderSerializer',

    # Status
    'CancelOrderSerializer',
    'FireItemsSerializer',
    'UpdateOrderStatusSerializer',
]
