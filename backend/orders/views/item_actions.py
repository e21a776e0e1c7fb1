from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import (
    AddItemSerializer,
    FireItemsSerializer,
    ItemReferenceSerializer,
    UpdateItemQuantitySerializer,
)
from core_backend.exceptions import NotFoundError
from orders.services import OrderItemService


class ItemActionsMixin:
    """Item changes on an open order. Every one recalculates the order's totals."""

    @action(detail=True, methods=["post"], url_path="items")
    def add_item(self, request: Request, pk=None) -> Response:
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        OrderItemService.add_item(pk, **serializer.validated_data)
        return self._order_response(pk, status_code=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="update-item")
    def update_item(self, request: Request, pk=None) -> Response:
        serializer = UpdateItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self._ensure_item_on_order(pk, serializer.validated_data["item_id"])
        OrderItemService.update_item_quantity(
            serializer.validated_data["item_id"], serializer.validated_data["quantity"]
        )
        return self._order_response(pk)

    @action(detail=True, methods=["post"], url_path="cancel-item")
    def cancel_item(self, request: Request, pk=None) -> Response:
        serializer = ItemReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self._ensure_item_on_order(pk, serializer.validated_data["item_id"])
        OrderItemService.cancel_item(serializer.validated_data["item_id"])
        return self._order_response(pk)

    @action(detail=True, methods=["post"], url_path="fire")
    def fire(self, request: Request, pk=None) -> Response:
        """Sends unfired items (all, or the given item_ids) to the kitchen."""
        serializer = FireItemsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        OrderItemService.fire_items(pk, serializer.validated_data["item_ids"] or None)
        return self._order_response(pk)

    def _ensure_item_on_order(self, order_id, item_id):
        order = self.get_object()
        if not order.items.filter(pk=item_id).exists():
            raise NotFoundError("Order item", item_id)
        return order
