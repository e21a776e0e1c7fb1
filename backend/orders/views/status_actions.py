from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import CancelOrderSerializer, UpdateOrderStatusSerializer
from orders.services import OrderService


class StatusActionsMixin:
    """Order status moves: forward progression and cancellation."""

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        """
        Moves an order forward (Open -> In Progress -> Ready).
        Completed is only ever reached through payments.
        """
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.update_order_status(pk, serializer.validated_data["status"])
        return self._order_response(order.pk)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request: Request, pk=None) -> Response:
        """Cancels the order. 409 if it is already Completed or Cancelled."""
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.cancel_order(
            pk,
            reason=serializer.validated_data["reason"],
            cancelled_by_name=self.get_actor_name(),
        )
        return self._order_response(order.pk)
