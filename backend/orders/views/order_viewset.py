from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
import logging

from core_backend.base import BaseViewSet, FieldsetQueryParamsMixin
from orders.filters import OrderFilter
from orders.models import Order
from orders.serializers import OrderCreateSerializer, OrderSerializer
from orders.services import OrderService
from payments.split_bill_service import SplitBillService

from .item_actions import ItemActionsMixin
from .status_actions import StatusActionsMixin

logger = logging.getLogger(__name__)


class OrderViewSet(
    StatusActionsMixin,
    ItemActionsMixin,
    FieldsetQueryParamsMixin,
    BaseViewSet,
):
    """
    ViewSet for orders.

    Orders are created, read and acted on; money fields are never written
    directly. This viewset combines:
    - Status moves and cancellation (StatusActionsMixin)
    - Item changes (ItemActionsMixin)
    - Read-only payment and split-bill projections (below)
    """

    queryset = Order.objects.prefetch_related("items").select_related("created_by")
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number", "table_name"]
    ordering_fields = ["created_at", "completed_at", "total_amount", "order_number"]
    http_method_names = ["get", "post", "head", "options"]

    def get_serializer_class(self):
        if self.action == "create":
            return OrderCreateSerializer
        return OrderSerializer

    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.create_order(
            table_name=serializer.validated_data["table_name"],
            created_by=request.user,
            items=serializer.validated_data["items"],
        )
        return self._order_response(order.pk, status_code=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="payment-summary")
    def payment_summary(self, request: Request, pk=None) -> Response:
        """Totals against the ledger: approved, pending and balance due."""
        return Response(OrderService.payment_summary(pk))

    @action(detail=True, methods=["get"], url_path="split-bills/available")
    def available_split_items(self, request: Request, pk=None) -> Response:
        """Per item, the quantity not yet placed on a live split bill."""
        return Response([item.as_dict() for item in SplitBillService.available_items(pk)])

    def _order_response(self, order_id, status_code=status.HTTP_200_OK) -> Response:
        order = self.get_queryset().get(pk=order_id)
        serializer = OrderSerializer(
            order, context={**self.get_serializer_context(), "view_mode": "detail", "requested_fields": None}
        )
        return Response(serializer.data, status=status_code)
