from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core_backend.base import FieldsetQueryParamsMixin, ReadOnlyBaseViewSet
from core_backend.base.viewsets import ReconciliationErrorMixin
from core_backend.pagination import StandardPagination
from payments.filters import PaymentFilter, SplitBillFilter
from payments.models import Payment, PaymentMethod, SplitBill
from payments.serializers import (
    CreateSplitBillSerializer,
    PaymentMethodSerializer,
    PaymentReasonSerializer,
    PaymentSerializer,
    SplitBillSerializer,
)
from payments.services import PaymentService
from payments.split_bill_service import SplitBillService


class PaymentViewSet(FieldsetQueryParamsMixin, ReadOnlyBaseViewSet):
    """
    Read access to the payment ledger, plus the manager actions that move a
    payment through its lifecycle.
    """

    queryset = Payment.objects.select_related("order", "payment_method")
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]
    filterset_class = PaymentFilter
    search_fields = ["order__order_number", "reference_number", "last_four_digits"]
    ordering_fields = ["created_at", "amount", "status"]

    @action(detail=True, methods=["post"])
    def approve(self, request: Request, pk=None) -> Response:
        result = PaymentService.approve_payment(pk, approved_by_name=self.get_actor_name())
        return Response(result.as_dict())

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk=None) -> Response:
        serializer = PaymentReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PaymentService.reject_payment(
            pk, reason=serializer.validated_data["reason"], rejected_by_name=self.get_actor_name()
        )
        return Response(result.as_dict())

    @action(detail=True, methods=["post"])
    def void(self, request: Request, pk=None) -> Response:
        serializer = PaymentReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PaymentService.void_payment(
            pk, reason=serializer.validated_data["reason"], voided_by_name=self.get_actor_name()
        )
        return Response(result.as_dict())


class PaymentMethodViewSet(ReadOnlyBaseViewSet):
    queryset = PaymentMethod.objects.filter(is_active=True)
    serializer_class = PaymentMethodSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None
    ordering = ["display_name"]


class SplitBillViewSet(
    ReconciliationErrorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Split bills: create from item quantities, then settle or void.
    """

    queryset = SplitBill.objects.prefetch_related("items__order_item")
    serializer_class = SplitBillSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination
    filterset_class = SplitBillFilter
    ordering = ["-created_at"]

    def get_serializer_class(self):
        if self.action == "create":
            return CreateSplitBillSerializer
        return SplitBillSerializer

    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        split_bill = SplitBillService.create_split_bill(
            order_id=serializer.validated_data["order_id"],
            items=[dict(item) for item in serializer.validated_data["items"]],
            notes=serializer.validated_data["notes"],
            created_by_name=self.get_actor_name(),
        )
        return self._split_bill_response(split_bill.pk, status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def settle(self, request: Request, pk=None) -> Response:
        split_bill = SplitBillService.settle_split_bill(pk, settled_by_name=self.get_actor_name())
        return self._split_bill_response(split_bill.pk)

    @action(detail=True, methods=["post"])
    def void(self, request: Request, pk=None) -> Response:
        serializer = PaymentReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        split_bill = SplitBillService.void_split_bill(
            pk, reason=serializer.validated_data["reason"], voided_by_name=self.get_actor_name()
        )
        return self._split_bill_response(split_bill.pk)

    def _split_bill_response(self, split_bill_id, status_code=status.HTTP_200_OK) -> Response:
        split_bill = self.get_queryset().get(pk=split_bill_id)
        return Response(SplitBillSerializer(split_bill).data, status=status_code)
