"""
Base classes for payment views.
"""

from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from core_backend.base import ReconciliationErrorMixin

logger = logging.getLogger(__name__)


class BasePaymentView(ReconciliationErrorMixin, generics.GenericAPIView):
    """
    Base class for payment command endpoints.

    Validates the body with `serializer_class`, hands the validated data to
    `perform_payment`, and renders the service result with a 201 when a
    payment was recorded.
    """

    permission_classes = [IsAuthenticated]
    success_status = status.HTTP_201_CREATED

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.perform_payment(serializer.validated_data)
        for warning in result.warnings:
            logger.warning(f"{self.__class__.__name__}: {warning}")
        return Response(result.as_dict(), status=self.success_status)

    def perform_payment(self, data):
        raise NotImplementedError("Subclasses must implement perform_payment")
