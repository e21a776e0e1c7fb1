import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, viewsets
from rest_framework.response import Response

from ..exceptions import ReconciliationError
from ..pagination import StandardPagination

logger = logging.getLogger(__name__)


class ReconciliationErrorMixin:
    """
    Translates service-layer ReconciliationErrors into JSON error responses.

    Response body: {"error": <code>, "detail": <message>} with the error's status code.
    """

    def handle_exception(self, exc):
        if isinstance(exc, ReconciliationError):
            logger.info(f"{self.__class__.__name__}: {exc.code} - {exc.message}")
            return Response(exc.as_dict(), status=exc.status_code)
        return super().handle_exception(exc)

    def get_actor_name(self) -> str:
        """Name recorded on audit rows and payments for the requesting user."""
        user = getattr(self.request, "user", None)
        if user is None or not user.is_authenticated:
            return ""
        return user.get_full_name() or user.get_username()


class BaseViewSet(ReconciliationErrorMixin, viewsets.ModelViewSet):
    """
    Base ViewSet that provides standard configuration for all ModelViewSets.

    Features:
    - Standard pagination, filtering, search and ordering
    - Service errors rendered as {"error", "detail"} responses
    """

    pagination_class = StandardPagination

    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]

    ordering = ['-created_at']


class ReadOnlyBaseViewSet(ReconciliationErrorMixin, viewsets.ReadOnlyModelViewSet):
    """
    Base ViewSet for read-only endpoints; writes go through @action methods.
    """

    pagination_class = StandardPagination
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]

    ordering = ['-created_at']
