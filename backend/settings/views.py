from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core_backend.base.viewsets import ReconciliationErrorMixin
from .serializers import RestaurantSettingsSerializer
from .services import SettingsService


class RestaurantSettingsViewSet(ReconciliationErrorMixin, viewsets.GenericViewSet):
    """
    API endpoint for viewing and editing the single RestaurantSettings object.

    - GET /api/settings/restaurant/
    - PATCH /api/settings/restaurant/
    """

    serializer_class = RestaurantSettingsSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        """
        Always returns the single RestaurantSettings instance.
        """
        return SettingsService.get_settings()

    def retrieve(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_object())
        return Response(serializer.data)

    def partial_update(self, request, *args, **kwargs):
        """
        Validates the payload with the serializer, then applies it through
        SettingsService so open orders are recalculated in the same transaction.
        """
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        instance = SettingsService.update_settings(**serializer.validated_data)
        return Response(self.get_serializer(instance).data)
