"""
Core backend base components.

Foundational viewsets, serializers and filters shared by the orders, payments
and settings apps.
"""

from .viewsets import BaseViewSet, ReadOnlyBaseViewSet, ReconciliationErrorMixin
from .serializers import BaseModelSerializer, FieldsetMixin
from .filters import BaseFilterSet
from .mixins import FieldsetQueryParamsMixin

__all__ = [
    # ViewSets
    'BaseViewSet',
    'ReadOnlyBaseViewSet',
    'ReconciliationErrorMixin',

    # Serializers
    'BaseModelSerializer',
    'FieldsetMixin',

    # Filters
    'BaseFilterSet',

    # Mixins
    'FieldsetQueryParamsMixin',
]
