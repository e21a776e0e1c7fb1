import django_filters

from core_backend.base.filters import BaseFilterSet
from .models import Order


class OrderFilter(BaseFilterSet):
    """
    Filters for the order list.

    `status` accepts several values (?status=0&status=1); `open_only` keeps
    orders that can still take payments.
    """

    status = django_filters.MultipleChoiceFilter(choices=Order.OrderStatus.choices)
    table_name = django_filters.CharFilter(lookup_expr='iexact')
    order_number = django_filters.CharFilter(lookup_expr='icontains')
    open_only = django_filters.BooleanFilter(method='filter_open_only')
    completed_at__gte = django_filters.DateTimeFilter(field_name='completed_at', lookup_expr='gte')
    completed_at__lte = django_filters.DateTimeFilter(field_name='completed_at', lookup_expr='lte')

    class Meta:
        model = Order
        fields = ['status', 'table_name', 'order_number']

    def filter_open_only(self, queryset, name, value):
        if value:
            return queryset.exclude(status__in=Order.TERMINAL_STATUSES)
        return queryset
