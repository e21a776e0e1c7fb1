import django_filters


class BaseFilterSet(django_filters.FilterSet):
    """
    Base filter set with the common created/updated date range filters.

    Date-only inputs ("2025-11-11") are accepted by DateTimeFilter and are
    treated as midnight.
    """

    created_after = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')
    updated_after = django_filters.DateTimeFilter(field_name='updated_at', lookup_expr='gte')
    updated_before = django_filters.DateTimeFilter(field_name='updated_at', lookup_expr='lte')
