import django_filters

from core_backend.base.filters import BaseFilterSet
from .models import Payment, SplitBill


class PaymentFilter(BaseFilterSet):
    status = django_filters.MultipleChoiceFilter(choices=Payment.PaymentStatus.choices)
    order = django_filters.UUIDFilter(field_name='order_id')
    payment_method = django_filters.CharFilter(field_name='payment_method__name', lookup_expr='iexact')
    has_discount = django_filters.BooleanFilter(method='filter_has_discount')

    class Meta:
        model = Payment
        fields = ['status', 'order', 'payment_method']

    def filter_has_discount(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.filter(disc_amount__gt=0)
        return queryset.filter(disc_amount=0)


class SplitBillFilter(BaseFilterSet):
    status = django_filters.MultipleChoiceFilter(choices=SplitBill.SplitBillStatus.choices)
    order = django_filters.UUIDFilter(field_name='order_id')

    class Meta:
        model = SplitBill
        fields = ['status', 'order']
