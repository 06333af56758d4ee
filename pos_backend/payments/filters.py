# payments/filters.py

import django_filters

from payments.models import Payment


class PaymentFilter(django_filters.FilterSet):
    """Query filters shared by the payment list and history endpoints."""

    order_id = django_filters.UUIDFilter(field_name="order_id")
    method = django_filters.ChoiceFilter(choices=Payment.METHOD_CHOICES)
    start_date = django_filters.DateFilter(field_name="paid_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="paid_at", lookup_expr="date__lte")

    class Meta:
        model = Payment
        fields = ["order_id", "method", "start_date", "end_date"]
