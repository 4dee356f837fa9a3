import django_filters

from modules.orders.constants import OrderStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    year = django_filters.NumberFilter(field_name="created_at", lookup_expr="year")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="lte")
    payment_received = django_filters.BooleanFilter(field_name="payment_received")
    ordering = django_filters.OrderingFilter(
        fields=(
            ("created_at", "dateInitiated"),
            ("updated_at", "lastUpdated"),
            ("company_name", "companyName"),
            ("order_number", "orderNumber"),
            ("total_value", "totalValue"),
            ("current_stage", "currentStage"),
            ("status", "status"),
        )
    )

    class Meta:
        model = Order
        fields = [
            "status",
            "year",
            "start_date",
            "end_date",
            "payment_received",
        ]
