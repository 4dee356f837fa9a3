"""Order domain constants.

Defines the backend status vocabulary, the valid status transitions
and the identifiers shared by the backend and the client workflow.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in-progress", "In Progress"
    PAYMENT_PENDING = "payment-pending", "Payment Pending"
    COMPLETED = "completed", "Completed"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PAYMENT_PENDING, OrderStatus.COMPLETED},
    OrderStatus.IN_PROGRESS: {OrderStatus.PAYMENT_PENDING, OrderStatus.COMPLETED},
    OrderStatus.PAYMENT_PENDING: {OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.COMPLETED}

OPEN_STATES: set[str] = {
    OrderStatus.PENDING,
    OrderStatus.IN_PROGRESS,
    OrderStatus.PAYMENT_PENDING,
}

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_MAX_RETRIES = 5

# Order.total_value is DecimalField(max_digits=12, decimal_places=2).
TOTAL_VALUE_MAX_INTEGER_DIGITS = 10

LOCAL_ORDER_KEY_PREFIX = "order_"

UNKNOWN_COMPANY = "Unknown Company"

DASHBOARD_PENDING_LIMIT = 5
