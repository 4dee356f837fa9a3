"""Client-side filtering, sorting and summaries over order listings.

Operates on ``OrderSummaryDTO`` rows as returned by ``GET /orders``.
Rows without an initiation date never raise: they match no year
filter, count as the current year in ``available_years`` and sort
after dated rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, List, Optional

from modules.orders.constants import DASHBOARD_PENDING_LIMIT, OPEN_STATES, OrderStatus
from modules.orders.dtos import OrderSummaryDTO

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class SortKey(str, Enum):
    DATE_INITIATED = "dateInitiated"
    COMPANY_NAME = "companyName"
    ORDER_NUMBER = "orderNumber"
    TOTAL_VALUE = "totalValue"


@dataclass(frozen=True)
class OrderListQuery:
    """Filters of the order history page; ``None`` means "all"."""

    search: str = ""
    year: Optional[int] = None
    status: Optional[str] = None
    sort_by: SortKey = SortKey.DATE_INITIATED


@dataclass(frozen=True)
class OrderStats:
    total_orders: int
    pending: int
    payment_pending: int
    completed: int
    total_value: Decimal
    average_value: Decimal


def _matches(order: OrderSummaryDTO, query: OrderListQuery) -> bool:
    term = query.search.strip().lower()
    if term and term not in order.company_name.lower() and term not in order.order_number.lower():
        return False
    if query.year is not None:
        if order.date_initiated is None or order.date_initiated.year != query.year:
            return False
    if query.status is not None and order.status != query.status:
        return False
    return True


def filter_orders(
    orders: Iterable[OrderSummaryDTO], query: OrderListQuery
) -> List[OrderSummaryDTO]:
    """Case-insensitive search on company and order number, plus year and status."""
    return [order for order in orders if _matches(order, query)]


def sort_orders(
    orders: Iterable[OrderSummaryDTO], sort_by: SortKey = SortKey.DATE_INITIATED
) -> List[OrderSummaryDTO]:
    sort_by = SortKey(sort_by)
    if sort_by is SortKey.COMPANY_NAME:
        return sorted(orders, key=lambda o: o.company_name.casefold())

    descending: Callable[[OrderSummaryDTO], object]
    if sort_by is SortKey.ORDER_NUMBER:
        descending = lambda o: o.order_number  # noqa: E731
    elif sort_by is SortKey.TOTAL_VALUE:
        descending = lambda o: o.total_value  # noqa: E731
    else:
        descending = lambda o: o.date_initiated or _OLDEST  # noqa: E731
    return sorted(orders, key=descending, reverse=True)


def apply_query(
    orders: Iterable[OrderSummaryDTO], query: OrderListQuery
) -> List[OrderSummaryDTO]:
    return sort_orders(filter_orders(orders, query), query.sort_by)


def available_years(
    orders: Iterable[OrderSummaryDTO], today: Optional[date] = None
) -> List[int]:
    """Distinct initiation years, newest first."""
    current_year = (today or date.today()).year
    years = {
        order.date_initiated.year if order.date_initiated else current_year
        for order in orders
    }
    return sorted(years, reverse=True)


def pending_orders(
    orders: Iterable[OrderSummaryDTO], limit: int = DASHBOARD_PENDING_LIMIT
) -> List[OrderSummaryDTO]:
    """Open orders for the dashboard, newest first."""
    rows = [order for order in orders if order.status in OPEN_STATES]
    return sort_orders(rows)[:limit]


def summarize(orders: Iterable[OrderSummaryDTO]) -> OrderStats:
    rows = list(orders)
    total_value = sum((order.total_value for order in rows), Decimal("0"))
    average = (total_value / len(rows)).quantize(Decimal("1")) if rows else Decimal("0")
    return OrderStats(
        total_orders=len(rows),
        pending=sum(1 for o in rows if o.status in (OrderStatus.PENDING, OrderStatus.IN_PROGRESS)),
        payment_pending=sum(1 for o in rows if o.status == OrderStatus.PAYMENT_PENDING),
        completed=sum(1 for o in rows if o.status == OrderStatus.COMPLETED),
        total_value=total_value,
        average_value=average,
    )
