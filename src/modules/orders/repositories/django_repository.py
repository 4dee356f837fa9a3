"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Write
operations run inside ``transaction.atomic()``; full overwrites lock
the row first (``select_for_update``) so two PUTs for the same order
are applied one after the other.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.orders.models import Order, OrderStageHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_MUTABLE_FIELDS = (
    "company_name",
    "product",
    "current_stage",
    "form_data",
    "saved_stages",
    "total_value",
)


def _id_lookup(id: str) -> Dict[str, Any]:
    """Resolve *id* as a UUID primary key or, failing that, an order number."""
    try:
        return {"id": UUID(str(id))}
    except ValueError:
        return {"order_number": str(id)}


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create / Replace
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order.

        ``data`` keys: ``order_number`` (required), ``status`` (required)
        plus any of the mutable fields.
        """
        order = Order(
            order_number=data["order_number"],
            status=data["status"],
            **{key: data[key] for key in _MUTABLE_FIELDS if key in data},
        )
        order.save()
        logger.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
        )
        return order

    @transaction.atomic
    def replace(self, order: Order, data: Dict[str, Any]) -> Order:
        for field in _MUTABLE_FIELDS:
            if field in data:
                setattr(order, field, data[field])
        order.save()
        logger.info(
            "order.replaced",
            order_id=str(order.id),
            current_stage=order.current_stage,
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Return ``None`` for unknown identifiers."""
        try:
            return (
                Order.objects.prefetch_related("stage_history")
                .filter(**_id_lookup(id))
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return Order.objects.select_for_update().filter(**_id_lookup(id)).first()
        except (ValueError, ValidationError):
            return None

    def queryset(self) -> QuerySet:
        return Order.objects.all()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders, newest first.

        Supported filter keys are any ORM lookups, typically ``status``,
        ``status__in`` and ``created_at__year``.
        """
        queryset = self.queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def exists_order_number(self, order_number: str) -> bool:
        return Order.objects.filter(order_number=order_number).exists()

    def count_for_year(self, year: int) -> int:
        return Order.objects.filter(created_at__year=year).count()

    def stage_history(self, order: Order) -> Dict[int, Any]:
        return {record.stage: record.created_at for record in order.stage_history.all()}

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order."""
        entity.save()
        logger.info("order.saved", order_id=str(entity.id), status=entity.status)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Hard-delete an order (admin tooling only; the workflow never deletes)."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.deleted", order_id=str(id))
        return True
