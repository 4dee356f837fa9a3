"""Order service layer (Use Cases).

Orchestrates the backend side of the order tracker: creating and
overwriting order records from client payloads, allocating order
numbers, status changes and completion.  All write operations are
atomic; domain events are published only after the transaction
commits.

Business rules enforced:
- Order numbers are unique and immutable.
- Stage data is normalized through the progression engine, so the
  stored ``current_stage`` is always a valid catalog index and
  ``saved_stages`` only holds existing stages.
- Completion requires the last stage to be current and complete.
- ``completed`` is terminal and only reachable through ``complete_order``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.orders.catalog import StageCatalog, default_catalog
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TOTAL_VALUE_MAX_INTEGER_DIGITS,
    OrderStatus,
)
from modules.orders.dtos import OrderPayloadDTO, OrderSnapshotDTO, StageDetailDTO
from modules.orders.engine import OrderProgress, ProgressionEngine
from modules.orders.events import (
    OrderCompleted,
    OrderCreated,
    OrderStagesSaved,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    DuplicateOrderNumber,
    InvalidOrderStatus,
    OrderNotCompletable,
    OrderNotFound,
    OrderNumberMismatch,
)

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives the repository, the stage catalog and the event bus via
    constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        catalog: Optional[StageCatalog] = None,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        if event_bus is None:
            from shared.infrastructure.bus import event_bus as default_bus

            event_bus = default_bus
        self._order_repo = order_repository
        self._catalog = catalog or default_catalog()
        self._engine = ProgressionEngine(self._catalog)
        self._event_bus = event_bus

    @property
    def catalog(self) -> StageCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, payload: OrderPayloadDTO) -> Order:
        """Create a new order from a client payload.

        Raises:
            DuplicateOrderNumber: the order number is already taken.
        """
        log = logger.bind(order_number=payload.order_number)
        log.info("order.creation_started")

        if self._order_repo.exists_order_number(payload.order_number):
            log.warning("order.duplicate_order_number")
            raise DuplicateOrderNumber(
                f"Order number {payload.order_number} already exists."
            )

        data = self._normalize(payload)
        data["order_number"] = payload.order_number
        data["status"] = self._catalog.initial_status
        try:
            with transaction.atomic():
                order = self._order_repo.create(data)
        except IntegrityError as exc:
            log.warning("order.duplicate_order_number", race=True)
            raise DuplicateOrderNumber(
                f"Order number {payload.order_number} already exists."
            ) from exc

        order.add_domain_event(
            OrderCreated(aggregate_id=order.id, order_number=order.order_number)
        )
        if order.saved_stages:
            order.add_domain_event(
                OrderStagesSaved(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    stages=tuple(order.saved_stages),
                )
            )
        self._publish_on_commit(order)

        log.info("order.created", order_id=str(order.id), stage=order.current_stage)
        return order

    @transaction.atomic
    def replace_order(self, order_id: str, payload: OrderPayloadDTO) -> Order:
        """Overwrite an order with a full client payload (PUT semantics).

        Raises:
            OrderNotFound: order does not exist.
            OrderNumberMismatch: the payload carries another order number.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), order_number=order.order_number)

        if payload.order_number != order.order_number:
            log.warning("order.number_mismatch", received=payload.order_number)
            raise OrderNumberMismatch(
                f"Order {order.order_number} cannot be renamed to "
                f"{payload.order_number}."
            )

        previous_stages = set(order.saved_stages or [])
        order = self._order_repo.replace(order, self._normalize(payload))

        new_stages = tuple(sorted(set(order.saved_stages) - previous_stages))
        if new_stages:
            order.add_domain_event(
                OrderStagesSaved(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    stages=new_stages,
                )
            )
            self._publish_on_commit(order)

        log.info("order.overwritten", stage=order.current_stage)
        return order

    @transaction.atomic
    def complete_order(self, order_id: str) -> Order:
        """Mark an order completed and trigger the client notification.

        Completing an already completed order returns it unchanged.

        Raises:
            OrderNotFound: order does not exist.
            OrderNotCompletable: not on the last stage, or the last stage
                has missing required fields.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), order_number=order.order_number)

        if order.status == OrderStatus.COMPLETED:
            log.info("order.already_completed")
            return order

        progress = self.progress_of(order)
        if not self._engine.can_complete(progress):
            log.warning("order.not_completable", stage=order.current_stage)
            raise OrderNotCompletable(
                f"Order {order.order_number} must be on stage "
                f"{self._catalog.stage_count} with every required field filled."
            )

        old_status = order.status
        order.status = OrderStatus.COMPLETED
        order.completed_at = timezone.now()
        order.saved_stages = sorted(set(order.saved_stages or []) | {order.current_stage})
        self._order_repo.save(order)

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=old_status,
                new_status=OrderStatus.COMPLETED,
            )
        )
        order.add_domain_event(
            OrderCompleted(
                aggregate_id=order.id,
                order_number=order.order_number,
                company_name=order.company_name,
            )
        )
        self._publish_on_commit(order)
        log.info("order.completed")
        return order

    @transaction.atomic
    def update_status(self, order_id: str, new_status: str) -> Order:
        """Transition an order to a new (non-terminal) status.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: unknown status, ``completed``, or a
                transition the state machine forbids.
        """
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus(f"Unknown status {new_status!r}.")
        if new_status == OrderStatus.COMPLETED:
            raise InvalidOrderStatus("Use complete-order to complete an order.")

        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=new_status,
        )

        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {new_status}."
            )

        old_status = order.status
        order.status = new_status
        self._order_repo.save(order)
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=old_status,
                new_status=new_status,
            )
        )
        self._publish_on_commit(order)
        log.info("order.status_updated")
        return order

    @transaction.atomic
    def mark_payment_received(self, order_id: str) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if not order.payment_received:
            order.payment_received = True
            self._order_repo.save(order)
            logger.info("order.payment_received", order_id=str(order.id))
        return order

    def next_order_number(self, today: Optional[date] = None) -> str:
        """Allocate the next free ``ORD-YYYY-NNN`` number for *today*'s year.

        The number is not reserved: the client sends it back with its
        first ``POST /orders`` and a clash surfaces as ``DuplicateOrderNumber``.
        """
        from modules.orders.models import Order

        year = (today or timezone.localdate()).year
        sequence = self._order_repo.count_for_year(year) + 1
        for _ in range(ORDER_NUMBER_MAX_RETRIES):
            candidate = Order.generate_order_number(year, sequence)
            if not self._order_repo.exists_order_number(candidate):
                return candidate
            sequence += 1
        raise RuntimeError(
            f"Failed to find a free order number after "
            f"{ORDER_NUMBER_MAX_RETRIES} attempts"
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by UUID or order number.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)

    def progress_of(self, order: Order) -> OrderProgress:
        snapshot = OrderSnapshotDTO(
            order_number=order.order_number,
            current_stage=order.current_stage,
            form_data=order.form_data or {},
            saved_stages=order.saved_stages or [],
        )
        return self._engine.from_snapshot(snapshot, order_id=str(order.id))

    def completion_percentage(self, order: Order) -> int:
        return self._engine.completion_percentage(self.progress_of(order))

    def stage_details(self, order: Order) -> List[StageDetailDTO]:
        progress = self.progress_of(order)
        history = self._order_repo.stage_history(order)
        return [
            StageDetailDTO(
                stage=state.index,
                name=state.name,
                completed=state.done,
                completed_date=history.get(state.index),
            )
            for state in self._engine.stage_states(progress)
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _normalize(self, payload: OrderPayloadDTO) -> Dict[str, Any]:
        """Turn a client payload into repository field values.

        The payload goes through the engine so invalid stage data is
        clamped rather than stored.
        """
        progress = self._engine.from_snapshot(payload)
        canonical = self._engine.build_persistence_payload(progress)
        return {
            "company_name": payload.company_name or canonical.company_name,
            "product": payload.product or canonical.product,
            "current_stage": canonical.current_stage,
            "form_data": canonical.form_data,
            "saved_stages": canonical.saved_stages,
            "total_value": self._total_value(progress),
        }

    def _total_value(self, progress: OrderProgress) -> Decimal:
        value_field = self._catalog.value_field
        if value_field is None:
            return Decimal("0.00")
        raw = progress.value_of(value_field).strip().replace(",", "")
        try:
            value = Decimal(raw or "0")
        except InvalidOperation:
            return Decimal("0.00")
        if not value.is_finite() or value < 0:
            return Decimal("0.00")
        # Values that do not fit the column are stored as zero.
        if value.adjusted() >= TOTAL_VALUE_MAX_INTEGER_DIGITS:
            return Decimal("0.00")
        try:
            value = value.quantize(Decimal("0.01"))
        except InvalidOperation:
            return Decimal("0.00")
        if value.adjusted() >= TOTAL_VALUE_MAX_INTEGER_DIGITS:
            return Decimal("0.00")
        return value

    def _publish_on_commit(self, order: Order) -> None:
        """Publish the events collected on *order* once the transaction commits."""
        events = order.pull_domain_events()
        if events:
            transaction.on_commit(lambda: self._event_bus.publish_all(events))
