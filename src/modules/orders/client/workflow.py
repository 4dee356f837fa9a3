"""Client-side order workflow.

Drives one order through the stages the way the dashboard does:
every transition is applied locally first, then the persistence
payload is mirrored to the local store and sent to the backend.
Backend failures are logged and reported in the returned
``StepOutcome``; they never undo or block local progress.

Persistence rule: ``POST /orders`` while the order has no backend id,
``PUT /orders/{id}`` afterwards.  A ``409`` on create means the backend
already holds the order number, so the save is retried as a ``PUT`` by
order number and the returned id is adopted.

Not thread-safe; one workflow instance drives one order at a time.
"""

from __future__ import annotations

import time
from datetime import date
from typing import Callable, List, NamedTuple, Optional

import structlog

from modules.orders.catalog import StageCatalog, default_catalog
from modules.orders.client.gateway import IOrdersGateway
from modules.orders.client.local_store import LocalOrderStore
from modules.orders.constants import ORDER_NUMBER_PREFIX
from modules.orders.dtos import OrderSnapshotDTO
from modules.orders.engine import OrderProgress, ProgressionEngine, StageState, Transition
from modules.orders.exceptions import PersistenceFailure
from shared.domain.result import Result

logger = structlog.get_logger(__name__)


class StepOutcome(NamedTuple):
    """Local state after a transition plus what the backend said about it.

    ``blocked`` is set when a gate refused the transition; nothing was
    sent to the backend and ``persisted`` carries the gate's message.
    """

    order: OrderProgress
    persisted: Result[str, PersistenceFailure]
    blocked: bool = False


class WorkflowProgress(NamedTuple):
    percentage: int
    stages: List[StageState]


class OrderWorkflow:
    """Local-first session over one order.

    Dependencies (gateway, local store, catalog) are injected; ``clock``
    returns epoch seconds and ``today`` the current date, both only used
    for fallback order numbers.
    """

    def __init__(
        self,
        gateway: IOrdersGateway,
        local_store: LocalOrderStore,
        catalog: Optional[StageCatalog] = None,
        clock: Callable[[], float] = time.time,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._gateway = gateway
        self._local = local_store
        self._engine = ProgressionEngine(catalog or default_catalog())
        self._clock = clock
        self._today = today
        self._order: Optional[OrderProgress] = None

    @property
    def engine(self) -> ProgressionEngine:
        return self._engine

    @property
    def order(self) -> OrderProgress:
        if self._order is None:
            raise RuntimeError("No order loaded; call start_new_order() or load_order().")
        return self._order

    # ------------------------------------------------------------------
    # Session start
    # ------------------------------------------------------------------

    def start_new_order(self) -> OrderProgress:
        """Begin a fresh order with a backend-allocated number.

        Falls back to a timestamp-derived number when the backend cannot
        be reached.
        """
        result = self._gateway.next_order_number()
        if result.is_ok:
            order_number = result.value
        else:
            order_number = self._fallback_order_number()
            logger.warning(
                "order.number_fallback",
                order_number=order_number,
                error=str(result.error),
            )
        self._order = OrderProgress.start(order_number)
        logger.info("order.session_started", order_number=order_number)
        return self._order

    def load_order(self, order_id: str) -> OrderProgress:
        """Resume an order: backend first, then the local mirror, then a default."""
        log = logger.bind(order_id=order_id)

        result = self._gateway.fetch_order(order_id)
        if result.is_ok:
            self._order = self._engine.from_snapshot(result.value, order_id=order_id)
            log.info("order.loaded", source="backend")
            return self._order

        log.warning("order.load_failed", error=str(result.error))
        snapshot = self._local.load(order_id)
        if snapshot is not None:
            self._order = self._engine.from_snapshot(snapshot)
            log.info("order.loaded", source="local")
            return self._order

        self._order = self._engine.from_snapshot(
            OrderSnapshotDTO(order_number=self._derived_order_number(order_id))
        )
        log.info("order.loaded", source="default", order_number=self._order.order_number)
        return self._order

    # ------------------------------------------------------------------
    # Editing and gates
    # ------------------------------------------------------------------

    def edit_field(
        self, field_name: str, value: str, stage: Optional[int] = None
    ) -> OrderProgress:
        """Set a field of ``stage`` (the current stage by default)."""
        order = self.order
        self._order = self._engine.record_field_value(
            order, stage or order.current_stage, field_name, value
        )
        return self._order

    def can_advance(self) -> bool:
        return self._engine.can_advance(self.order)

    def can_retreat(self) -> bool:
        return self._engine.can_retreat(self.order)

    def can_complete(self) -> bool:
        return self._engine.can_complete(self.order)

    def progress(self) -> WorkflowProgress:
        return WorkflowProgress(
            percentage=self._engine.completion_percentage(self.order),
            stages=self._engine.stage_states(self.order),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def next_stage(self) -> StepOutcome:
        """Save the current stage and move to the next one.

        Nothing happens while the current stage has missing required
        fields.  On the last stage the save is recorded without moving.
        """
        order = self.order
        if not self._engine.is_stage_complete(order, order.current_stage):
            return self._blocked("next_stage", "Current stage has missing required fields.")
        return self._apply(self._engine.advance(order))

    def previous_stage(self) -> OrderProgress:
        self._order = self._engine.retreat(self.order)
        return self._order

    def save_and_exit(self) -> StepOutcome:
        return self._apply(self._engine.save(self.order))

    def complete(self) -> StepOutcome:
        """Persist the last stage and ask the backend to complete the order."""
        if not self.can_complete():
            return self._blocked("complete_order", "Order is not ready to be completed.")

        outcome = self._apply(self._engine.save(self.order))
        order = outcome.order
        result = self._gateway.complete_order(order.order_id or order.order_number)
        if result.is_failure:
            logger.warning(
                "order.complete_failed",
                order_number=order.order_number,
                error=str(result.error),
            )
            return StepOutcome(order, Result.fail(result.error))

        logger.info("order.completion_requested", order_number=order.order_number)
        return StepOutcome(order, Result.ok(str(result.value.get("id", order.order_id))))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply(self, transition: Transition) -> StepOutcome:
        self._order = transition.order
        payload = transition.payload
        self._local.save(payload.snapshot())

        log = logger.bind(order_number=payload.order_number, stage=payload.current_stage)
        if self._order.order_id is None:
            result = self._gateway.create_order(payload)
            if result.is_failure and result.error.status_code == 409:
                # Known to the backend already (resumed from the local mirror).
                log.info("order.create_conflict", action="update")
                result = self._gateway.update_order(payload.order_number, payload)
            if result.is_ok and result.value.get("id"):
                self._order = self._order.with_order_id(str(result.value["id"]))
        else:
            result = self._gateway.update_order(self._order.order_id, payload)

        if result.is_failure:
            log.warning("order.persist_failed", error=str(result.error))
            return StepOutcome(self._order, Result.fail(result.error))

        log.info("order.persisted", order_id=self._order.order_id)
        return StepOutcome(self._order, Result.ok(str(self._order.order_id)))

    def _blocked(self, operation: str, message: str) -> StepOutcome:
        logger.info("order.transition_blocked", operation=operation, stage=self.order.current_stage)
        return StepOutcome(
            self.order, Result.fail(PersistenceFailure(operation, message)), blocked=True
        )

    def _fallback_order_number(self) -> str:
        millis = int(self._clock() * 1000)
        return f"{ORDER_NUMBER_PREFIX}-{self._today().year}-{millis % 1_000_000:06d}"

    def _derived_order_number(self, order_id: str) -> str:
        if order_id.startswith(f"{ORDER_NUMBER_PREFIX}-"):
            return order_id
        return f"{ORDER_NUMBER_PREFIX}-{self._today().year}-{order_id.zfill(3)}"
