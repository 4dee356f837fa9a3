"""Order progression engine.

Pure, synchronous transformations over an in-memory ``OrderProgress``.
The engine enforces nothing about I/O: it hands persistence payloads
back to its caller, which decides where to send them.

Rules:
- A stage is complete when every required field holds a value that is
  non-empty after stripping whitespace.
- ``advance`` records the current stage as saved and moves forward,
  stopping at the last stage.  It does not re-check completeness; the
  caller gates the action with ``can_advance``.
- ``retreat`` only navigates; it never touches saved stages.
- Navigation clamps at both ends instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, List, Mapping, NamedTuple, Optional

import structlog

from modules.orders.catalog import FieldKey, StageCatalog
from modules.orders.dtos import OrderPayloadDTO

if TYPE_CHECKING:
    from modules.orders.dtos import OrderSnapshotDTO

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderProgress:
    """Local state of one order being walked through the stages."""

    order_number: str
    current_stage: int = 1
    field_values: Mapping[FieldKey, str] = field(default_factory=dict)
    saved_stages: frozenset[int] = frozenset()
    order_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "field_values", MappingProxyType(dict(self.field_values))
        )
        object.__setattr__(self, "saved_stages", frozenset(self.saved_stages))

    @classmethod
    def start(cls, order_number: str, order_id: Optional[str] = None) -> OrderProgress:
        return cls(order_number=order_number, order_id=order_id)

    def value_of(self, key: FieldKey) -> str:
        return self.field_values.get(key, "")

    def with_order_id(self, order_id: Optional[str]) -> OrderProgress:
        return replace(self, order_id=order_id)

    def wire_field_values(self) -> Dict[str, str]:
        return {str(key): value for key, value in sorted(self.field_values.items())}


class Transition(NamedTuple):
    """Outcome of a save-triggering transition."""

    order: OrderProgress
    payload: OrderPayloadDTO


@dataclass(frozen=True)
class StageState:
    index: int
    name: str
    complete: bool
    saved: bool
    current: bool
    done: bool


class ProgressionEngine:
    """Stage-gating rules and payload construction for one catalog."""

    def __init__(self, catalog: StageCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> StageCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_stage_complete(self, order: OrderProgress, stage_index: int) -> bool:
        for definition in self._catalog.required_fields(stage_index):
            key = self._catalog.field_key(stage_index, definition.key)
            if not order.value_of(key).strip():
                return False
        return True

    def completion_percentage(self, order: OrderProgress) -> int:
        percentage = round(order.current_stage / self._catalog.stage_count * 100)
        return max(0, min(100, percentage))

    def is_last_stage(self, order: OrderProgress) -> bool:
        return order.current_stage >= self._catalog.stage_count

    def can_advance(self, order: OrderProgress) -> bool:
        return not self.is_last_stage(order) and self.is_stage_complete(
            order, order.current_stage
        )

    def can_retreat(self, order: OrderProgress) -> bool:
        return order.current_stage > 1

    def can_complete(self, order: OrderProgress) -> bool:
        return self.is_last_stage(order) and self.is_stage_complete(
            order, order.current_stage
        )

    def stage_states(self, order: OrderProgress) -> List[StageState]:
        return [
            StageState(
                index=stage.index,
                name=stage.name,
                complete=self.is_stage_complete(order, stage.index),
                saved=stage.index in order.saved_stages,
                current=stage.index == order.current_stage,
                done=stage.index < order.current_stage
                or stage.index in order.saved_stages,
            )
            for stage in self._catalog
        ]

    # ------------------------------------------------------------------
    # Transformations
    # ------------------------------------------------------------------

    def record_field_value(
        self,
        order: OrderProgress,
        stage_index: int,
        field_name: str,
        value: str,
    ) -> OrderProgress:
        key = self._catalog.field_key(stage_index, field_name)
        values = dict(order.field_values)
        values[key] = value
        return replace(order, field_values=values)

    def advance(self, order: OrderProgress) -> Transition:
        saved = order.saved_stages | {order.current_stage}
        next_stage = min(order.current_stage + 1, self._catalog.stage_count)
        updated = replace(order, current_stage=next_stage, saved_stages=saved)
        logger.debug(
            "order.stage_advanced",
            order_number=order.order_number,
            from_stage=order.current_stage,
            to_stage=next_stage,
        )
        return Transition(updated, self.build_persistence_payload(updated))

    def retreat(self, order: OrderProgress) -> OrderProgress:
        if not self.can_retreat(order):
            return order
        return replace(order, current_stage=order.current_stage - 1)

    def save(self, order: OrderProgress) -> Transition:
        """Save-and-exit: mark the current stage saved without moving."""
        updated = replace(order, saved_stages=order.saved_stages | {order.current_stage})
        return Transition(updated, self.build_persistence_payload(updated))

    def build_persistence_payload(self, order: OrderProgress) -> OrderPayloadDTO:
        product_field = self._catalog.product_field
        return OrderPayloadDTO(
            order_id=order.order_id,
            order_number=order.order_number,
            company_name=order.value_of(self._catalog.company_field),
            product=order.value_of(product_field) if product_field else "",
            current_stage=order.current_stage,
            form_data=order.wire_field_values(),
            saved_stages=sorted(order.saved_stages),
        )

    def from_snapshot(
        self, snapshot: OrderSnapshotDTO, order_id: Optional[str] = None
    ) -> OrderProgress:
        """Rebuild local state from a loaded snapshot.

        Malformed field keys and out-of-range stages are dropped; the
        current stage is clamped into the catalog.
        """
        values: Dict[FieldKey, str] = {}
        for raw_key, value in snapshot.form_data.items():
            try:
                key = FieldKey.parse(raw_key)
            except ValueError:
                logger.warning(
                    "order.field_key_dropped",
                    order_number=snapshot.order_number,
                    key=raw_key,
                )
                continue
            values[key] = value

        stage_count = self._catalog.stage_count
        saved = {stage for stage in snapshot.saved_stages if 1 <= stage <= stage_count}
        current = max(1, min(snapshot.current_stage, stage_count))
        if order_id is None:
            order_id = getattr(snapshot, "order_id", None)
        return OrderProgress(
            order_number=snapshot.order_number,
            current_stage=current,
            field_values=values,
            saved_stages=frozenset(saved),
            order_id=order_id,
        )
