"""Local fallback mirror of order progress.

One entry per order under ``"order_{orderNumber}"`` holding the JSON
snapshot ``{orderNumber, currentStage, formData, savedStages}``.  It is
what the "continue order" list and the loader read when the backend
is unreachable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import structlog
from pydantic import ValidationError

from modules.orders.catalog import FieldKey
from modules.orders.constants import LOCAL_ORDER_KEY_PREFIX, UNKNOWN_COMPANY
from modules.orders.dtos import OrderSnapshotDTO
from shared.domain.storage import IKeyValueStore

logger = structlog.get_logger(__name__)

COMPANY_FIELD = FieldKey(1, "companyName")


@dataclass(frozen=True)
class SavedOrder:
    """One row of the "continue order" list."""

    order_number: str
    company_name: str
    current_stage: int
    snapshot: OrderSnapshotDTO


class LocalOrderStore:
    def __init__(self, store: IKeyValueStore) -> None:
        self._store = store

    @staticmethod
    def key_for(order_number: str) -> str:
        return f"{LOCAL_ORDER_KEY_PREFIX}{order_number}"

    def save(self, snapshot: OrderSnapshotDTO) -> None:
        self._store.set(
            self.key_for(snapshot.order_number),
            snapshot.model_dump_json(by_alias=True),
        )

    def load(self, order_number: str) -> Optional[OrderSnapshotDTO]:
        """Return the mirrored snapshot, or ``None`` if absent or unreadable."""
        return self._read(self.key_for(order_number))

    def saved_orders(self) -> List[SavedOrder]:
        orders = []
        for key in self._store.keys(LOCAL_ORDER_KEY_PREFIX):
            snapshot = self._read(key)
            if snapshot is None:
                continue
            company = snapshot.form_data.get(str(COMPANY_FIELD), "").strip()
            orders.append(
                SavedOrder(
                    order_number=snapshot.order_number,
                    company_name=company or UNKNOWN_COMPANY,
                    current_stage=snapshot.current_stage,
                    snapshot=snapshot,
                )
            )
        return orders

    def _read(self, key: str) -> Optional[OrderSnapshotDTO]:
        raw = self._store.get(key)
        if raw is None:
            return None
        try:
            return OrderSnapshotDTO.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("order.local_entry_unreadable", key=key, errors=exc.error_count())
            return None
