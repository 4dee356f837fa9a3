"""Order DTOs shared by the backend and the client workflow.

Framework-agnostic data transfer objects using Pydantic v2.  Python
attributes are snake_case; the wire format (JSON bodies, the local
fallback store) is camelCase through field aliases.  DTOs are immutable
(``frozen=True``).

- ``OrderSnapshotDTO``: ``{orderNumber, currentStage, formData, savedStages}``,
  the shape returned by ``GET /orders/{id}`` and kept in the local store.
- ``OrderPayloadDTO``: the canonical snapshot sent on every save-triggering
  transition (``POST /orders`` and ``PUT /orders/{id}``).
- ``OrderSummaryDTO``: one row of ``GET /orders``.
- ``StageDetailDTO``: per-stage completion info of the detail view.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from modules.orders.models import Order


class OrderSnapshotDTO(BaseModel):
    """Persisted progress of one order."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    order_number: str = Field(alias="orderNumber", min_length=1)
    current_stage: int = Field(default=1, alias="currentStage", ge=1)
    form_data: Dict[str, str] = Field(
        default_factory=dict,
        alias="formData",
        validation_alias=AliasChoices("formData", "fieldValues", "form_data"),
    )
    saved_stages: List[int] = Field(default_factory=list, alias="savedStages")

    @field_validator("form_data", mode="before")
    @classmethod
    def stringify_values(cls, v: Any) -> Any:
        """Numbers and ``null`` sent by older clients become strings."""
        if v is None:
            return {}
        if isinstance(v, dict):
            return {
                str(key): "" if value is None else str(value)
                for key, value in v.items()
            }
        return v

    @field_validator("saved_stages")
    @classmethod
    def normalize_saved_stages(cls, v: List[int]) -> List[int]:
        if any(stage < 1 for stage in v):
            raise ValueError("Saved stages must be positive stage indexes.")
        return sorted(set(v))

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class OrderPayloadDTO(OrderSnapshotDTO):
    """Full-record payload for create (POST) and overwrite (PUT)."""

    order_id: Optional[str] = Field(default=None, alias="orderId")
    company_name: str = Field(default="", alias="companyName")
    product: str = ""

    @field_validator("order_id", mode="before")
    @classmethod
    def stringify_order_id(cls, v: Any) -> Any:
        if isinstance(v, UUID):
            return str(v)
        return v

    def snapshot(self) -> OrderSnapshotDTO:
        return OrderSnapshotDTO(
            order_number=self.order_number,
            current_stage=self.current_stage,
            form_data=self.form_data,
            saved_stages=self.saved_stages,
        )


class OrderSummaryDTO(BaseModel):
    """Listing row for dashboards.

    Dates are optional: rows imported from other systems may lack them,
    and the listing helpers treat missing dates as "unknown".
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    order_number: str = Field(alias="orderNumber")
    company_name: str = Field(default="", alias="companyName")
    current_stage: int = Field(default=1, alias="currentStage", ge=1)
    status: str
    date_initiated: Optional[datetime] = Field(default=None, alias="dateInitiated")
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")
    payment_received: bool = Field(default=False, alias="paymentReceived")
    total_value: Decimal = Field(default=Decimal("0.00"), alias="totalValue")

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        if isinstance(v, UUID):
            return str(v)
        return v

    @field_validator("date_initiated", "last_updated", mode="before")
    @classmethod
    def lenient_datetime(cls, v: Any) -> Any:
        """Unparseable dates become ``None``; naive ones are read as UTC."""
        if isinstance(v, str):
            try:
                v = datetime.fromisoformat(v)
            except ValueError:
                return None
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_entity(cls, order: Order) -> OrderSummaryDTO:
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            company_name=order.company_name,
            current_stage=order.current_stage,
            status=order.status,
            date_initiated=order.created_at,
            last_updated=order.updated_at,
            payment_received=order.payment_received,
            total_value=order.total_value,
        )


class StageDetailDTO(BaseModel):
    """Completion info of one stage for the order detail view."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    stage: int
    name: str
    completed: bool
    completed_date: Optional[datetime] = Field(default=None, alias="completedDate")
