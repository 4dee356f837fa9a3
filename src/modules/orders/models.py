"""Order and OrderStageHistory models.

Business rules implemented:
- ``order_number`` is a stable external identifier: unique, assigned at
  creation (``ORD-YYYY-NNN``), never changed afterwards.
- ``current_stage`` is always a valid index of the active stage catalog
  (enforced by the service through the progression engine).
- ``form_data`` holds the flattened ``stage{i}_{field}`` values and
  ``saved_stages`` the sorted stages the user explicitly saved.
- Completion is a terminal status, never a deletion.
- Every first save of a stage is recorded in ``OrderStageHistory``
  (see ``signals.py``).
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_PREFIX,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``created_at`` / ``updated_at`` are exposed on the wire as
    ``dateInitiated`` / ``lastUpdated``.  The UUIDv7 ``id`` is the
    backend-assigned ``orderId``.
    """

    order_number: models.CharField = models.CharField(max_length=32, unique=True)
    company_name: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    product: models.CharField = models.CharField(max_length=255, blank=True, default="")
    current_stage: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    form_data: models.JSONField = models.JSONField(default=dict, blank=True)
    saved_stages: models.JSONField = models.JSONField(default=list, blank=True)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.IN_PROGRESS,
    )
    payment_received: models.BooleanField = models.BooleanField(default=False)
    total_value: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    completed_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True, default=None
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["company_name"], name="orders_company_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number(year: int, sequence: int) -> str:
        """Human-readable order number: ``ORD-YYYY-NNN``."""
        return f"{ORDER_NUMBER_PREFIX}-{year}-{sequence:03d}"

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_number} (stage {self.current_stage}, {self.status})"


class OrderStageHistory(BaseModel):
    """Append-only record of the first time each stage was saved.

    ``created_at`` is the stage completion date shown in the order
    detail view.  Records are never edited.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="stage_history",
    )
    stage: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField()

    class Meta:
        db_table = "order_stage_history"
        ordering = ["stage"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "stage"],
                name="order_stage_history_unique_stage",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : stage {self.stage} saved"
