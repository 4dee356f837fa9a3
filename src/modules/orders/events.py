"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    order_number: str = ""


@dataclass(frozen=True)
class OrderStagesSaved(DomainEvent):
    """Raised when a save adds stages to ``saved_stages``."""

    order_number: str = ""
    stages: Tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order status changes."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCompleted(DomainEvent):
    """Raised once, when an order reaches the completed status."""

    order_number: str = ""
    company_name: str = ""
