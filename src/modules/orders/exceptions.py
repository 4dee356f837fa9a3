"""Order domain exceptions.

Raised by the catalog and the Service Layer when business rules are
violated.  The API layer (Views) catches these and translates them into
appropriate HTTP responses.

``PersistenceFailure`` is different: it describes a failed call to the
REST backend and travels inside a ``Result`` instead of being raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class StageNotFound(LookupError):
    """The stage index is outside ``[1, N]`` for the active catalog."""


class OrderNotFound(Exception):
    """The requested order does not exist."""


class DuplicateOrderNumber(Exception):
    """An order with the same order number already exists."""


class OrderNumberMismatch(Exception):
    """A full update tried to change the immutable order number."""


class InvalidOrderStatus(Exception):
    """An invalid status transition was attempted."""


class OrderNotCompletable(Exception):
    """The order is not on its last stage or the last stage is incomplete."""


@dataclass(frozen=True)
class PersistenceFailure:
    """Network error or non-2xx answer from the orders backend."""

    operation: str
    message: str
    status_code: Optional[int] = None

    def __str__(self) -> str:
        if self.status_code is None:
            return f"{self.operation} failed: {self.message}"
        return f"{self.operation} failed ({self.status_code}): {self.message}"
