"""Order repository interface.

Extends ``IRepository[Order]`` with the look-ups the order tracker
needs: identifier-or-number resolution, row locking for full
overwrites and the per-year counter used to allocate order numbers.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order from already-validated field values."""

    @abstractmethod
    def replace(self, order: Order, data: Dict[str, Any]) -> Order:
        """Overwrite every mutable field of *order* with *data*."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order by UUID **or** order number."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Same as ``get_by_id`` but with a row-level lock."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def queryset(self) -> QuerySet:
        """Base queryset for API-level filtering, search and ordering."""

    @abstractmethod
    def exists_order_number(self, order_number: str) -> bool:
        """Return ``True`` when *order_number* is already taken."""

    @abstractmethod
    def count_for_year(self, year: int) -> int:
        """Number of orders created during *year*."""

    @abstractmethod
    def stage_history(self, order: Order) -> Dict[int, Any]:
        """Map of stage index to the datetime it was first saved."""
