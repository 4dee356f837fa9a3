"""Explicit success/failure values for calls that must not raise.

Remote persistence calls return a ``Result`` so the caller decides
the fallback instead of relying on logging side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """Either a ``value`` (success) or an ``error`` (failure), never both."""

    value: Optional[T] = None
    error: Optional[E] = None

    @classmethod
    def ok(cls, value: T) -> Result[T, E]:
        return cls(value=value)

    @classmethod
    def fail(cls, error: E) -> Result[T, E]:
        if error is None:
            raise ValueError("A failed Result needs an error.")
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def unwrap_or(self, default: T) -> T:
        """Return the value on success, ``default`` on failure."""
        if self.is_failure:
            return default
        return self.value  # type: ignore[return-value]
