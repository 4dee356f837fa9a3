"""Key-value storage port.

Used as the local, offline mirror of persisted state.  Instances are
always injected into their consumers.
"""

from __future__ import annotations

from typing import List, Optional, Protocol


class IKeyValueStore(Protocol):
    """Minimal string key-value store."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def keys(self, prefix: str = "") -> List[str]: ...
