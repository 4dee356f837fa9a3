"""Key-value store implementations.

- ``InMemoryKeyValueStore``: process-local dict, used by tests and
  short-lived sessions.
- ``DjangoCacheKeyValueStore``: backed by a Django cache (Redis in
  production).  Django's cache API cannot enumerate keys, so the store
  keeps its own index entry next to the values.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import structlog
from django.core.cache import BaseCache

from shared.domain.storage import IKeyValueStore

logger = structlog.get_logger(__name__)


class InMemoryKeyValueStore(IKeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self._data if key.startswith(prefix))


class DjangoCacheKeyValueStore(IKeyValueStore):
    """Key-value store on top of a Django cache alias.

    Entries never expire (``timeout=None``).  ``namespace`` isolates
    independent stores sharing the same cache.
    """

    def __init__(self, cache: Optional[BaseCache] = None, namespace: str = "kv") -> None:
        if cache is None:
            from django.core.cache import cache as default_cache

            cache = default_cache
        self._cache = cache
        self._namespace = namespace
        self._index_key = f"{namespace}:__index__"

    def _cache_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def get(self, key: str) -> Optional[str]:
        return self._cache.get(self._cache_key(key))

    def set(self, key: str, value: str) -> None:
        self._cache.set(self._cache_key(key), value, timeout=None)
        index = set(self._cache.get(self._index_key) or [])
        if key not in index:
            index.add(key)
            self._cache.set(self._index_key, sorted(index), timeout=None)
            logger.debug("kv_store.key_indexed", namespace=self._namespace, key=key)

    def keys(self, prefix: str = "") -> List[str]:
        index = self._cache.get(self._index_key) or []
        return sorted(key for key in index if key.startswith(prefix))
