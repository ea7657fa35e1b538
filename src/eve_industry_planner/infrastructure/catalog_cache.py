from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Hashable, TypeVar

T = TypeVar("T")

_MISSING = object()


class CatalogCache:
    """In-memory lookup cache owned by one catalog instance.

    Values are deep-copied in and out unless `clone=False`, which is meant
    for large payloads the caller treats as read-only.
    `invalidate()` drops everything (e.g. after an SDE update).
    """

    def __init__(self) -> None:
        self._data: dict[Hashable, Any] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_load(self, key: Hashable, loader: Callable[[], T], *, clone: bool = True) -> T:
        with self._lock:
            cached = self._data.get(key, _MISSING)
            if cached is not _MISSING:
                self.hits += 1
                return copy.deepcopy(cached) if clone else cached
            self.misses += 1

        value = loader()

        with self._lock:
            self._data[key] = copy.deepcopy(value) if clone else value
        return value

    def invalidate(self, key: Hashable | None = None) -> None:
        with self._lock:
            if key is None:
                logging.debug("Catalog cache cleared (%s entries)", len(self._data))
                self._data.clear()
            else:
                self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
