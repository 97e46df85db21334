from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

MISSING = object()

QueryKey = tuple


class QueryCache:
    """
    Process-local cache of platform reads, keyed by (scope, *segments[, params]).

    A read with stale_seconds=None accepts any cached value; entries are otherwise dropped
    by `invalidate()` after a mutation, by `clear_scope()` on logout, or by least-recently-used
    eviction.
    """

    def __init__(self, max_entries: int = 2000, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max(int(max_entries), 1)
        self._clock = clock
        self._entries: OrderedDict[QueryKey, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: QueryKey, stale_seconds: float | None = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISSING
            fetched_at, value = entry
            if stale_seconds is not None and self._clock() - fetched_at >= stale_seconds:
                del self._entries[key]
                return MISSING
            self._entries.move_to_end(key)
            return value

    def set(self, key: QueryKey, value: Any) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), value)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, prefix: QueryKey) -> int:
        """Drop every entry whose key starts with `prefix`. Returns the number removed."""
        n = len(prefix)
        with self._lock:
            doomed = [k for k in self._entries if k[:n] == prefix]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def invalidate_all_scopes(self, segments: QueryKey) -> int:
        """Drop entries whose key, after the scope, starts with `segments`."""
        n = len(segments)
        with self._lock:
            doomed = [k for k in self._entries if k[1:1 + n] == segments]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear_scope(self, scope: Any) -> int:
        return self.invalidate((scope,))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
