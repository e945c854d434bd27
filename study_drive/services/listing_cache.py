"""
Short-lived read-through cache for listing pages.

Entries expire lazily on read. Any write to the store clears the whole cache.
Flask may serve requests from several threads, so every access holds a lock.
"""
import threading
import time
from typing import Any, Dict, Hashable, Optional, Tuple


class ListingCache:
    """TTL map of listing results."""

    def __init__(self, ttl_seconds: float = 10.0, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: Hashable) -> Optional[Any]:
        """Return a cached value, or None if absent or expired."""
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def get_listing_cache(app) -> ListingCache:
    """Return the app's listing cache, creating it on first use."""
    state = app.extensions.setdefault('study_drive', {})
    cache = state.get('listing_cache')
    if cache is None:
        cache = ListingCache(app.config.get('LISTING_CACHE_TTL_SECONDS', 10))
        state['listing_cache'] = cache
    return cache
