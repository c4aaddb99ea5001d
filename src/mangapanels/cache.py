"""LRU cache for segmentation results.

Segmentation is a pure function of the pixels and the configuration, so a
result can be reused whenever the same page is segmented again with the
same parameters.
"""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Generic, TypeVar, Optional, TYPE_CHECKING

from numpy.typing import NDArray

if TYPE_CHECKING:
    from .segmenter.models import SegmentationResult

K = TypeVar('K')
V = TypeVar('V')


class LRUCache(Generic[K, V]):
    """Thread-safe LRU cache with configurable maximum size.

    Automatically evicts least recently used items when capacity is exceeded.
    """

    def __init__(self, max_size: int = 50):
        """Initialize cache.

        Args:
            max_size: Maximum number of items to store (at least 1)
        """
        self._max_size = max(1, max_size)
        self._cache: OrderedDict[K, V] = OrderedDict()
        self._lock = Lock()

    def get(self, key: K) -> Optional[V]:
        """Get item from cache, marking it as recently used.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        with self._lock:
            if key not in self._cache:
                return None
            self._cache.move_to_end(key)
            return self._cache[key]

    def put(self, key: K, value: V) -> None:
        """Add or update item in cache.

        Args:
            key: Cache key
            value: Value to store
        """
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self._max_size:
                # Evict oldest item
                self._cache.popitem(last=False)
            self._cache[key] = value

    def remove(self, key: K) -> Optional[V]:
        """Remove item from cache.

        Returns:
            Removed value or None if not found
        """
        with self._lock:
            return self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all items from cache."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        """Get number of items in cache."""
        with self._lock:
            return len(self._cache)


@dataclass
class CachedResult:
    """Cached segmentation result."""
    result: SegmentationResult
    config_hash: str


def raster_key(raster: NDArray) -> str:
    """Digest identifying a raster by shape and pixel bytes."""
    digest = hashlib.sha1(str(raster.shape).encode("ascii"))
    digest.update(raster.tobytes())
    return digest.hexdigest()


class ResultCache:
    """Segmentation results keyed by raster content.

    Entries are validated against the configuration hash so a change of
    parameters invalidates everything cached before it.
    """

    def __init__(self, max_entries: int = 32):
        self._cache: LRUCache[str, CachedResult] = LRUCache(max_entries)
        self._current_config_hash: str = ""

    def set_config_hash(self, config_hash: str) -> None:
        """Update current config hash, clearing the cache if it changed."""
        if config_hash != self._current_config_hash:
            self._cache.clear()
            self._current_config_hash = config_hash

    def get(self, key: str) -> Optional[SegmentationResult]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if entry.config_hash != self._current_config_hash:
            self._cache.remove(key)
            return None
        return entry.result

    def put(self, key: str, result: SegmentationResult) -> None:
        self._cache.put(key, CachedResult(result=result, config_hash=self._current_config_hash))

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._cache)
