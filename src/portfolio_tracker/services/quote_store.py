"""Storage tier behind the quote cache."""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the time it was fetched from a provider."""

    value: Any
    fetched_at: datetime


class QuoteStore(Protocol):
    """
    Key/value tier holding cache entries.

    The store only keeps entries; freshness is judged by the quote cache
    from ``fetched_at``. An external tier shared between processes can
    implement this protocol.
    """

    def get(self, key: str) -> Optional[CacheEntry]:
        ...

    def set(self, key: str, entry: CacheEntry) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def __len__(self) -> int:
        ...


class InMemoryQuoteStore:
    """
    Thread-safe in-process store with an optional LRU bound.

    ``max_entries`` of 0 or None means unbounded. Eviction drops the least
    recently read or written entry; it never alters a surviving entry.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self._max_entries = max_entries or None
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
