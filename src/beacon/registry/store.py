"""
Key-value store boundary for the registry.

This module provides:
- Store: abstract table addressed by (kind, name) with prefix range queries
- InMemoryStore: dict-backed, thread-safe Store for tests and local use
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from .errors import StoreError
from .keys import KIND_ATTR, KINDS, NAME_ATTR
from .records import Item, record_expiry


class Store(ABC):
    """Abstract table of items keyed by partition ``kind`` and sort key ``name``.

    Implementations raise :class:`~beacon.registry.errors.StoreError` when the
    backend rejects a call.
    """

    name = "store"

    @abstractmethod
    def get(self, kind: str, name: str, consistent: bool = True) -> Optional[Item]:
        """Fetch a single item, or None when absent."""

    @abstractmethod
    def batch_put(self, items: List[Item]) -> List[Item]:
        """Write *items*; return the ones the backend did not process."""

    @abstractmethod
    def delete(self, kind: str, name: str) -> None:
        """Delete a single item. Deleting a missing item is not an error."""

    @abstractmethod
    def query(self, kind: str, prefix: Optional[str] = None,
              consistent: bool = True) -> List[Item]:
        """Return every item of *kind* whose sort key starts with *prefix*,
        in ascending sort-key order."""


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class InMemoryStore(Store):
    """Thread-safe, dict-backed store.

    *write_limit* caps how many items a single ``batch_put`` accepts; the rest
    come back unprocessed, the way a throttled table answers a batch write.
    Expired items stay visible until :meth:`reap_expired` runs, as with the
    real store's background TTL sweeper.
    """

    name = "memory"

    def __init__(self, write_limit: Optional[int] = None):
        self._lock = threading.Lock()
        self._items: Dict[Tuple[str, str], Item] = {}
        self.write_limit = write_limit
        self.writes = 0

    def get(self, kind: str, name: str, consistent: bool = True) -> Optional[Item]:
        with self._lock:
            item = self._items.get((kind, name))
            return dict(item) if item is not None else None

    def batch_put(self, items: List[Item]) -> List[Item]:
        limit = len(items) if self.write_limit is None else self.write_limit
        accepted, unprocessed = items[:limit], items[limit:]
        with self._lock:
            for item in accepted:
                key = _item_key(item)
                self._items[key] = dict(item)
                self.writes += 1
        return list(unprocessed)

    def delete(self, kind: str, name: str) -> None:
        with self._lock:
            self._items.pop((kind, name), None)
            self.writes += 1

    def query(self, kind: str, prefix: Optional[str] = None,
              consistent: bool = True) -> List[Item]:
        with self._lock:
            matches = [
                dict(item) for (k, n), item in self._items.items()
                if k == kind and (prefix is None or n.startswith(prefix))
            ]
        matches.sort(key=lambda item: item[NAME_ATTR])
        return matches

    def reap_expired(self, now: Optional[float] = None) -> int:
        """Remove items whose expiry has passed. Returns the number removed."""
        now = time.time() if now is None else now
        with self._lock:
            expired = [
                key for key, item in self._items.items()
                if 0 < record_expiry(item) <= now
            ]
            for key in expired:
                del self._items[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def _item_key(item: Item) -> Tuple[str, str]:
    kind = item.get(KIND_ATTR)
    if kind not in KINDS:
        raise StoreError(f"unknown record kind: {kind!r}")
    return kind, item[NAME_ATTR]
