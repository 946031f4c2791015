"""In-memory query cache keyed by hierarchical query keys.

Keys are tuples such as ``("post", {"userId": "u1"}, "list", {})``.
Invalidating a key marks every entry whose key starts with it as stale,
so ``cache.invalidate(("post",))`` reaches all post queries.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

QueryKey = Sequence[Any]


def _canonical(part: Any) -> str:
    return json.dumps(part, sort_keys=True, default=str)


def canonical_key(key: QueryKey) -> tuple[str, ...]:
    """Hashable, order-insensitive form of a query key."""
    return tuple(_canonical(part) for part in key)


def key_variables(variables: dict[str, Any] | None, select: Any = None) -> dict[str, Any]:
    """Variables part of a query key; the selection is part of the identity too."""
    result = dict(variables or {})
    if select is not None:
        result["select"] = select
    return result


@dataclass
class CacheEntry:
    key: tuple[Any, ...]
    data: Any
    stale: bool = False


class QueryCache:
    """Stores query results and invalidates them by key prefix."""

    def __init__(self):
        self._entries: dict[tuple[str, ...], CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return canonical_key(key) in self._entries  # type: ignore[arg-type]

    def get(self, key: QueryKey) -> Any:
        entry = self._entries.get(canonical_key(key))
        return entry.data if entry is not None else None

    def set(self, key: QueryKey, data: Any):
        self._entries[canonical_key(key)] = CacheEntry(tuple(key), data)

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(canonical_key(key))
        return entry is None or entry.stale

    def _matching(self, prefix: QueryKey) -> list[tuple[str, ...]]:
        canonical = canonical_key(prefix)
        size = len(canonical)
        return [stored for stored in self._entries if stored[:size] == canonical]

    def invalidate(self, prefix: QueryKey) -> int:
        """Mark every entry under ``prefix`` stale; returns how many."""
        matched = self._matching(prefix)
        for stored in matched:
            self._entries[stored].stale = True
        logger.debug("invalidated %d entries under %r", len(matched), tuple(prefix))
        return len(matched)

    def remove(self, prefix: QueryKey) -> int:
        """Drop every entry under ``prefix``; returns how many."""
        matched = self._matching(prefix)
        for stored in matched:
            del self._entries[stored]
        return len(matched)

    def clear(self):
        self._entries.clear()

    async def fetch(self, key: QueryKey, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value, calling ``fetcher`` when missing or stale."""
        if not self.is_stale(key):
            return self.get(key)
        data = await fetcher()
        self.set(key, data)
        return data
