"""In-memory cache for extracted import graphs."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from archloom.graph.model import Edge

# Cache key: (resolved project root, config fingerprint)
CacheKey = tuple[str, str]


@dataclass
class CacheEntry:
    """A cached edge list with the source snapshot it was extracted from."""

    edges: tuple[Edge, ...]
    created_at: float
    source_mtime: float
    file_count: int | None = None


class GraphCache:
    """Cache of raw edge lists, one entry per project configuration.

    An entry is stale once any scanned source file is newer than the
    mtime recorded with it, or once the number of scanned files differs
    from the recorded count (a file was added or deleted).  Only the
    extraction boundary consults the cache; projections and checks never
    see it.
    """

    def __init__(self) -> None:
        self._store: dict[CacheKey, CacheEntry] = {}

    def get(
        self,
        root: str,
        fingerprint: str,
        *,
        source_mtime: float | None = None,
        file_count: int | None = None,
    ) -> tuple[Edge, ...] | None:
        """Get cached edges, or None if miss or stale.

        If *source_mtime* is provided, the entry is dropped when the stored
        mtime is older.  If *file_count* is provided, the entry is dropped
        when it was stored for a different number of files.  Without either
        the cached value is returned unchecked.
        """
        key: CacheKey = (root, fingerprint)
        entry = self._store.get(key)
        if entry is None:
            return None

        stale_mtime = source_mtime is not None and entry.source_mtime < source_mtime
        stale_count = file_count is not None and entry.file_count != file_count
        if stale_mtime or stale_count:
            del self._store[key]
            return None

        return entry.edges

    def put(
        self,
        root: str,
        fingerprint: str,
        edges: tuple[Edge, ...],
        *,
        source_mtime: float,
        file_count: int | None = None,
    ) -> None:
        """Store an edge list in cache."""
        self._store[(root, fingerprint)] = CacheEntry(
            edges=edges,
            created_at=time.monotonic(),
            source_mtime=source_mtime,
            file_count=file_count,
        )

    def clear(self) -> None:
        """Clear all cached entries."""
        self._store.clear()

    def clear_root(self, root: str) -> None:
        """Remove all entries for one project root."""
        keys_to_remove = [k for k in self._store if k[0] == root]
        for k in keys_to_remove:
            del self._store[k]

    def stats(self) -> dict[str, int]:
        """Return cache statistics."""
        return {"entries": len(self._store)}
