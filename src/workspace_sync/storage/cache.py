"""
Workspace caching for the workspace sync server.

This module provides:
- An LRU cache with TTL expiry and hit/miss statistics
- A read-through cache in front of ``WorkspaceStore.ensure_workspace``

Workspaces are never deleted by the sync server, so an entry can only go
stale if the store is changed behind its back; the TTL bounds that window
and ``invalidate`` drops an entry immediately.
"""

import asyncio
from typing import Optional, Dict, Generic, TypeVar
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from collections import OrderedDict

from ..sync.models import Workspace
from ..utils.logging import get_logger
from .workspaces import WorkspaceStore

logger = get_logger("workspace-sync.cache")

T = TypeVar('T')


@dataclass
class CacheEntry(Generic[T]):
    """Single cache entry with metadata."""
    key: str
    value: T
    created_at: datetime = field(default_factory=datetime.utcnow)
    expires_at: Optional[datetime] = None
    access_count: int = 0

    def is_expired(self) -> bool:
        """Check if entry is expired."""
        if self.expires_at is None:
            return False
        return datetime.utcnow() > self.expires_at


@dataclass
class CacheStats:
    """Cache statistics."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class LRUCache(Generic[T]):
    """LRU cache with TTL support."""

    def __init__(self, max_size: int = 1000, default_ttl: Optional[timedelta] = None):
        """
        Initialize LRU cache.

        Args:
            max_size: Maximum number of entries
            default_ttl: Default time-to-live for entries (None never expires)
        """
        self.max_size = max_size
        self.default_ttl = default_ttl

        self._cache: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._stats = CacheStats()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: str) -> Optional[T]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        async with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                self._stats.misses += 1
                return None

            if entry.is_expired():
                del self._cache[key]
                self._stats.expirations += 1
                self._stats.misses += 1
                return None

            self._cache.move_to_end(key)
            entry.access_count += 1
            self._stats.hits += 1
            return entry.value

    async def put(self, key: str, value: T, ttl: Optional[timedelta] = None) -> None:
        """
        Put value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live (overrides default)
        """
        async with self._lock:
            if key in self._cache:
                del self._cache[key]

            while len(self._cache) >= self.max_size:
                evicted, _ = self._cache.popitem(last=False)
                self._stats.evictions += 1
                logger.debug("cache_entry_evicted", key=evicted)

            ttl = ttl or self.default_ttl
            self._cache[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=datetime.utcnow() + ttl if ttl else None,
            )

    async def remove(self, key: str) -> bool:
        """
        Remove entry from cache.

        Returns:
            True if removed, False if not found
        """
        async with self._lock:
            return self._cache.pop(key, None) is not None

    async def clear(self) -> None:
        """Clear all cache entries."""
        async with self._lock:
            self._cache.clear()
            self._stats = CacheStats()

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats


class WorkspaceCache:
    """Read-through cache for ``ensure_workspace``.

    Exposes the same ``ensure_workspace`` signature as ``WorkspaceStore`` so
    the reconciliation engine can use either.
    """

    def __init__(self, store: WorkspaceStore, max_size: int = 1000, ttl_seconds: int = 300):
        self.store = store
        self._cache: LRUCache[Workspace] = LRUCache(
            max_size=max_size,
            default_ttl=timedelta(seconds=ttl_seconds) if ttl_seconds > 0 else None,
        )

    @staticmethod
    def _key(user_id: str, root_path: str) -> str:
        return f"{user_id}\x00{root_path}"

    async def ensure_workspace(self, user_id: str, root_path: str, name: str = "") -> Workspace:
        """Return the cached workspace or resolve it through the store."""
        key = self._key(user_id, root_path)
        workspace = await self._cache.get(key)
        if workspace is not None:
            return workspace

        workspace = await self.store.ensure_workspace(user_id, root_path, name)
        await self._cache.put(key, workspace)
        return workspace

    async def invalidate(self, user_id: str, root_path: str) -> bool:
        """Drop the cached workspace for ``(user_id, root_path)``.

        The TTL is what keeps entries fresh during normal operation; this is
        the hook for operators or tools that change workspaces in the store
        directly.
        """
        return await self._cache.remove(self._key(user_id, root_path))

    def stats(self) -> Dict[str, float]:
        s = self._cache.get_stats()
        return {
            "entries": len(self._cache),
            "hits": s.hits,
            "misses": s.misses,
            "evictions": s.evictions,
            "expirations": s.expirations,
            "hit_rate": s.hit_rate,
        }
