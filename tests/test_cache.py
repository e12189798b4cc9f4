"""
Tests for the LRU cache and the workspace read-through cache.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from workspace_sync.storage.cache import LRUCache, WorkspaceCache
from workspace_sync.storage.workspaces import WorkspaceStore
from workspace_sync.sync.models import Workspace
from workspace_sync.utils.errors import WorkspaceError


class TestLRUCache:
    """Test LRU eviction, expiry and statistics."""

    @pytest.mark.asyncio
    async def test_get_and_put(self):
        cache = LRUCache(max_size=2)

        await cache.put("a", 1)

        assert await cache.get("a") == 1
        assert await cache.get("b") is None
        stats = cache.get_stats()
        assert (stats.hits, stats.misses) == (1, 1)
        assert stats.hit_rate == 0.5

    @pytest.mark.asyncio
    async def test_evicts_least_recently_used(self):
        cache = LRUCache(max_size=2)
        await cache.put("a", 1)
        await cache.put("b", 2)
        await cache.get("a")

        await cache.put("c", 3)

        assert await cache.get("b") is None
        assert await cache.get("a") == 1
        assert await cache.get("c") == 3
        assert cache.get_stats().evictions == 1
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_expired_entries_miss(self):
        cache = LRUCache(max_size=2, default_ttl=timedelta(seconds=-1))

        await cache.put("a", 1)

        assert await cache.get("a") is None
        assert cache.get_stats().expirations == 1
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_remove_and_clear(self):
        cache = LRUCache()
        await cache.put("a", 1)

        assert await cache.remove("a") is True
        assert await cache.remove("a") is False

        await cache.put("b", 2)
        await cache.clear()
        assert len(cache) == 0
        assert cache.get_stats().hits == 0


class TestWorkspaceCache:
    """Test read-through workspace resolution."""

    @pytest.fixture
    def backing_store(self, workspace):
        store = AsyncMock(spec=WorkspaceStore)
        store.ensure_workspace.return_value = workspace
        return store

    @pytest.mark.asyncio
    async def test_second_lookup_is_served_from_cache(self, backing_store, workspace):
        cache = WorkspaceCache(backing_store)

        first = await cache.ensure_workspace("user-1", "/home/dev/project")
        second = await cache.ensure_workspace("user-1", "/home/dev/project")

        assert first is workspace and second is workspace
        backing_store.ensure_workspace.assert_awaited_once_with("user-1", "/home/dev/project", "")
        assert cache.stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_keys_are_per_user_and_root(self, backing_store):
        cache = WorkspaceCache(backing_store)

        await cache.ensure_workspace("user-1", "/a")
        await cache.ensure_workspace("user-2", "/a")
        await cache.ensure_workspace("user-1", "/b")

        assert backing_store.ensure_workspace.await_count == 3

    @pytest.mark.asyncio
    async def test_invalidate(self, backing_store):
        cache = WorkspaceCache(backing_store)
        await cache.ensure_workspace("user-1", "/a")

        assert await cache.invalidate("user-1", "/a") is True
        await cache.ensure_workspace("user-1", "/a")

        assert backing_store.ensure_workspace.await_count == 2

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, backing_store, workspace):
        backing_store.ensure_workspace.side_effect = [WorkspaceError("locked"), workspace]
        cache = WorkspaceCache(backing_store)

        with pytest.raises(WorkspaceError):
            await cache.ensure_workspace("user-1", "/a")
        assert await cache.ensure_workspace("user-1", "/a") is workspace

    @pytest.mark.asyncio
    async def test_size_bound(self, backing_store):
        cache = WorkspaceCache(backing_store, max_size=1)

        await cache.ensure_workspace("user-1", "/a")
        await cache.ensure_workspace("user-1", "/b")

        stats = cache.stats()
        assert stats["entries"] == 1
        assert stats["evictions"] == 1

    @pytest.mark.asyncio
    async def test_zero_ttl_never_expires(self, backing_store):
        cache = WorkspaceCache(backing_store, ttl_seconds=0)

        await cache.ensure_workspace("user-1", "/a")
        await cache.ensure_workspace("user-1", "/a")

        assert backing_store.ensure_workspace.await_count == 1

    @pytest.mark.asyncio
    async def test_against_real_store(self, store, user_and_key):
        user, _ = user_and_key
        cache = WorkspaceCache(store)

        ws = await cache.ensure_workspace(user.id, "/home/dev/project")

        assert isinstance(ws, Workspace)
        assert (await store.get_workspace(user.id, "/home/dev/project")).id == ws.id
