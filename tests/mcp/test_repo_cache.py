"""Tests for the repository listing cache."""

import pytest

from dolphin_mcp.mcp.repo_cache import RepoCache, is_expired
from dolphin_mcp.rest.models import RepoInfo

REPOS = [RepoInfo(name="alpha", path="/abs/alpha"), RepoInfo(name="beta", path="/abs/beta")]


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class Loader:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> list[RepoInfo]:
        self.calls += 1
        return REPOS


class TestIsExpired:
    """Pure expiry check."""

    def test_boundary(self):
        assert not is_expired(100.0, 400.0, 300.0)
        assert is_expired(100.0, 400.1, 300.0)


class TestRepoCache:
    """TTL behaviour with an injected clock."""

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def cache(self, clock: FakeClock) -> RepoCache:
        return RepoCache(ttl_sec=300.0, clock=clock)

    def test_empty_is_expired(self, cache: RepoCache):
        assert cache.is_expired()

    @pytest.mark.asyncio
    async def test_loads_once_within_ttl(self, cache: RepoCache, clock: FakeClock):
        loader = Loader()
        await cache.get(loader)
        clock.now += 299
        repos = await cache.get(loader)
        assert loader.calls == 1
        assert [r.name for r in repos] == ["alpha", "beta"]

    @pytest.mark.asyncio
    async def test_reloads_after_ttl(self, cache: RepoCache, clock: FakeClock):
        loader = Loader()
        await cache.get(loader)
        clock.now += 301
        await cache.get(loader)
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate(self, cache: RepoCache):
        loader = Loader()
        await cache.get(loader)
        cache.invalidate()
        assert cache.find("alpha") is None
        await cache.get(loader)
        assert loader.calls == 2

    def test_store_and_find(self, cache: RepoCache, clock: FakeClock):
        cache.store(REPOS)
        assert cache.fetched_at == clock.now
        assert cache.find("beta") is REPOS[1]
        assert cache.find("gamma") is None

    @pytest.mark.asyncio
    async def test_load_failure_keeps_cache_empty(self, cache: RepoCache):
        async def failing() -> list[RepoInfo]:
            raise RuntimeError("down")

        with pytest.raises(RuntimeError):
            await cache.get(failing)
        assert cache.value is None
