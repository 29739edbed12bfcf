"""Tests for InMemoryManifestCache."""

from __future__ import annotations

import pytest

from manifestarr.domain.ports.manifest_cache import ManifestCachePort
from manifestarr.infrastructure.cache.memory_cache import (
    DEFAULT_TTL_SECONDS,
    InMemoryManifestCache,
)

_KEY = "https://vidfast.pro/movie/12345?autoPlay=true&server=Vfast"
_URL = "https://cdn.example/stream/abc.m3u8"


class TestInMemoryManifestCache:
    def test_satisfies_port(self, manifest_cache: InMemoryManifestCache) -> None:
        assert isinstance(manifest_cache, ManifestCachePort)

    def test_default_ttl_is_one_hour(self) -> None:
        assert DEFAULT_TTL_SECONDS == 3600
        assert InMemoryManifestCache().ttl.total_seconds() == 3600

    def test_get_missing_returns_none(
        self, manifest_cache: InMemoryManifestCache
    ) -> None:
        assert manifest_cache.get(_KEY) is None

    def test_set_then_get(self, manifest_cache: InMemoryManifestCache) -> None:
        manifest_cache.set(_KEY, _URL)
        assert manifest_cache.get(_KEY) == _URL
        assert len(manifest_cache) == 1

    def test_hit_just_before_expiry(self, manifest_cache, clock) -> None:
        manifest_cache.set(_KEY, _URL)
        clock.advance(3599)
        assert manifest_cache.get(_KEY) == _URL

    def test_expired_entry_is_evicted_on_read(self, manifest_cache, clock) -> None:
        manifest_cache.set(_KEY, _URL)
        clock.advance(3600)
        assert manifest_cache.get(_KEY) is None
        assert len(manifest_cache) == 0

    def test_expired_entries_linger_until_read(self, manifest_cache, clock) -> None:
        manifest_cache.set(_KEY, _URL)
        clock.advance(7200)
        assert len(manifest_cache) == 1

    def test_overwrite_refreshes_timestamp(self, manifest_cache, clock) -> None:
        manifest_cache.set(_KEY, _URL)
        clock.advance(3000)
        manifest_cache.set(_KEY, "https://cdn.example/stream/new.m3u8")
        clock.advance(3000)
        assert manifest_cache.get(_KEY) == "https://cdn.example/stream/new.m3u8"

    def test_read_does_not_extend_ttl(self, manifest_cache, clock) -> None:
        manifest_cache.set(_KEY, _URL)
        clock.advance(3000)
        assert manifest_cache.get(_KEY) == _URL
        clock.advance(600)
        assert manifest_cache.get(_KEY) is None

    def test_custom_ttl(self, clock) -> None:
        cache = InMemoryManifestCache(ttl_seconds=10, clock=clock)
        cache.set(_KEY, _URL)
        clock.advance(9)
        assert cache.get(_KEY) == _URL
        clock.advance(1)
        assert cache.get(_KEY) is None

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_invalid_ttl(self, ttl: int) -> None:
        with pytest.raises(ValueError, match="ttl_seconds"):
            InMemoryManifestCache(ttl_seconds=ttl)

    def test_invalid_max_entries(self) -> None:
        with pytest.raises(ValueError, match="max_entries"):
            InMemoryManifestCache(max_entries=-1)


class TestLruBound:
    def test_unbounded_by_default(self, manifest_cache) -> None:
        for i in range(100):
            manifest_cache.set(f"k{i}", _URL)
        assert len(manifest_cache) == 100

    def test_oldest_entry_evicted(self, clock) -> None:
        cache = InMemoryManifestCache(max_entries=2, clock=clock)
        cache.set("a", "https://x/a.m3u8")
        cache.set("b", "https://x/b.m3u8")
        cache.set("c", "https://x/c.m3u8")
        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("b") == "https://x/b.m3u8"
        assert cache.get("c") == "https://x/c.m3u8"

    def test_read_marks_entry_recent(self, clock) -> None:
        cache = InMemoryManifestCache(max_entries=2, clock=clock)
        cache.set("a", "https://x/a.m3u8")
        cache.set("b", "https://x/b.m3u8")
        assert cache.get("a") == "https://x/a.m3u8"
        cache.set("c", "https://x/c.m3u8")
        assert cache.get("b") is None
        assert cache.get("a") == "https://x/a.m3u8"
