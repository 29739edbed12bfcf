"""In-memory manifest cache with lazy TTL expiry and optional LRU bound.

Entries expire exactly ``ttl_seconds`` after discovery. Expiry is lazy:
a stale entry is dropped by the ``get()`` that finds it, there is no
background sweep. With ``max_entries=0`` the cache is unbounded and its
size is proportional to the distinct titles requested per TTL window.

All operations run synchronously inside the event loop, so no lock is
needed.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog

from manifestarr.domain.entities.media import CacheEntry

log = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryManifestCache:
    """Process-local manifest cache implementing ManifestCachePort."""

    def __init__(
        self,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_entries: int = 0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries < 0:
            raise ValueError("max_entries must be >= 0")
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> str | None:
        """Return the manifest URL for *key*, evicting it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock(), self._ttl):
            del self._entries[key]
            log.debug("manifest_cache_expired", key=key)
            return None

        self._entries.move_to_end(key)
        return entry.manifest_url

    def set(self, key: str, manifest_url: str) -> None:
        """Store *manifest_url* with a fresh timestamp (overwrites)."""
        self._entries[key] = CacheEntry(
            manifest_url=manifest_url,
            discovered_at=self._clock(),
        )
        self._entries.move_to_end(key)

        if self._max_entries and len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            log.debug(
                "manifest_cache_evicted",
                key=evicted,
                max_entries=self._max_entries,
            )
