"""Manifest Cache Port - Interface for the discovered-manifest store."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ManifestCachePort(Protocol):
    """Maps a canonical target URL to a previously discovered manifest URL.

    Implementations:
      - InMemoryManifestCache (process-local, TTL + optional LRU bound)

    Both operations are synchronous and never suspend, so they are safe to
    call from any coroutine on the event loop without locking.
    """

    def get(self, key: str) -> str | None:
        """Return the cached manifest URL. None = not found / expired."""
        ...

    def set(self, key: str, manifest_url: str) -> None:
        """Store *manifest_url* under *key*, overwriting any existing entry."""
        ...

    def __len__(self) -> int: ...
