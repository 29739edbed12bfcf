"""Cache Infrastructure - Backend-Implementations."""

from .memory_cache import DEFAULT_TTL_SECONDS, InMemoryManifestCache

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "InMemoryManifestCache",
]
