"""Domain entities for manifest resolution.

Pure value objects, no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class MediaType(str, Enum):
    """Kind of title a request points at."""

    MOVIE = "movie"
    TV_EPISODE = "tv"


class ExtractionStage(str, Enum):
    """States an extraction session passes through (in order)."""

    LAUNCH = "launch"
    NAVIGATE = "navigate"
    SETTLE = "settle"
    LOCATE_TRIGGER = "locate_trigger"
    INTERACT = "interact"
    GRACE = "grace"
    CLEANUP = "cleanup"
    DONE = "done"


@dataclass(frozen=True)
class MediaRequest:
    """One inbound resolution request.

    ``season`` and ``episode`` are required for ``MediaType.TV_EPISODE``
    and ignored for movies. ``server`` of ``None`` means "use the
    configured default".
    """

    media_type: MediaType
    media_id: str
    season: int | None = None
    episode: int | None = None
    server: str | None = None


@dataclass(frozen=True)
class CacheEntry:
    """A discovered manifest URL and when it was discovered."""

    manifest_url: str
    discovered_at: datetime

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.discovered_at >= ttl


@dataclass(frozen=True)
class ResolvedManifest:
    """Outward-facing result of a successful resolution."""

    manifest_url: str
    server: str
    cached: bool = False


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ManifestError(Exception):
    """Base error for manifest resolution."""


class InvalidRequest(ManifestError):
    """Malformed input (unknown media type, missing season/episode)."""


class ManifestNotFound(ManifestError):
    """Extraction finished without observing a manifest response."""

    def __init__(self, target_url: str) -> None:
        super().__init__("m3u8 not found")
        self.target_url = target_url


class UpstreamError(ManifestError):
    """Browser or target-page failure that prevented extraction."""


class BrowserLaunchError(UpstreamError):
    """The browser instance or its isolated context could not be created."""
