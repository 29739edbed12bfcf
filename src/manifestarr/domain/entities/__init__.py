from .media import (
    BrowserLaunchError,
    CacheEntry,
    ExtractionStage,
    InvalidRequest,
    ManifestError,
    ManifestNotFound,
    MediaRequest,
    MediaType,
    ResolvedManifest,
    UpstreamError,
)

__all__ = [
    "BrowserLaunchError",
    "CacheEntry",
    "ExtractionStage",
    "InvalidRequest",
    "ManifestError",
    "ManifestNotFound",
    "MediaRequest",
    "MediaType",
    "ResolvedManifest",
    "UpstreamError",
]
