from .manifest_extractor import (
    DEFAULT_USER_AGENT,
    ExtractionSession,
    PlaywrightManifestExtractor,
)
from .shared_browser import BrowserEngine, SharedBrowserPool

__all__ = [
    "DEFAULT_USER_AGENT",
    "BrowserEngine",
    "ExtractionSession",
    "PlaywrightManifestExtractor",
    "SharedBrowserPool",
]
