from .manifest_cache import ManifestCachePort
from .manifest_extractor import ManifestExtractorPort

__all__ = [
    "ManifestCachePort",
    "ManifestExtractorPort",
]
