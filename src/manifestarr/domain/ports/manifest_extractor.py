"""Port for extracting a manifest URL from an embed page."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ManifestExtractorPort(Protocol):
    """Drives an embed page until its player requests a manifest.

    Implementations handle browser automation (overlays, play buttons,
    popups). Page-level anomalies degrade to ``None``; only failures that
    prevent a session from starting are raised (as ``UpstreamError``).
    """

    async def extract(self, target_url: str) -> str | None:
        """Return the first qualifying manifest URL, or None."""
        ...
