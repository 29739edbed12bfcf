"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.datastructures import State

from manifestarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from manifestarr.application.use_cases.resolve_manifest import (
        ResolveManifestUseCase,
    )
    from manifestarr.domain.ports import ManifestCachePort, ManifestExtractorPort
    from manifestarr.infrastructure.browser.shared_browser import SharedBrowserPool
    from manifestarr.infrastructure.metrics import MetricsCollector


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Domain Ports
    cache: ManifestCachePort
    extractor: ManifestExtractorPort

    # Playwright shared browser (one process, one context per session)
    browser_pool: SharedBrowserPool

    # Application Services
    resolve_manifest_uc: ResolveManifestUseCase

    # Metrics (zero-impact in-memory counters)
    metrics: MetricsCollector

    # Readiness (True between startup completion and shutdown start)
    ready: bool
