"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import functools
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import structlog
from fastapi import FastAPI

from manifestarr.application.use_cases.resolve_manifest import ResolveManifestUseCase
from manifestarr.infrastructure.browser.manifest_extractor import (
    PlaywrightManifestExtractor,
)
from manifestarr.infrastructure.browser.shared_browser import SharedBrowserPool
from manifestarr.infrastructure.cache.memory_cache import InMemoryManifestCache
from manifestarr.infrastructure.metrics import MetricsCollector
from manifestarr.infrastructure.vidfast.embed_url import build_embed_url
from manifestarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Metrics (recorded into by the use case)
        2. Manifest cache
        3. Shared browser pool (launched lazily on first extraction)
        4. Extractor (uses the pool)
        5. Resolve use case (cache + extractor + URL builder)
    """
    state = cast(AppState, app.state)
    config = state.config
    state.ready = False

    # 1) Metrics collector
    state.metrics = MetricsCollector()

    # 2) Manifest cache
    state.cache = InMemoryManifestCache(
        ttl_seconds=config.cache_ttl_seconds,
        max_entries=config.cache_max_entries,
    )
    log.info(
        "manifest_cache_initialized",
        ttl_seconds=config.cache_ttl_seconds,
        max_entries=config.cache_max_entries,
    )

    # 3) Shared browser pool
    state.browser_pool = SharedBrowserPool(
        engine=config.browser.engine,
        headless=config.browser.headless,
    )
    log.info(
        "browser_pool_configured",
        engine=config.browser.engine,
        headless=config.browser.headless,
    )

    # 4) Extractor
    state.extractor = PlaywrightManifestExtractor(
        state.browser_pool,
        config.extraction,
        user_agent=config.browser.user_agent,
        locale=config.browser.locale,
        viewport=(config.browser.viewport_width, config.browser.viewport_height),
        stealth=config.browser.stealth,
    )

    # 5) Use case
    build_url = functools.partial(
        build_embed_url,
        base_url=config.vidfast.base_url,
        default_server=config.vidfast.default_server,
        autoplay=config.vidfast.autoplay,
    )
    state.resolve_manifest_uc = ResolveManifestUseCase(
        cache=state.cache,
        extractor=state.extractor,
        build_url=build_url,
        default_server=config.vidfast.default_server,
        coalesce=config.coalesce_inflight,
        metrics=state.metrics,
    )

    state.ready = True
    log.info("app_startup_complete")

    try:
        yield
    finally:
        state.ready = False

        await state.resolve_manifest_uc.aclose()
        log.info("inflight_extractions_closed")

        await state.browser_pool.cleanup()
        log.info("browser_pool_closed")

        log.info("app_shutdown_complete")
