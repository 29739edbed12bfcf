"""Manifest resolution use case.

MediaRequest -> embed URL -> cache lookup -> (miss) browser extraction
-> write-through cache -> ResolvedManifest.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import Protocol

import structlog

from manifestarr.domain.entities.media import (
    ManifestError,
    ManifestNotFound,
    MediaRequest,
    ResolvedManifest,
    UpstreamError,
)
from manifestarr.domain.ports.manifest_cache import ManifestCachePort
from manifestarr.domain.ports.manifest_extractor import ManifestExtractorPort

log = structlog.get_logger(__name__)


class _MetricsRecorder(Protocol):
    """Records cache and extraction metrics."""

    def record_cache_hit(self) -> None: ...

    def record_cache_miss(self) -> None: ...

    def record_coalesced(self) -> None: ...

    def record_extraction(self, outcome: str, duration_ns: int) -> None: ...


_BuildUrlFn = Callable[[MediaRequest], str]


@dataclass
class _InFlight:
    """One running extraction and the number of callers awaiting it."""

    task: asyncio.Task[str]
    waiters: int = 0


class ResolveManifestUseCase:
    """Resolves a MediaRequest to a manifest URL.

    Concurrent requests for the same embed URL share one extraction when
    ``coalesce`` is enabled. A caller that is cancelled (client disconnect)
    stops waiting; once the last caller of an extraction is gone, the
    extraction itself is cancelled so its browser context is released.
    """

    def __init__(
        self,
        *,
        cache: ManifestCachePort,
        extractor: ManifestExtractorPort,
        build_url: _BuildUrlFn,
        default_server: str,
        coalesce: bool = True,
        metrics: _MetricsRecorder | None = None,
    ) -> None:
        self._cache = cache
        self._extractor = extractor
        self._build_url = build_url
        self._default_server = default_server
        self._coalesce = coalesce
        self._metrics = metrics
        self._inflight: dict[str, _InFlight] = {}
        # Abandoned extractions still tearing down their browser context.
        self._draining: set[asyncio.Task[str]] = set()

    @property
    def in_flight(self) -> int:
        """Number of extractions currently running."""
        return len(self._inflight)

    async def execute(self, request: MediaRequest) -> ResolvedManifest:
        """Resolve *request*.

        Raises:
            InvalidRequest: Request cannot be turned into an embed URL.
            ManifestNotFound: Extraction saw no manifest response.
            UpstreamError: Browser failure or unexpected extraction error.
        """
        target_url = self._build_url(request)
        server = request.server or self._default_server

        cached = self._cache.get(target_url)
        if cached is not None:
            if self._metrics is not None:
                self._metrics.record_cache_hit()
            log.info("manifest_cache_hit", target_url=target_url)
            return ResolvedManifest(manifest_url=cached, server=server, cached=True)

        if self._metrics is not None:
            self._metrics.record_cache_miss()
        log.info("manifest_cache_miss", target_url=target_url)

        if self._coalesce:
            manifest_url = await self._join_extraction(target_url)
        else:
            manifest_url = await self._extract_and_store(target_url)

        return ResolvedManifest(manifest_url=manifest_url, server=server)

    async def aclose(self) -> None:
        """Cancel all running extractions and wait for their cleanup."""
        tasks = [flight.task for flight in self._inflight.values()]
        tasks.extend(self._draining)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError, Exception):
                await task
        self._inflight.clear()
        self._draining.clear()
        if tasks:
            log.info("inflight_extractions_cancelled", count=len(tasks))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _join_extraction(self, target_url: str) -> str:
        """Await the extraction for *target_url*, starting it if needed."""
        flight = self._inflight.get(target_url)
        if flight is not None and (
            flight.task.cancelled() or flight.task.cancelling()
        ):
            flight = None
        if flight is None:
            task = asyncio.create_task(
                self._extract_and_store(target_url),
                name=f"extract:{target_url}",
            )
            flight = _InFlight(task=task)
            self._inflight[target_url] = flight
            task.add_done_callback(
                lambda t, key=target_url: self._forget(key, t)
            )
        else:
            if self._metrics is not None:
                self._metrics.record_coalesced()
            log.info(
                "extraction_coalesced",
                target_url=target_url,
                waiters=flight.waiters + 1,
            )

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                self._abandon(target_url, flight)
                log.info("extraction_abandoned", target_url=target_url)

    def _abandon(self, key: str, flight: _InFlight) -> None:
        """Cancel *flight* and detach it so new requests start a fresh one."""
        if self._inflight.get(key) is flight:
            del self._inflight[key]
        self._draining.add(flight.task)
        flight.task.add_done_callback(self._draining.discard)
        flight.task.cancel()

    def _forget(self, key: str, task: asyncio.Task[str]) -> None:
        flight = self._inflight.get(key)
        if flight is not None and flight.task is task:
            del self._inflight[key]

    async def _extract_and_store(self, target_url: str) -> str:
        """Run the extractor once and write a hit through to the cache."""
        start = time.perf_counter_ns()
        try:
            manifest_url = await self._extractor.extract(target_url)
        except ManifestError:
            self._record("failed", start)
            raise
        except Exception as exc:
            self._record("failed", start)
            log.exception("extraction_unexpected_error", target_url=target_url)
            raise UpstreamError(str(exc) or type(exc).__name__) from exc

        if manifest_url is None:
            self._record("not_found", start)
            log.info("manifest_not_found", target_url=target_url)
            raise ManifestNotFound(target_url)

        self._cache.set(target_url, manifest_url)
        self._record("found", start)
        log.info(
            "manifest_resolved",
            target_url=target_url,
            manifest_url=manifest_url,
        )
        return manifest_url

    def _record(self, outcome: str, start_ns: int) -> None:
        if self._metrics is not None:
            self._metrics.record_extraction(outcome, time.perf_counter_ns() - start_ns)
