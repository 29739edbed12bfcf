"""Shared test fixtures for Manifestarr test suite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from manifestarr.domain.entities.media import MediaRequest, MediaType
from manifestarr.infrastructure.cache.memory_cache import InMemoryManifestCache
from manifestarr.infrastructure.config.schema import ExtractionConfig

MANIFEST_URL = "https://cdn.example/stream/abc.m3u8"

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Controllable UTC clock for cache expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeExtractor:
    """ManifestExtractorPort double that records every call."""

    def __init__(
        self,
        result: str | None = MANIFEST_URL,
        *,
        error: BaseException | None = None,
        delay: float = 0.0,
        teardown_delay: float = 0.0,
    ) -> None:
        self.result = result
        self.error = error
        self.delay = delay
        self.teardown_delay = teardown_delay
        self.calls: list[str] = []
        self.cancelled = 0
        self.torn_down = 0

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def extract(self, target_url: str) -> str | None:
        self.calls.append(target_url)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            # Models closing the browser context.
            if self.teardown_delay:
                await asyncio.sleep(self.teardown_delay)
            self.torn_down += 1
        if self.error is not None:
            raise self.error
        return self.result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def manifest_cache(clock: FakeClock) -> InMemoryManifestCache:
    """Unbounded one-hour cache driven by the fake clock."""
    return InMemoryManifestCache(ttl_seconds=3600, clock=clock)


@pytest.fixture()
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture()
def movie_request() -> MediaRequest:
    return MediaRequest(media_type=MediaType.MOVIE, media_id="12345")


@pytest.fixture()
def tv_request() -> MediaRequest:
    return MediaRequest(
        media_type=MediaType.TV_EPISODE, media_id="999", season=1, episode=5
    )


@pytest.fixture()
def fast_extraction_config() -> ExtractionConfig:
    """Extraction config with all pauses zeroed (mocked page never sleeps)."""
    return ExtractionConfig(
        final_grace_ms=0,
        settle_delay_ms=0,
        mouse_pause_ms=0,
        pre_click_delay_ms=0,
        post_click_delay_ms=0,
        popup_settle_ms=0,
    )
