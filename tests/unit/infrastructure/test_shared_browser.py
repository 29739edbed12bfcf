"""Tests for SharedBrowserPool."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from manifestarr.infrastructure.browser.shared_browser import SharedBrowserPool

_PATCH_TARGET = "manifestarr.infrastructure.browser.shared_browser.async_playwright"


def _mock_playwright(engine: str = "firefox") -> tuple[AsyncMock, AsyncMock]:
    """Return (playwright, browser) mocks wired together."""
    browser = AsyncMock()
    browser.is_connected = MagicMock(return_value=True)
    browser.close = AsyncMock()

    playwright = AsyncMock()
    browser_type = MagicMock()
    browser_type.launch = AsyncMock(return_value=browser)
    setattr(playwright, engine, browser_type)
    playwright.stop = AsyncMock()
    return playwright, browser


class TestWarmup:
    @patch(_PATCH_TARGET)
    async def test_launches_configured_engine(self, mock_ap: MagicMock) -> None:
        pw, browser = _mock_playwright("firefox")
        mock_ap.return_value.start = AsyncMock(return_value=pw)

        pool = SharedBrowserPool(engine="firefox", headless=True)
        result = await pool.warmup()

        assert result is browser
        pw.firefox.launch.assert_awaited_once_with(headless=True)
        assert pool.is_running is True
        assert pool.engine == "firefox"

    @patch(_PATCH_TARGET)
    async def test_chromium_headed(self, mock_ap: MagicMock) -> None:
        pw, _ = _mock_playwright("chromium")
        mock_ap.return_value.start = AsyncMock(return_value=pw)

        pool = SharedBrowserPool(engine="chromium", headless=False)
        await pool.warmup()

        pw.chromium.launch.assert_awaited_once_with(headless=False)

    @patch(_PATCH_TARGET)
    async def test_reuses_running_browser(self, mock_ap: MagicMock) -> None:
        pw, browser = _mock_playwright()
        mock_ap.return_value.start = AsyncMock(return_value=pw)

        pool = SharedBrowserPool()
        first = await pool.warmup()
        second = await pool.warmup()

        assert first is second is browser
        pw.firefox.launch.assert_awaited_once()

    @patch(_PATCH_TARGET)
    async def test_concurrent_warmup_launches_once(self, mock_ap: MagicMock) -> None:
        pw, browser = _mock_playwright()
        mock_ap.return_value.start = AsyncMock(return_value=pw)

        pool = SharedBrowserPool()
        results = await asyncio.gather(*(pool.warmup() for _ in range(5)))

        assert all(r is browser for r in results)
        pw.firefox.launch.assert_awaited_once()

    @patch(_PATCH_TARGET)
    async def test_relaunches_after_disconnect(self, mock_ap: MagicMock) -> None:
        pw1, browser1 = _mock_playwright()
        pw2, browser2 = _mock_playwright()
        mock_ap.return_value.start = AsyncMock(side_effect=[pw1, pw2])

        pool = SharedBrowserPool()
        assert await pool.warmup() is browser1

        browser1.is_connected.return_value = False
        assert pool.is_running is False

        assert await pool.warmup() is browser2
        pw1.stop.assert_awaited_once()

    @patch(_PATCH_TARGET)
    async def test_launch_failure_propagates_and_stops_playwright(
        self, mock_ap: MagicMock
    ) -> None:
        pw, _ = _mock_playwright()
        pw.firefox.launch = AsyncMock(side_effect=RuntimeError("no firefox"))
        mock_ap.return_value.start = AsyncMock(return_value=pw)

        pool = SharedBrowserPool()
        with pytest.raises(RuntimeError, match="no firefox"):
            await pool.warmup()

        pw.stop.assert_awaited_once()
        assert pool.is_running is False


class TestCleanup:
    @patch(_PATCH_TARGET)
    async def test_closes_browser_and_playwright(self, mock_ap: MagicMock) -> None:
        pw, browser = _mock_playwright()
        mock_ap.return_value.start = AsyncMock(return_value=pw)

        pool = SharedBrowserPool()
        await pool.warmup()
        await pool.cleanup()

        browser.close.assert_awaited_once()
        pw.stop.assert_awaited_once()
        assert pool.is_running is False

    async def test_cleanup_without_warmup_is_noop(self) -> None:
        pool = SharedBrowserPool()
        await pool.cleanup()
        assert pool.is_running is False

    @patch(_PATCH_TARGET)
    async def test_cleanup_swallows_close_errors(self, mock_ap: MagicMock) -> None:
        pw, browser = _mock_playwright()
        browser.close = AsyncMock(side_effect=RuntimeError("already gone"))
        mock_ap.return_value.start = AsyncMock(return_value=pw)

        pool = SharedBrowserPool()
        await pool.warmup()
        await pool.cleanup()

        pw.stop.assert_awaited_once()
