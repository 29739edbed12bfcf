"""Shared browser process for extraction sessions.

Launching a browser costs one to two seconds, so a single browser process
is started lazily and reused. Every extraction session opens its own
``BrowserContext`` on it, which keeps cookies, storage and cache isolated
between concurrent sessions.

Concurrent ``warmup()`` calls are serialised via an asyncio lock: the first
caller launches the browser, later callers receive the same instance.
"""

from __future__ import annotations

import asyncio
from typing import Literal

import structlog
from playwright.async_api import Browser, Playwright, async_playwright

log = structlog.get_logger(__name__)

BrowserEngine = Literal["chromium", "firefox", "webkit"]


class SharedBrowserPool:
    """Owns the single browser instance used by all extraction sessions.

    Usage::

        pool = SharedBrowserPool(engine="firefox", headless=True)
        browser = await pool.warmup()
        context = await browser.new_context(...)
        ...
        await pool.cleanup()
    """

    def __init__(
        self,
        *,
        engine: BrowserEngine = "firefox",
        headless: bool = True,
    ) -> None:
        self._engine = engine
        self._headless = headless
        self._pw: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def engine(self) -> BrowserEngine:
        return self._engine

    @property
    def is_running(self) -> bool:
        """Whether the shared browser is currently connected."""
        return self._browser is not None and self._browser.is_connected()

    async def warmup(self) -> Browser:
        """Ensure the browser is running, launching it if needed.

        If the browser has disconnected (crash, etc.), it is relaunched.
        Launch errors propagate to the caller.
        """
        if self._browser is not None and self._browser.is_connected():
            return self._browser

        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            # Clean up stale state if the browser crashed
            if self._pw is not None:
                try:
                    await self._pw.stop()
                except Exception:  # noqa: BLE001
                    log.debug("shared_browser_stale_pw_stop_error", exc_info=True)
                self._pw = None
                self._browser = None

            self._pw = await async_playwright().start()
            browser_type = getattr(self._pw, self._engine)
            try:
                self._browser = await browser_type.launch(headless=self._headless)
            except Exception:
                await self._pw.stop()
                self._pw = None
                raise
            log.info(
                "shared_browser_launched",
                engine=self._engine,
                headless=self._headless,
            )
            return self._browser

    async def cleanup(self) -> None:
        """Close the shared browser and Playwright instance."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception:  # noqa: BLE001
                log.warning("shared_browser_close_error", exc_info=True)
            self._browser = None
        if self._pw is not None:
            try:
                await self._pw.stop()
            except Exception:  # noqa: BLE001
                log.warning("shared_pw_stop_error", exc_info=True)
            self._pw = None
        log.info("shared_browser_cleaned_up")
