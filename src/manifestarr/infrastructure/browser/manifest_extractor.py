"""Browser-driven manifest extractor.

Loads an embed page in a fresh, isolated browser context and watches every
network response until the player requests an HLS manifest.

The embed page is hostile: it hides its real manifest request behind a
"FETCHING" overlay, only starts playback after a human-looking click and
opens ad popups on that click. A session therefore runs through these
stages, each with a bounded wait::

    launch -> navigate -> settle -> locate_trigger -> interact -> grace -> cleanup

The response watch is attached before navigation and stays active for the
whole session. The first qualifying response is latched and can never be
overwritten. Cleanup closes the context (and with it every page and popup)
exactly once, on every exit path.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import Any, Protocol

import structlog
from playwright.async_api import BrowserContext, Page, Response
from playwright_stealth import Stealth

from manifestarr.domain.entities.media import BrowserLaunchError, ExtractionStage
from manifestarr.infrastructure.browser.shared_browser import SharedBrowserPool

log = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:132.0) "
    "Gecko/20100101 Firefox/132.0"
)

# Synthetic pointer path used while the overlay is up.
_MOUSE_PATH: tuple[tuple[int, int], ...] = ((200, 300), (600, 400))

_OVERLAY_GONE_JS = (
    "(text) => !document.body || !document.body.innerText.includes(text)"
)


class _ExtractionConfig(Protocol):
    """Timing and targeting values consumed by PlaywrightManifestExtractor."""

    navigation_timeout_ms: int
    overlay_timeout_ms: int
    trigger_timeout_ms: int
    final_grace_ms: int
    settle_delay_ms: int
    mouse_pause_ms: int
    click_attempts: int
    pre_click_delay_ms: int
    post_click_delay_ms: int
    popup_settle_ms: int
    overlay_text: str
    trigger_selector: str
    manifest_pattern: str
    exclude_pattern: str


def is_manifest_url(
    url: str,
    manifest_re: re.Pattern[str],
    exclude_re: re.Pattern[str] | None,
) -> bool:
    """True when *url* looks like a manifest and is not an ad asset."""
    if not manifest_re.search(url):
        return False
    return not (exclude_re is not None and exclude_re.search(url))


class ExtractionSession:
    """State of one extraction attempt.

    Owns the isolated context, the primary page and the single-assignment
    ``manifest_url`` slot filled by the response watch.
    """

    def __init__(
        self,
        target_url: str,
        *,
        manifest_re: re.Pattern[str],
        exclude_re: re.Pattern[str] | None,
    ) -> None:
        self.target_url = target_url
        self.stage = ExtractionStage.LAUNCH
        self.context: BrowserContext | None = None
        self.page: Page | None = None
        self._manifest_re = manifest_re
        self._exclude_re = exclude_re
        self._manifest_url: str | None = None
        self._latched = asyncio.Event()
        self.responses_seen = 0

    @property
    def manifest_url(self) -> str | None:
        return self._manifest_url

    @property
    def found(self) -> bool:
        return self._manifest_url is not None

    def on_response(self, response: Response) -> None:
        """Response watch: latch the first qualifying manifest URL."""
        self.responses_seen += 1
        if self._manifest_url is not None:
            return
        # The result is fixed once teardown starts.
        if self.stage in (ExtractionStage.CLEANUP, ExtractionStage.DONE):
            return
        url = response.url
        if not is_manifest_url(url, self._manifest_re, self._exclude_re):
            return
        self._manifest_url = url
        self._latched.set()
        log.info(
            "manifest_latched",
            target_url=self.target_url,
            manifest_url=url,
            stage=self.stage.value,
        )

    async def wait_latched(self, timeout_ms: int) -> bool:
        """Wait up to *timeout_ms* for the watch to latch a result."""
        if self.found:
            return True
        try:
            await asyncio.wait_for(self._latched.wait(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            return False
        return True


async def close_popups(context: BrowserContext, primary: Page) -> int:
    """Close every page in *context* except *primary*.

    Close failures are expected (popups often close themselves) and are
    never raised. Returns the number of pages closed.
    """
    closed = 0
    for extra in list(context.pages):
        if extra is primary:
            continue
        try:
            await extra.close()
            closed += 1
        except Exception:  # noqa: BLE001
            log.debug("popup_close_failed", exc_info=True)
    return closed


class PlaywrightManifestExtractor:
    """Implements ManifestExtractorPort on top of Playwright.

    Args:
        pool: Shared browser process; each session opens its own context.
        config: Stage timeouts, selectors and URL patterns.
        user_agent: User agent of every session context.
        locale: Locale of every session context.
        viewport: Viewport size of every session context.
        stealth: Apply playwright-stealth evasions to each context.
    """

    def __init__(
        self,
        pool: SharedBrowserPool,
        config: _ExtractionConfig,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        locale: str = "en-US",
        viewport: tuple[int, int] = (1920, 1080),
        stealth: bool = False,
    ) -> None:
        self._pool = pool
        self._config = config
        self._user_agent = user_agent
        self._locale = locale
        self._viewport = viewport
        self._stealth = stealth
        self._manifest_re = re.compile(config.manifest_pattern, re.IGNORECASE)
        self._exclude_re = (
            re.compile(config.exclude_pattern, re.IGNORECASE)
            if config.exclude_pattern
            else None
        )

    def new_session(self, target_url: str) -> ExtractionSession:
        return ExtractionSession(
            target_url,
            manifest_re=self._manifest_re,
            exclude_re=self._exclude_re,
        )

    async def extract(self, target_url: str) -> str | None:
        """Run one extraction session against *target_url*.

        Returns the latched manifest URL or ``None``.

        Raises:
            BrowserLaunchError: The browser or the session context could
                not be created.
        """
        session = self.new_session(target_url)
        start = time.perf_counter()
        log.info("extraction_started", target_url=target_url)

        try:
            await self._open(session)
            await self._drive(session)
        finally:
            last_stage = session.stage
            await self._cleanup(session)
            log.info(
                "extraction_finished",
                target_url=target_url,
                found=session.found,
                last_stage=last_stage.value,
                responses_seen=session.responses_seen,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
            )

        return session.manifest_url

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _open(self, session: ExtractionSession) -> None:
        """Launch stage: isolated context + primary page + response watch."""
        session.stage = ExtractionStage.LAUNCH
        try:
            browser = await self._pool.warmup()
            width, height = self._viewport
            session.context = await browser.new_context(
                viewport={"width": width, "height": height},
                user_agent=self._user_agent,
                locale=self._locale,
            )
            if self._stealth:
                await Stealth().apply_stealth_async(session.context)
            session.page = await session.context.new_page()
        except Exception as exc:
            log.error(
                "extraction_launch_failed",
                target_url=session.target_url,
                error=str(exc),
                exc_info=True,
            )
            raise BrowserLaunchError(f"Browser launch failed: {exc}") from exc

        session.page.on("response", session.on_response)

    async def _drive(self, session: ExtractionSession) -> None:
        """Navigate and interact; page-level failures end the drive quietly."""
        page = session.page
        context = session.context
        assert page is not None and context is not None  # noqa: S101
        cfg = self._config

        session.stage = ExtractionStage.NAVIGATE
        try:
            await page.goto(
                session.target_url,
                wait_until="domcontentloaded",
                timeout=cfg.navigation_timeout_ms,
            )
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "extraction_navigate_failed",
                target_url=session.target_url,
                error=str(exc),
            )
            return

        try:
            session.stage = ExtractionStage.SETTLE
            await self._settle(page)

            session.stage = ExtractionStage.LOCATE_TRIGGER
            trigger = page.locator(cfg.trigger_selector).first
            try:
                await trigger.wait_for(state="visible", timeout=cfg.trigger_timeout_ms)
            except Exception:  # noqa: BLE001
                log.info(
                    "extraction_trigger_not_visible",
                    target_url=session.target_url,
                    selector=cfg.trigger_selector,
                    found=session.found,
                )
                return

            session.stage = ExtractionStage.INTERACT
            await self._interact(session, context, page, trigger)

            if not session.found:
                session.stage = ExtractionStage.GRACE
                await session.wait_latched(cfg.final_grace_ms)
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "extraction_interaction_failed",
                target_url=session.target_url,
                stage=session.stage.value,
                error=str(exc),
            )

    async def _settle(self, page: Page) -> None:
        """Move the pointer a little and wait for the loading overlay to go."""
        cfg = self._config
        for i, (x, y) in enumerate(_MOUSE_PATH):
            if i:
                await page.wait_for_timeout(cfg.mouse_pause_ms)
            await page.mouse.move(x, y)

        try:
            await page.wait_for_function(
                _OVERLAY_GONE_JS,
                arg=cfg.overlay_text,
                timeout=cfg.overlay_timeout_ms,
            )
        except Exception:  # noqa: BLE001
            log.debug("extraction_overlay_timeout", overlay_text=cfg.overlay_text)

        await page.wait_for_timeout(cfg.settle_delay_ms)

    async def _interact(
        self,
        session: ExtractionSession,
        context: BrowserContext,
        page: Page,
        trigger: Any,
    ) -> None:
        """Click the play control until the watch latches (bounded attempts)."""
        cfg = self._config
        for attempt in range(1, cfg.click_attempts + 1):
            if session.found:
                break
            await page.wait_for_timeout(cfg.pre_click_delay_ms)
            await trigger.click()
            await page.wait_for_timeout(cfg.post_click_delay_ms)

            closed = await close_popups(context, page)
            log.debug(
                "extraction_click",
                attempt=attempt,
                popups_closed=closed,
                found=session.found,
            )
            await page.wait_for_timeout(cfg.popup_settle_ms)

    async def _cleanup(self, session: ExtractionSession) -> None:
        """Close the session context (and all its pages); never raises."""
        session.stage = ExtractionStage.CLEANUP
        context, session.context, session.page = session.context, None, None
        if context is not None:
            try:
                await context.close()
            except Exception:  # noqa: BLE001
                log.debug("extraction_context_close_failed", exc_info=True)
        session.stage = ExtractionStage.DONE
