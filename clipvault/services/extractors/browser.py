"""Headless browser lifecycle and page navigation using Playwright.

BrowserSessionManager owns one Chromium process per extractor. The process
is launched lazily on first use and stays up across extractions until
close_session() is called.

PageNavigator opens an isolated browsing context per extraction, loads the
page and waits for the platform's content-ready marker. The context (and its
page) is closed on every exit path.

Note: Playwright browsers must be installed separately:
    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from clipvault.services.extractors.base import ExtractionConfig
from clipvault.services.extractors.exceptions import (
    BrowserLaunchError,
    BrowserSessionError,
    ContentNotReadyError,
    NavigationError,
    NavigationTimeoutError,
)

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)

# Flags for containers and other restricted environments
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


class BrowserSessionManager:
    """Own a single lazily-launched headless browser.

    Concurrent callers of ensure_session() share one launch: the launch is
    guarded by a lock, so a caller arriving while a launch is in flight waits
    for it and reuses its browser.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self._browser: Browser | None = None
        self._playwright: Playwright | None = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def ensure_session(self) -> Browser:
        """Return the running browser, launching it if needed.

        Raises:
            BrowserLaunchError: If the browser fails to launch. The manager is
                left without a session, so a later call retries the launch.
        """
        if self._browser is not None:
            return self._browser

        async with self._lock:
            if self._browser is None:
                self._browser = await self._launch()
        return self._browser

    async def _launch(self) -> Browser:
        # Looked up at call time so tests can patch async_playwright
        from playwright.async_api import async_playwright

        try:
            playwright = await async_playwright().start()
        except Exception as e:
            logger.error("Failed to start Playwright: %s", e)
            raise BrowserLaunchError(f"Failed to start Playwright: {e}") from e

        try:
            browser = await playwright.chromium.launch(
                headless=self.config.playwright_headless,
                args=LAUNCH_ARGS,
            )
        except Exception as e:
            logger.error("Failed to launch Playwright browser: %s", e)
            await self._stop_playwright(playwright)
            raise BrowserLaunchError(f"Failed to launch browser: {e}") from e
        except BaseException:
            # Cancelled mid-launch: the driver must not outlive the attempt
            await asyncio.shield(self._stop_playwright(playwright))
            raise

        self._playwright = playwright
        logger.debug(
            "Playwright browser launched (headless=%s)",
            self.config.playwright_headless,
        )
        return browser

    async def _stop_playwright(self, playwright: Playwright) -> None:
        try:
            await playwright.stop()
        except Exception as e:
            logger.warning("Error stopping Playwright: %s", e)

    async def close_session(self) -> None:
        """Terminate the browser process. Safe to call when nothing is running."""
        async with self._lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                    logger.debug("Playwright browser closed")
                except Exception as e:
                    logger.warning("Error closing browser: %s", e)
                self._browser = None

            if self._playwright is not None:
                await self._stop_playwright(self._playwright)
                logger.debug("Playwright stopped")
                self._playwright = None


class PageNavigator:
    """Open, load and wait on a page inside an isolated browsing context."""

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()

    @asynccontextmanager
    async def open_page(
        self, browser: Browser, url: str, ready_selector: str
    ) -> AsyncIterator[Page]:
        """Yield a page that has loaded ``url`` and shows ``ready_selector``.

        Raises:
            BrowserSessionError: If the browser cannot open a new context.
            NavigationTimeoutError: If the network does not settle in time.
            NavigationError: If the page fails to load.
            ContentNotReadyError: If the ready marker never appears.
        """
        try:
            context = await browser.new_context(
                user_agent=self.config.user_agent,
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
            )
        except PlaywrightError as e:
            raise BrowserSessionError(f"Could not open browsing context: {e}") from e

        page: Page | None = None
        try:
            page = await context.new_page()
            await self.navigate(page, url)
            await self.wait_until_ready(page, url, ready_selector)
            yield page
        finally:
            await self._close(context, page)

    async def navigate(self, page: Page, url: str) -> None:
        """Load ``url`` and wait until network activity settles."""
        timeout_ms = self.config.navigation_timeout_seconds * 1000
        logger.debug("Navigating to %s", url)
        try:
            response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(
                f"Navigation to {url} exceeded {self.config.navigation_timeout_seconds}s"
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e}") from e

        if response is None or response.status >= 400:
            status = response.status if response else "unknown"
            raise NavigationError(f"Failed to load {url}: HTTP {status}")

    async def wait_until_ready(self, page: Page, url: str, ready_selector: str) -> None:
        """Wait for the content-ready marker to be attached to the DOM."""
        timeout_ms = self.config.content_ready_timeout_seconds * 1000
        try:
            await page.wait_for_selector(ready_selector, state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ContentNotReadyError(
                f"Content marker {ready_selector!r} did not appear on {url} "
                f"within {self.config.content_ready_timeout_seconds}s"
            ) from e
        except PlaywrightError as e:
            raise ContentNotReadyError(
                f"Waiting for {ready_selector!r} on {url} failed: {e}"
            ) from e

    async def _close(self, context: BrowserContext, page: Page | None) -> None:
        if page is not None:
            try:
                await page.close()
            except Exception as e:
                logger.warning("Error closing page: %s", e)
        try:
            await context.close()
        except Exception as e:
            logger.warning("Error closing browser context: %s", e)
