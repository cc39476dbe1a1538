"""Browser driver adapter: one headless Chromium browser and page per session."""

import asyncio
from typing import Any, Callable, Optional, Tuple

from playwright.async_api import async_playwright

from apply_desk.config import settings
from apply_desk.core.errors import ProvisionError, TransientCaptureError
from apply_desk.browser.handle import LiveBrowserHandle
from apply_desk.utils.logging import get_logger, log_error_context

logger = get_logger(__name__)

# Form controls considered as the first field worth bringing into view
FIRST_FIELD_SELECTOR = "input, textarea, select"


class BrowserDriver:
    """
    Playwright adapter owning the browsers behind live sessions.

    A single Playwright driver process is started lazily and shared; each
    session gets its own Chromium browser and page. Navigation waits for the
    DOM-ready signal only; third-party application pages often keep
    long-polling requests open and never reach a full load.
    """

    def __init__(
        self,
        headless: bool = True,
        viewport_size: Tuple[int, int] = (1400, 1400),
        navigation_timeout: int = 30000,
        focus_timeout: int = 4000,
        playwright_factory: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize the driver.

        Args:
            headless: Run browsers in headless mode
            viewport_size: Page viewport size (width, height)
            navigation_timeout: Navigation timeout in milliseconds
            focus_timeout: Timeout for scrolling the first field into view (ms)
            playwright_factory: Returns an object whose ``start()`` coroutine
                yields a Playwright instance; defaults to ``async_playwright``
        """
        self.headless = headless
        self.viewport_size = viewport_size
        self.navigation_timeout = navigation_timeout
        self.focus_timeout = focus_timeout
        self.logger = logger.bind(component="browser_driver")

        self._playwright_factory = playwright_factory or async_playwright
        self._playwright = None
        self._start_lock = asyncio.Lock()

    @property
    def is_started(self) -> bool:
        return self._playwright is not None

    async def _ensure_playwright(self):
        async with self._start_lock:
            if self._playwright is None:
                self._playwright = await self._playwright_factory().start()
                self.logger.info("Playwright driver started", headless=self.headless)
        return self._playwright

    async def launch(self, url: str) -> LiveBrowserHandle:
        """
        Start a browser, open a page at the fixed viewport and navigate to ``url``.

        Args:
            url: Target application URL

        Returns:
            Handle pairing the new browser and page

        Raises:
            ProvisionError: if any step fails; anything opened is closed first
        """
        browser = None
        page = None
        try:
            playwright = await self._ensure_playwright()
            browser = await playwright.chromium.launch(headless=self.headless)
            page = await browser.new_page(
                viewport={"width": self.viewport_size[0], "height": self.viewport_size[1]}
            )
            await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout)
        except Exception as e:
            self.logger.error("Browser launch failed", **log_error_context(e, url=url))
            if browser is not None:
                await self.dispose(LiveBrowserHandle(browser=browser, page=page))
            raise ProvisionError(f"Could not open {url}: {e}", {"url": url}) from e

        self.logger.info("Browser launched", url=url, viewport_size=self.viewport_size)
        return LiveBrowserHandle(browser=browser, page=page)

    async def navigate(self, page: Any, url: str) -> None:
        """
        Reuse an existing page for a fresh URL.

        Raises:
            ProvisionError: if navigation fails
        """
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout)
        except Exception as e:
            self.logger.error("Navigation failed", **log_error_context(e, url=url))
            raise ProvisionError(f"Could not navigate to {url}: {e}", {"url": url}) from e

        self.logger.info("Navigated existing page", url=url)

    async def focus_first_field(self, page: Any) -> bool:
        """Scroll the first form control into view. Returns False when there is none in time."""
        try:
            locator = page.locator(FIRST_FIELD_SELECTOR).first
            await locator.scroll_into_view_if_needed(timeout=self.focus_timeout)
        except Exception as e:
            self.logger.debug("No form field brought into view", **log_error_context(e))
            return False
        return True

    async def capture_frame(self, page: Any) -> bytes:
        """
        Take a full-page screenshot.

        Raises:
            TransientCaptureError: page mid-navigation, detached frame, closed page
        """
        try:
            frame = await page.screenshot(full_page=True)
        except Exception as e:
            raise TransientCaptureError(f"Could not capture frame: {e}") from e

        self.logger.debug("Frame captured", size=len(frame))
        return frame

    async def dispose(self, handle: LiveBrowserHandle) -> None:
        """Close page then browser. A failed page close never skips the browser close."""
        if handle.page is not None:
            try:
                await handle.page.close()
            except Exception as e:
                self.logger.warning("Page close failed", **log_error_context(e))

        if handle.browser is not None:
            try:
                await handle.browser.close()
            except Exception as e:
                self.logger.warning("Browser close failed", **log_error_context(e))

    async def close(self) -> None:
        """Stop the shared Playwright driver."""
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as e:
            self.logger.warning("Playwright stop failed", **log_error_context(e))
        finally:
            self._playwright = None
        self.logger.info("Playwright driver stopped")


def create_browser_driver(
    headless: Optional[bool] = None,
    viewport_size: Optional[Tuple[int, int]] = None,
) -> BrowserDriver:
    """
    Factory function to create a browser driver from settings.

    Args:
        headless: Override ``settings.browser_headless``
        viewport_size: Override the configured viewport

    Returns:
        Configured BrowserDriver instance
    """
    return BrowserDriver(
        headless=settings.browser_headless if headless is None else headless,
        viewport_size=viewport_size or settings.viewport_size,
        navigation_timeout=settings.browser_navigation_timeout,
        focus_timeout=settings.focus_timeout,
    )
