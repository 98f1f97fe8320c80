#!/usr/bin/env python3
"""
Playwright implementation of the browser capability.

PlaywrightSession owns the Playwright driver, the browser and one context
per run; PlaywrightListingPage adapts a Playwright page to ListingPage and
turns Playwright errors into typed collection failures.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.async_api import (
    async_playwright, Browser, BrowserContext, Page, ElementHandle,
    Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
)

from ordercheck.browser.base import ListingPage
from ordercheck.config import Viewport
from ordercheck.exceptions import BrowserLaunchError, NavigationFailure, PageInteractionFailure, ReadinessTimeout
from ordercheck.models.run import PerformanceMetrics

logger = logging.getLogger(__name__)

# Engine specific launch flags
LAUNCH_ARGS: Dict[str, List[str]] = {
    'chromium': ['--no-sandbox', '--disable-dev-shm-usage', '--disable-gpu'],
    'firefox': [],
}

FIREFOX_PREFS = {
    'dom.webnotifications.enabled': False,
    'media.navigator.streams.fake': True,
}

USER_AGENTS: Dict[str, str] = {
    'Desktop': ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'),
    'Tablet': ('Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 '
               '(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1'),
    'Mobile': ('Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 '
               '(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1'),
}

_PERFORMANCE_SCRIPT = """
() => {
    const nav = performance.getEntriesByType('navigation')[0];
    const paint = performance.getEntriesByName('first-contentful-paint')[0];
    if (!nav) {
        return null;
    }
    return {
        load_time_ms: nav.loadEventEnd - nav.startTime,
        dom_content_loaded_ms: nav.domContentLoadedEventEnd - nav.startTime,
        first_contentful_paint_ms: paint ? paint.startTime : 0,
        total_bytes: nav.transferSize || 0
    };
}
"""


class PlaywrightListingPage(ListingPage):
    """ListingPage backed by a Playwright page."""

    def __init__(self, page: Page, default_timeout_ms: int = 15000):
        self._page = page
        self._page.set_default_timeout(default_timeout_ms)

    @property
    def current_url(self) -> str:
        return self._page.url

    async def navigate(self, url: str, timeout_ms: int) -> None:
        try:
            await self._page.goto(url, wait_until='domcontentloaded', timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationFailure(url, timeout_ms, e) from e
        except PlaywrightError as e:
            raise NavigationFailure(url, timeout_ms, e) from e

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        try:
            await self._page.wait_for_selector(selector, state='attached', timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ReadinessTimeout([selector], timeout_ms) from e
        except PlaywrightError as e:
            raise PageInteractionFailure(self._page.url, f"waiting for {selector!r}", e) from e

    async def query_all(self, selector: str, scope: Optional[ElementHandle] = None) -> List[ElementHandle]:
        root = scope if scope is not None else self._page
        try:
            return await root.query_selector_all(selector)
        except PlaywrightError as e:
            raise PageInteractionFailure(self._page.url, f"querying {selector!r}", e) from e

    async def query_one(self, selector: str, scope: Optional[ElementHandle] = None) -> Optional[ElementHandle]:
        root = scope if scope is not None else self._page
        try:
            return await root.query_selector(selector)
        except PlaywrightError as e:
            raise PageInteractionFailure(self._page.url, f"querying {selector!r}", e) from e

    async def read_text(self, handle: ElementHandle) -> str:
        return (await handle.text_content()) or ""

    async def read_attribute(self, handle: ElementHandle, name: str) -> Optional[str]:
        return await handle.get_attribute(name)

    async def screenshot(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        await self._page.screenshot(path=path, full_page=True)

    async def performance(self) -> PerformanceMetrics:
        try:
            data = await self._page.evaluate(_PERFORMANCE_SCRIPT)
        except PlaywrightError as e:
            logger.warning(f"Could not read navigation timing: {e}")
            return PerformanceMetrics()
        return PerformanceMetrics.from_dict(data)


class PlaywrightSession:
    """
    Async context manager for one engine/viewport browser session.

    Usage:
        async with PlaywrightSession('firefox', viewport) as page:
            result = await collector.collect(page, url, 100)
    """

    def __init__(self,
                 engine: str,
                 viewport: Viewport,
                 headless: bool = True,
                 slow_mo_ms: int = 0,
                 default_timeout_ms: int = 15000,
                 user_agent: Optional[str] = None):
        self.engine = engine
        self.viewport = viewport
        self.headless = headless
        self.slow_mo_ms = slow_mo_ms
        self.default_timeout_ms = default_timeout_ms
        self.user_agent = user_agent or USER_AGENTS.get(viewport.name)

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> PlaywrightListingPage:
        """Start the driver, launch the engine and open a page."""
        try:
            self._playwright = await async_playwright().start()
            browser_type = getattr(self._playwright, self.engine)
            launch_options: Dict[str, Any] = {
                'headless': self.headless,
                'slow_mo': self.slow_mo_ms,
                'args': LAUNCH_ARGS.get(self.engine, []),
            }
            if self.engine == 'firefox':
                launch_options['firefox_user_prefs'] = FIREFOX_PREFS
            self._browser = await browser_type.launch(**launch_options)
            self._context = await self._browser.new_context(
                viewport=self.viewport.to_dict(),
                user_agent=self.user_agent,
                ignore_https_errors=True
            )
            page = await self._context.new_page()
        except PlaywrightError as e:
            await self.close()
            raise BrowserLaunchError(self.engine, e) from e

        logger.info(f"Launched {self.engine} ({self.viewport.name} {self.viewport.width}x{self.viewport.height})")
        return PlaywrightListingPage(page, self.default_timeout_ms)

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close context, browser and driver; close errors are only logged."""
        if self._context:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing browser context: {e}")
            finally:
                self._context = None
        if self._browser:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing {self.engine}: {e}")
            finally:
                self._browser = None
        if self._playwright:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                logger.debug(f"Error stopping Playwright: {e}")
            finally:
                self._playwright = None
