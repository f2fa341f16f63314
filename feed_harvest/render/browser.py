"""
JavaScript rendering with a local Playwright Chromium browser.

One browser is shared for the lifetime of the renderer. Every render() call
gets a fresh BrowserContext and Page, acquired and released through
_page_context() so a crashed tab never leaks into another navigation.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import Browser, Error as PlaywrightError, Page, Route
from playwright.async_api import Playwright, TimeoutError as PlaywrightTimeoutError, async_playwright

from ..config import RenderConfig
from ..core.errors import NavigationError, NavigationTimeout, RendererUnavailable
from ..core.types import ReadinessPolicy
from .base import Renderer
from .document import Document

logger = logging.getLogger("feed_harvest.render.playwright")


class PlaywrightRenderer(Renderer):
    """Renderer backed by a shared headless Chromium instance."""

    name = "playwright"

    def __init__(self, cfg: RenderConfig):
        self._cfg = cfg
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def start(self) -> None:
        if self._browser is not None:
            return
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._cfg.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox", "--disable-gpu"],
            )
        except PlaywrightError as exc:
            await self.close()
            raise RendererUnavailable(
                f"Failed to launch Chromium ({exc}). Run: playwright install chromium"
            ) from exc
        logger.debug("Playwright browser started")

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                logger.debug("Browser close failed: %s", exc)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    @asynccontextmanager
    async def _page_context(self) -> AsyncIterator[Page]:
        """Acquire an isolated context + page, closing both on every path."""
        if self._browser is None or not self._browser.is_connected():
            raise RendererUnavailable("Playwright browser is not running")
        try:
            context = await self._browser.new_context(user_agent=self._cfg.user_agent)
        except PlaywrightError as exc:
            raise RendererUnavailable(f"Could not open browser context: {exc}") from exc
        try:
            page = await context.new_page()
            if self._cfg.block_resources:
                await page.route("**/*", self._block_route)
            yield page
        finally:
            try:
                await context.close()
            except PlaywrightError as exc:
                logger.debug("Context close failed: %s", exc)

    async def _block_route(self, route: Route) -> None:
        if route.request.resource_type in self._cfg.block_resources:
            await route.abort()
        else:
            await route.continue_()

    async def render(self, url: str, readiness: ReadinessPolicy, timeout: float) -> Document:
        async with self._page_context() as page:
            try:
                response = await page.goto(url, wait_until=readiness.wait_until, timeout=timeout * 1000)
                if response is not None and response.status >= 400:
                    raise NavigationError(url, f"HTTP {response.status}", status_code=response.status)
                if readiness.wait_for:
                    await self._wait_for_ready(page, url, readiness)
                if readiness.scroll_steps:
                    await self._scroll(page, readiness)
                html = await page.content()
            except PlaywrightTimeoutError as exc:
                raise NavigationTimeout(url, f"TimeoutError: {exc.message}") from exc
            except PlaywrightError as exc:
                raise NavigationError(url, f"{type(exc).__name__}: {exc.message}") from exc
            return Document(page.url, html)

    async def _scroll(self, page: Page, readiness: ReadinessPolicy) -> None:
        """Scroll to the bottom until the page stops growing or steps run out."""
        for step in range(readiness.scroll_steps):
            height = await page.evaluate("document.body.scrollHeight")
            await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            try:
                await page.wait_for_function(
                    "h => document.body.scrollHeight > h",
                    arg=height,
                    timeout=readiness.wait_timeout_seconds * 1000,
                )
            except PlaywrightTimeoutError:
                logger.debug("No new content after scroll %d on %s", step + 1, page.url)
                return

    async def _wait_for_ready(self, page: Page, url: str, readiness: ReadinessPolicy) -> None:
        # The page itself loaded; a missing readiness selector is left to
        # extraction, which reports it as an empty listing or absent field.
        try:
            await page.wait_for_selector(
                readiness.wait_for,
                timeout=readiness.wait_timeout_seconds * 1000,
            )
        except PlaywrightTimeoutError:
            logger.debug(
                "Readiness selector %r not seen within %.1fs on %s",
                readiness.wait_for,
                readiness.wait_timeout_seconds,
                url,
            )
