from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from discussion_scraper.core.models import BrowserSettings
from discussion_scraper.utils.logging import get_logger

# Puppeteer's "networkidle2" has no Playwright equivalent; "networkidle" is the closest.
_WAIT_ALIASES = {"networkidle0": "networkidle", "networkidle2": "networkidle"}


def _timeout_ms(timeout_s: float) -> int:
    return int(max(0.0, float(timeout_s)) * 1000)


class PlaywrightSession:
    """One browser context + page, owned by a single job."""

    def __init__(self, context: BrowserContext, page: Page, timeout_s: float = 60):
        self.context = context
        self.page = page
        self.timeout_s = timeout_s
        self.log = get_logger("discussion_scraper.http.playwright")

    async def navigate(self, url: str, wait_until: str = "domcontentloaded") -> None:
        wait_until = _WAIT_ALIASES.get(wait_until, wait_until)
        self.log.debug("Playwright: navigating %s (wait_until=%s)", url, wait_until)
        await self.page.goto(url, wait_until=wait_until, timeout=_timeout_ms(self.timeout_s))

    async def scroll_until_stable(
        self,
        step_px: int = 100,
        pause_s: float = 0.1,
        settle_rounds: int = 3,
        max_steps: int = 2000,
    ) -> int:
        """
        Scroll down until the page height stops growing.

        Lazy-loaded content grows ``document.body.scrollHeight``; scrolling stops
        once the bottom is reached and the height has not changed for
        ``settle_rounds`` consecutive checks. Returns the final height.
        """
        position = 0
        height = await self._scroll_height()
        stable = 0
        for _ in range(max_steps):
            await self.page.evaluate("(px) => window.scrollBy(0, px)", step_px)
            position += step_px
            await asyncio.sleep(pause_s)
            if position < height:
                continue
            new_height = await self._scroll_height()
            if new_height > height:
                height = new_height
                stable = 0
                continue
            stable += 1
            if stable >= settle_rounds:
                break
        return height

    async def click(self, selector: str, timeout_s: Optional[float] = None) -> None:
        loc = self.page.locator(selector).first
        timeout = _timeout_ms(self.timeout_s if timeout_s is None else timeout_s)
        await loc.wait_for(state="visible", timeout=timeout)
        await loc.click(timeout=timeout)

    async def close(self) -> None:
        await self.context.close()

    async def _scroll_height(self) -> int:
        return int(await self.page.evaluate("() => document.body.scrollHeight"))


class PlaywrightSessionFactory:
    """
    Shares one Chromium browser across jobs and gives each job its own context.

    Use as ``async with PlaywrightSessionFactory(settings) as factory`` and
    acquire pages with ``async with factory.open() as session``.
    """

    def __init__(self, settings: Optional[BrowserSettings] = None):
        self.settings = settings or BrowserSettings()
        self.log = get_logger("discussion_scraper.http.playwright")
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightSessionFactory":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.settings.headless)
        self.log.info("Playwright: browser launched headless=%s", self.settings.headless)

    async def stop(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    @asynccontextmanager
    async def open(self) -> AsyncIterator[PlaywrightSession]:
        if self._browser is None:
            raise RuntimeError("PlaywrightSessionFactory.open() called before start()")

        context = await self._browser.new_context(
            viewport={"width": self.settings.viewport_width, "height": self.settings.viewport_height}
        )
        try:
            page = await context.new_page()
        except Exception:
            await context.close()
            raise

        session = PlaywrightSession(context, page, timeout_s=self.settings.timeout_s)
        try:
            yield session
        finally:
            await session.close()
