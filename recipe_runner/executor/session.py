"""Browser session: one Chromium instance shared by every scenario in a run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from recipe_runner.models.config import RunnerConfig

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-web-security",
    "--disable-features=IsolateOrigins,site-per-process",
]


class BrowserSession:
    """Owns the Playwright browser, context and page for a single run.

    Use as an async context manager. Scenarios run sequentially on the same
    page; ``recover()`` replaces a page or context that a scenario left
    unusable.
    """

    def __init__(
        self,
        headless: bool = True,
        slow_mo_ms: int = 100,
        viewport: Optional[dict] = None,
        video_dir: Optional[Path] = None,
        default_timeout_ms: int = 30000,
    ):
        self.headless = headless
        self.slow_mo_ms = slow_mo_ms
        self.viewport = viewport or {"width": 1280, "height": 720}
        self.video_dir = video_dir
        self.default_timeout_ms = default_timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @classmethod
    def from_config(cls, config: RunnerConfig, video_dir: Optional[Path] = None) -> BrowserSession:
        return cls(
            headless=config.headless,
            slow_mo_ms=config.slow_mo_ms,
            viewport=config.viewport,
            video_dir=video_dir if config.record_video else None,
            default_timeout_ms=config.action_timeout_ms,
        )

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session has not been started")
        return self._page

    @property
    def is_healthy(self) -> bool:
        return (
            self._browser is not None
            and self._browser.is_connected()
            and self._page is not None
            and not self._page.is_closed()
        )

    async def start(self) -> BrowserSession:
        logger.debug("Launching Chromium (headless=%s, slow_mo=%dms)", self.headless, self.slow_mo_ms)
        self._playwright = await async_playwright().start()
        await self._launch_browser()
        await self._open_context()
        return self

    async def _launch_browser(self) -> None:
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            slow_mo=self.slow_mo_ms,
            args=LAUNCH_ARGS,
        )

    async def _open_context(self) -> None:
        context_kwargs: dict = {
            "viewport": self.viewport,
            "ignore_https_errors": True,
        }
        if self.video_dir:
            self.video_dir.mkdir(parents=True, exist_ok=True)
            context_kwargs["record_video_dir"] = str(self.video_dir)
            context_kwargs["record_video_size"] = self.viewport

        self._context = await self._browser.new_context(**context_kwargs)
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.default_timeout_ms)

    async def recover(self) -> None:
        """Bring the session back to a usable page after a scenario crashed it."""
        if self.is_healthy:
            return
        logger.warning("Browser session unhealthy, recovering")

        if self._browser is None or not self._browser.is_connected():
            await self._close_quietly()
            self._browser = None
            await self._launch_browser()
            await self._open_context()
            return

        try:
            self._page = await self._context.new_page()
            self._page.set_default_timeout(self.default_timeout_ms)
        except Exception as e:
            logger.warning("Could not open a new page (%s), replacing context", e)
            if self._context is not None:
                try:
                    await self._context.close()
                except Exception as close_err:
                    logger.debug("Context close failed: %s", close_err)
            await self._open_context()

    async def _close_quietly(self) -> None:
        for closer in (self._context, self._browser):
            if closer is None:
                continue
            try:
                await closer.close()
            except Exception as e:
                logger.debug("Close failed during cleanup: %s", e)
        self._context = None
        self._page = None

    async def close(self) -> None:
        # Closing the context flushes recorded video to disk
        await self._close_quietly()
        self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug("Playwright stop failed: %s", e)
            self._playwright = None

    async def __aenter__(self) -> BrowserSession:
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
