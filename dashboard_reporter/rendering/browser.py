# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# rendering/browser.py

from dataclasses import dataclass
from typing import Optional
import asyncio
import sys

import logging

from playwright.async_api import async_playwright

logger = logging.getLogger(__name__)

# ============================================================================
# Module-level shared instance (lazy-initialized)
# ============================================================================

_SHARED_BROWSER: Optional['SharedBrowserService'] = None
_SHARED_BROWSER_LOCK = asyncio.Lock()

async def get_shared_browser(
        remote_url: Optional[str] = None,
        headless: bool = True,
) -> 'SharedBrowserService':
    """
    Get or create the shared module-level SharedBrowserService instance.

    Lazy-initialized on first call. Safe for concurrent access.
    Every report opens its own context on this browser, so reports never
    share cookies, headers or pages.

    `remote_url` and `headless` only apply when the instance is created;
    later calls with different values get the existing browser and a warning.
    Call close_shared_browser() first to switch.
    """
    global _SHARED_BROWSER

    existing = _SHARED_BROWSER
    if existing is not None and (existing.remote_url, existing.headless) != (remote_url, headless):
        logger.warning(
            "Shared browser already started (remote_url=%s, headless=%s); "
            "ignoring remote_url=%s, headless=%s",
            existing.remote_url, existing.headless, remote_url, headless,
        )

    if _SHARED_BROWSER is None:
        async with _SHARED_BROWSER_LOCK:
            # Double-check after acquiring lock
            if _SHARED_BROWSER is None:
                service = SharedBrowserService(
                    headless=headless,
                    remote_url=remote_url,
                    auto_install_browser=remote_url is None,
                )
                await service.start()
                _SHARED_BROWSER = service

    return _SHARED_BROWSER

async def close_shared_browser():
    """Close the shared browser instance (app shutdown)."""
    global _SHARED_BROWSER

    if _SHARED_BROWSER is not None:
        async with _SHARED_BROWSER_LOCK:
            if _SHARED_BROWSER is not None:
                await _SHARED_BROWSER.close()
                _SHARED_BROWSER = None

# ============================================================================
# SharedBrowserService class
# ============================================================================

@dataclass
class SharedBrowserService:
    """Shared Chromium instance: launched locally or attached over CDP."""

    headless: bool = True
    auto_install_browser: bool = False
    # ws:// or http:// endpoint of a running chrome with remote debugging enabled
    remote_url: Optional[str] = None

    # Runtime state
    _playwright = None
    _browser = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self):
        """Start Playwright and launch (or connect to) Chromium once."""
        if self._playwright is None:
            try:
                self._playwright = await async_playwright().start()
            except Exception as e:
                raise RuntimeError(f"Failed to start Playwright: {e}") from e

        if self._browser is None:
            if self.remote_url:
                logger.info("Connecting to remote chrome at %s", self.remote_url)
                self._browser = await self._playwright.chromium.connect_over_cdp(self.remote_url)
                return
            try:
                self._browser = await self._playwright.chromium.launch(headless=self.headless)
            except Exception as e:
                if not self.auto_install_browser:
                    raise RuntimeError(
                        "Chromium not available for Playwright. "
                        "Run: python -m playwright install chromium"
                    ) from e
                logger.warning("Chromium launch failed (%s); installing chromium", e)
                proc = await asyncio.create_subprocess_exec(
                    sys.executable, "-m", "playwright", "install", "chromium",
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
                await proc.communicate()
                self._browser = await self._playwright.chromium.launch(headless=self.headless)

    async def get_browser(self):
        """Get the browser instance, starting if needed."""
        await self.start()
        return self._browser

    async def close(self):
        """Close the browser and Playwright driver."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                # Typical when driver is already gone at process shutdown
                logger.warning(
                    "SharedBrowserService: error closing browser (ignored during shutdown): %s",
                    e,
                )
            finally:
                self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(
                    "SharedBrowserService: error stopping Playwright (ignored during shutdown): %s",
                    e,
                )
            finally:
                self._playwright = None
