# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# rendering/pdf.py
"""
HTML ➜ PDF through Chromium (Playwright) with explicit page-lifecycle synchronization.

Every document gets its own browser context (tab), so one report's failure or
timeout never touches another report rendering on the same browser.

Readiness is decided by Chromium's own lifecycle notifications received over a
CDP session: the subscription is made before navigation so the "networkIdle"
milestone cannot fire unobserved. Earlier milestones (firstPaint, load) fire
before all panel images are decoded and produce incomplete pages.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Mapping, Optional

from playwright.async_api import Error as PlaywrightError

from dashboard_reporter.errors import RenderError
from dashboard_reporter.rendering.browser import SharedBrowserService

logger = logging.getLogger(__name__)

LIFECYCLE_READY = "networkIdle"

# Chromium refuses to print a header/footer from an empty template
_EMPTY_TEMPLATE = "<span></span>"


class LifecycleWatcher:
    """
    Collects Page.lifecycleEvent notifications for the current document.

    Events are keyed by name. A new "init" (new document / loader) forgets all
    milestones seen for the previous document, so about:blank's networkIdle is
    never mistaken for the report's.
    """

    def __init__(self):
        self._events: Dict[str, asyncio.Event] = {}
        self.loader_id: Optional[str] = None

    def _event(self, name: str) -> asyncio.Event:
        if name not in self._events:
            self._events[name] = asyncio.Event()
        return self._events[name]

    def on_lifecycle_event(self, params: Mapping) -> None:
        name = params.get("name")
        if not name:
            return
        loader_id = params.get("loaderId")
        if name == "init":
            self.loader_id = loader_id
            for ev in self._events.values():
                ev.clear()
        elif loader_id and self.loader_id and loader_id != self.loader_id:
            # stale event from a previous document
            return
        logger.debug("lifecycle event: %s", name)
        self._event(name).set()

    def seen(self, name: str) -> bool:
        return name in self._events and self._events[name].is_set()

    async def wait(self, name: str, timeout: Optional[float] = None) -> None:
        """
        Block until milestone `name` is observed.

        Raises asyncio.TimeoutError when `timeout` elapses (immediately for a
        timeout <= 0 and an unseen milestone) and asyncio.CancelledError when
        the awaiting task is cancelled.
        """
        await asyncio.wait_for(self._event(name).wait(), timeout)


class DocumentRenderer:
    """Prints composed HTML to PDF bytes."""

    def __init__(
            self,
            browser_service: SharedBrowserService,
            max_workers: int = 6,
            ready_event: str = LIFECYCLE_READY,
            page_format: str = "A4",
    ):
        self.browser_service = browser_service
        self.ready_event = ready_event
        self.page_format = page_format
        self._semaphore = asyncio.Semaphore(max(1, max_workers))

    async def render_document(
            self,
            header_html: str,
            body_html: str,
            footer_html: str,
            orientation: str = "portrait",
            *,
            timeout: Optional[float] = None,
            headers: Optional[Mapping[str, str]] = None,
    ) -> bytes:
        """
        Render one document.

        Args:
            header_html / footer_html: Chromium print templates (repeated per page)
            body_html: full HTML document
            orientation: "portrait" | "landscape"
            timeout: seconds to wait for the page to become ready
            headers: extra HTTP headers for every request made by the page

        Raises:
            RenderError: navigation, lifecycle tracking or capture failed
            asyncio.TimeoutError: the page did not become ready in time
        """
        if orientation not in ("portrait", "landscape"):
            raise ValueError(f"Unknown orientation: {orientation!r}")

        browser = await self.browser_service.get_browser()
        async with self._semaphore:
            tmp_dir = Path(tempfile.mkdtemp(prefix="dashboard_report_"))
            context = None
            try:
                # The body goes through a file so relative assets and fonts resolve
                html_path = tmp_dir / "report.html"
                html_path.write_text(body_html, encoding="utf-8")

                try:
                    context = await browser.new_context()
                    page = await context.new_page()
                    if headers:
                        await context.set_extra_http_headers(dict(headers))
                except PlaywrightError as e:
                    raise RenderError(f"Failed to open browser tab: {e}", stage="initialize") from e

                watcher = await self._track_lifecycle(context, page)

                try:
                    await page.goto(html_path.as_uri(), wait_until="commit")
                except PlaywrightError as e:
                    raise RenderError(f"Failed to navigate: {e}", stage="navigate") from e

                await watcher.wait(self.ready_event, timeout)

                try:
                    pdf = await page.pdf(
                        format=self.page_format,
                        landscape=orientation == "landscape",
                        print_background=True,
                        display_header_footer=True,
                        header_template=header_html or _EMPTY_TEMPLATE,
                        footer_template=footer_html or _EMPTY_TEMPLATE,
                        margin={"top": "20mm", "bottom": "16mm", "left": "10mm", "right": "10mm"},
                    )
                except PlaywrightError as e:
                    raise RenderError(f"Failed to print PDF: {e}", stage="capture") from e

                logger.debug("Rendered PDF (%d bytes, %s)", len(pdf), orientation)
                return pdf
            finally:
                if context is not None:
                    try:
                        await context.close()
                    except Exception as e:
                        logger.warning("DocumentRenderer: error closing browser context: %s", e)
                shutil.rmtree(tmp_dir, ignore_errors=True)

    @staticmethod
    async def _track_lifecycle(context, page) -> LifecycleWatcher:
        watcher = LifecycleWatcher()
        try:
            cdp = await context.new_cdp_session(page)
            cdp.on("Page.lifecycleEvent", watcher.on_lifecycle_event)
            await cdp.send("Page.enable")
            await cdp.send("Page.setLifecycleEventsEnabled", {"enabled": True})
        except PlaywrightError as e:
            raise RenderError(f"Failed to enable lifecycle events: {e}", stage="lifecycle") from e
        return watcher
