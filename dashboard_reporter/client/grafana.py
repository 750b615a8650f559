# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# client/grafana.py
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import aiohttp

from dashboard_reporter.client.sizing import panel_size
from dashboard_reporter.config import ReporterSettings
from dashboard_reporter.dashboard.model import Panel, TimeRange
from dashboard_reporter.errors import DashboardFetchError, PanelFetchError

logger = logging.getLogger(__name__)


def create_session(settings: ReporterSettings) -> aiohttp.ClientSession:
    """One session (connection pool) per process, shared by all panel fetches."""
    timeout = aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT)
    connector = aiohttp.TCPConnector(ssl=False) if settings.SKIP_TLS_CHECK else None
    return aiohttp.ClientSession(timeout=timeout, connector=connector)


class GrafanaClient:
    """Talks to the Grafana HTTP API: dashboard lookup and panel rendering."""

    DASHBOARD_PATH = "/api/dashboards/uid/{uid}"
    RENDER_PATH = "/render/d-solo/{slug}/_"

    def __init__(
            self,
            session: aiohttp.ClientSession,
            base_url: str,
            cookie: str = "",
            variables: Optional[Mapping[str, Sequence[str]]] = None,
            layout: str = "simple",
            *,
            retry_attempts: int = 3,
            retry_sleep: float = 10.0,
            time_zone: Optional[str] = None,
    ):
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.cookie = cookie or ""
        self.variables: Dict[str, List[str]] = {k: list(v) for k, v in (variables or {}).items()}
        self.layout = layout
        self.retry_attempts = retry_attempts
        self.retry_sleep = retry_sleep
        self.time_zone = time_zone

    @classmethod
    def from_settings(
            cls,
            session: aiohttp.ClientSession,
            settings: ReporterSettings,
            cookie: str = "",
            variables: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> "GrafanaClient":
        return cls(
            session,
            settings.APP_URL,
            cookie,
            variables,
            settings.LAYOUT,
            retry_attempts=settings.PANEL_RETRY_ATTEMPTS,
            retry_sleep=settings.PANEL_RETRY_SLEEP,
            time_zone=settings.TIME_ZONE,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {}
        if self.cookie:
            headers["Cookie"] = self.cookie
        return headers

    # ---------- dashboard ----------
    async def fetch_dashboard(self, uid: str) -> bytes:
        """Raw dashboard JSON. Failures are fatal and never retried."""
        url = self.base_url + self.DASHBOARD_PATH.format(uid=uid)
        logger.debug("Fetching dashboard %s", url)
        try:
            async with self.session.get(url, headers=self._headers()) as resp:
                if not 200 <= resp.status < 300:
                    txt = await resp.text(errors="replace")
                    raise DashboardFetchError(
                        f"Grafana dashboard API error {resp.status}: {txt[:300]}",
                        uid=uid, url=url, status=resp.status,
                    )
                return await resp.read()
        except asyncio.TimeoutError as e:
            raise DashboardFetchError("Grafana dashboard API timeout", uid=uid, url=url) from e
        except aiohttp.ClientError as e:
            raise DashboardFetchError(f"Grafana dashboard API HTTP error: {e}", uid=uid, url=url) from e

    # ---------- panels ----------
    def panel_params(self, panel: Panel, time_range: TimeRange) -> List[Tuple[str, str]]:
        width, height = panel_size(panel, self.layout)
        params = [
            ("panelId", panel.id),
            ("from", time_range.from_),
            ("to", time_range.to),
            ("width", str(width)),
            ("height", str(height)),
        ]
        if self.time_zone:
            params.append(("tz", self.time_zone))
        for name, values in self.variables.items():
            for value in values:
                params.append((name, value))
        return params

    async def fetch_panel_png(self, panel: Panel, dashboard_slug: str, time_range: TimeRange) -> bytes:
        """
        Render one panel as PNG.

        Non-2xx responses and transport errors are retried after a fixed sleep, up to
        retry_attempts attempts in total.

        Raises:
            PanelFetchError: every attempt failed
        """
        if panel.is_row:
            raise ValueError(f"Row panel {panel.id} cannot be rendered")

        url = self.base_url + self.RENDER_PATH.format(slug=dashboard_slug)
        params = self.panel_params(panel, time_range)
        headers = self._headers()

        last_error: Optional[str] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                async with self.session.get(url, params=params, headers=headers) as resp:
                    if 200 <= resp.status < 300:
                        return await resp.read()
                    body = (await resp.read()).decode("utf-8", errors="replace")
                    last_error = f"HTTP {resp.status}: {body[:300]}"
            except asyncio.TimeoutError:
                last_error = "timeout"
            except aiohttp.ClientError as e:
                last_error = f"{type(e).__name__}: {e}"

            if attempt < self.retry_attempts:
                logger.warning(
                    "Panel %s render failed (attempt %d/%d): %s; retrying in %ss",
                    panel.id, attempt, self.retry_attempts, last_error, self.retry_sleep,
                )
                await asyncio.sleep(self.retry_sleep)

        raise PanelFetchError(
            f"Failed to render panel {panel.id}",
            panel_id=panel.id, url=url, attempts=self.retry_attempts, last_error=last_error,
        )

    async def fetch_panel_pngs(
            self,
            panels: Sequence[Panel],
            dashboard_slug: str,
            time_range: TimeRange,
            max_workers: int = 2,
    ) -> List[bytes]:
        """
        Render panels concurrently; results are returned in input order.

        The first panel that exhausts its retries fails the whole batch and the
        remaining fetches are cancelled.
        """
        semaphore = asyncio.Semaphore(max(1, max_workers))

        async def fetch_with_semaphore(panel: Panel) -> bytes:
            async with semaphore:
                return await self.fetch_panel_png(panel, dashboard_slug, time_range)

        tasks = [asyncio.create_task(fetch_with_semaphore(p)) for p in panels]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
