# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# dashboard_reporter/report.py
"""
Dashboard ➜ PDF report assembly.

    fetch dashboard JSON ➜ build panel list ➜ render panel PNGs (concurrently)
    ➜ compose HTML (jinja2) ➜ print PDF (Chromium)

Panel failures are atomic: when one panel exhausts its retries the report fails
with that panel's PanelFetchError and no document is produced.
"""
from __future__ import annotations

import asyncio
import base64
import datetime as _dt
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import aiohttp
from jinja2 import Environment

from dashboard_reporter.client.grafana import GrafanaClient, create_session
from dashboard_reporter.config import ReporterSettings
from dashboard_reporter.dashboard.builder import build_dashboard, template_variables
from dashboard_reporter.dashboard.model import Dashboard, Panel, TimeRange
from dashboard_reporter.rendering.browser import get_shared_browser
from dashboard_reporter.rendering.pdf import DocumentRenderer

logger = logging.getLogger(__name__)

# -----------------------------
# Templates
# -----------------------------

_CSS = """
@page { margin: 0; }
html, body { font-family: system-ui, -apple-system, Segoe UI, Roboto, Ubuntu, Noto Sans, Arial; color: #111; margin: 0; }
* { -webkit-print-color-adjust: exact; print-color-adjust: exact; }
.panel { margin: 0 0 6mm 0; break-inside: avoid; page-break-inside: avoid; text-align: center; }
.panel img { max-width: 100%; }
.panel figcaption { font-size: 9pt; color: #6b7280; margin-top: 2px; }
.grid { display: grid; grid-template-columns: repeat(24, 1fr); grid-auto-rows: 40px; gap: 4px; }
.grid .panel { margin: 0; }
.grid .panel img { width: 100%; height: 100%; object-fit: contain; }
"""

_BODY_TEMPLATE = """<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>{{ title }}</title>
  <style>{{ css|safe }}</style>
</head>
<body>
{% if grid %}
  <div class="grid">
  {% for p in panels %}
    <figure class="panel panel-{{ p.type }}" id="panel-{{ p.id }}" style="grid-column: {{ p.col }} / span {{ p.cols }}; grid-row: {{ p.row }} / span {{ p.rows }};">
      <img src="{{ p.src }}" alt="{{ p.title }}"/>
    </figure>
  {% endfor %}
  </div>
{% else %}
  {% for p in panels %}
  <figure class="panel panel-{{ p.type }}" id="panel-{{ p.id }}">
    <img src="{{ p.src }}" alt="{{ p.title }}"/>
    {% if p.title %}<figcaption>{{ p.title }}</figcaption>{% endif %}
  </figure>
  {% endfor %}
{% endif %}
</body>
</html>
"""

# Chromium print templates: inline styles only, font size must be explicit
_HEADER_TEMPLATE = """
<div style="font-size: 9pt; width: 100%; padding: 0 10mm; color: #374151; display: flex; align-items: center; justify-content: space-between;">
  <span>
    {% if logo %}<img src="data:image/png;base64,{{ logo }}" style="height: 8mm; vertical-align: middle; margin-right: 3mm;"/>{% endif %}
    <b>{{ title }}</b>
  </span>
  <span>{{ time_from }} &rarr; {{ time_to }}{% if time_zone %} ({{ time_zone }}){% endif %}</span>
</div>
{% if variable_values %}
<div style="font-size: 7pt; width: 100%; padding: 0 10mm; color: #6b7280;">{{ variable_values }}</div>
{% endif %}
"""

_FOOTER_TEMPLATE = """
<div style="font-size: 8pt; width: 100%; padding: 0 10mm; color: #6b7280; display: flex; justify-content: space-between;">
  <span>Generated {{ generated }}</span>
  <span>Page <span class="pageNumber"></span> / <span class="totalPages"></span></span>
</div>
"""

_env = Environment(autoescape=True)


def _image_src(image: Optional[bytes]) -> str:
    if not image:
        return ""
    return "data:image/png;base64," + base64.b64encode(image).decode("ascii")


def _panel_view(panel: Panel, image: Optional[bytes]) -> Dict[str, Any]:
    gp = panel.grid_pos
    return {
        "id": panel.id,
        "type": panel.type or "panel",
        "title": panel.title,
        "src": _image_src(image),
        "col": int(gp.x) + 1,
        "cols": max(1, round(gp.w)) if gp.w else 24,
        "row": int(gp.y) + 1,
        "rows": max(1, round(gp.h)) if gp.h else 6,
    }


def compose_report_html(
        dashboard: Dashboard,
        time_range: TimeRange,
        settings: ReporterSettings,
        images: Optional[Sequence[Optional[bytes]]] = None,
        now: Optional[_dt.datetime] = None,
) -> Tuple[str, str, str]:
    """
    Return (header, body, footer) HTML for the dashboard's panels.

    `images` holds the PNG of each panel, positionally aligned with
    dashboard.panels; a missing entry renders an empty image.
    """
    now = now or _dt.datetime.now()
    images = list(images or [])
    images += [None] * (len(dashboard.panels) - len(images))
    # Grid placement needs declared geometry on every panel
    grid = settings.LAYOUT == "grid" and all(p.grid_pos.w and p.grid_pos.h for p in dashboard.panels)

    header = _env.from_string(_HEADER_TEMPLATE).render(
        title=dashboard.title or dashboard.slug or "Dashboard",
        time_from=time_range.from_,
        time_to=time_range.to,
        time_zone=settings.TIME_ZONE,
        variable_values=dashboard.variable_values,
        logo=settings.LOGO,
    )
    body = _env.from_string(_BODY_TEMPLATE).render(
        title=dashboard.title or dashboard.slug or "Dashboard",
        css=_CSS,
        grid=grid,
        panels=[_panel_view(p, image) for p, image in zip(dashboard.panels, images)],
    )
    footer = _env.from_string(_FOOTER_TEMPLATE).render(
        generated=now.strftime("%Y-%m-%d %H:%M"),
    )
    return header, body, footer


# -----------------------------
# Generator
# -----------------------------

class ReportGenerator:
    """Builds one PDF per call. Holds only shared, read-only resources."""

    def __init__(
            self,
            settings: ReporterSettings,
            session: aiohttp.ClientSession,
            renderer: DocumentRenderer,
    ):
        self.settings = settings
        self.session = session
        self.renderer = renderer

    async def generate(
            self,
            uid: str,
            time_range: TimeRange,
            query_variables: Optional[Mapping[str, Iterable[str]]] = None,
            measured_boxes: Optional[Sequence[Mapping[str, Any]]] = None,
            cookie: str = "",
    ) -> bytes:
        """
        Generate the PDF report for dashboard `uid`.

        The whole run is bound to settings.RENDER_TIMEOUT; asyncio.TimeoutError is
        raised when it elapses. Errors from lower layers propagate unchanged
        (DashboardFetchError, DashboardParseError, PanelFetchError, RenderError).
        """
        return await asyncio.wait_for(
            self._generate(uid, time_range, query_variables, measured_boxes, cookie),
            self.settings.RENDER_TIMEOUT,
        )

    async def _generate(
            self,
            uid: str,
            time_range: TimeRange,
            query_variables: Optional[Mapping[str, Iterable[str]]],
            measured_boxes: Optional[Sequence[Mapping[str, Any]]],
            cookie: str,
    ) -> bytes:
        client = GrafanaClient.from_settings(
            self.session, self.settings, cookie, template_variables(query_variables),
        )

        raw = await client.fetch_dashboard(uid)
        dashboard = build_dashboard(raw, measured_boxes, query_variables, self.settings)

        images = await client.fetch_panel_pngs(
            dashboard.panels, dashboard.slug, time_range, self.settings.MAX_RENDER_WORKERS,
        )

        header, body, footer = compose_report_html(dashboard, time_range, self.settings, images=images)
        pdf = await self.renderer.render_document(
            header, body, footer, self.settings.ORIENTATION,
            timeout=self.settings.RENDER_TIMEOUT,
            headers={"Cookie": cookie} if cookie else None,
        )
        logger.info(
            "Report for dashboard %s (%s): %d panel(s), %d bytes",
            uid, dashboard.slug, len(dashboard.panels), len(pdf),
        )
        return pdf


@asynccontextmanager
async def open_report_generator(settings: ReporterSettings) -> AsyncIterator[ReportGenerator]:
    """
    HTTP session for the lifetime of the block, on top of the process-wide browser.

    The browser stays up after the block; close it with close_shared_browser()
    at shutdown.
    """
    browser = await get_shared_browser(
        remote_url=settings.REMOTE_CHROME_URL,
        headless=settings.HEADLESS,
    )
    async with create_session(settings) as session:
        renderer = DocumentRenderer(browser, max_workers=settings.MAX_BROWSER_WORKERS)
        yield ReportGenerator(settings, session, renderer)
