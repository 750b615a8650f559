# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# client/sizing.py
from typing import Tuple

from dashboard_reporter.dashboard.model import Panel

# Pixels per grid unit: a full-width (24 unit) panel renders 960px wide
GRID_UNIT_PX = 40

_SIMPLE_SIZES = {
    "singlestat": (300, 150),
    "text": (1000, 100),
}
_SIMPLE_DEFAULT = (1000, 500)


def simple_size(panel_type: str) -> Tuple[int, int]:
    return _SIMPLE_SIZES.get(panel_type, _SIMPLE_DEFAULT)


def panel_size(panel: Panel, layout: str) -> Tuple[int, int]:
    """
    Pixel (width, height) to request from the render endpoint.

    simple: fixed size by panel type.
    grid:   measured browser geometry when available, otherwise gridPos * 40px.
            Panels without usable geometry fall back to their simple size.
    """
    if layout == "simple":
        return simple_size(panel.type)
    if layout != "grid":
        raise ValueError(f"Unknown layout mode: {layout!r}")

    if panel.geometry is not None and panel.geometry.width > 0 and panel.geometry.height > 0:
        return round(panel.geometry.width), round(panel.geometry.height)

    width = int(panel.grid_pos.w * GRID_UNIT_PX)
    height = int(panel.grid_pos.h * GRID_UNIT_PX)
    if width <= 0 or height <= 0:
        return simple_size(panel.type)
    return width, height
