# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import pytest

from dashboard_reporter.client.sizing import panel_size
from dashboard_reporter.dashboard.model import GridPos, Panel, PanelGeometry


@pytest.mark.parametrize(
    "panel_type, expected",
    [
        ("singlestat", (300, 150)),
        ("text", (1000, 100)),
        ("graph", (1000, 500)),
        ("table", (1000, 500)),
        ("timeseries", (1000, 500)),
    ],
)
def test_simple_layout_sizes_by_type(panel_type, expected):
    # grid geometry is ignored in simple mode
    panel = Panel(id="44", type=panel_type, grid_pos=GridPos(h=6, w=24))
    assert panel_size(panel, "simple") == expected


@pytest.mark.parametrize(
    "grid_pos, expected",
    [
        (GridPos(h=6, w=24), (960, 240)),
        (GridPos(h=3, w=12), (480, 120)),
        (GridPos(h=6.5, w=20.5), (820, 260)),
    ],
)
def test_grid_layout_scales_grid_units(grid_pos, expected):
    panel = Panel(id="44", type="graph", grid_pos=grid_pos)
    assert panel_size(panel, "grid") == expected


def test_grid_layout_prefers_measured_geometry():
    panel = Panel(
        id="12", type="graph",
        grid_pos=GridPos(h=6, w=24),
        geometry=PanelGeometry(width=940.4, height=258, x=0, y=0),
    )
    assert panel_size(panel, "grid") == (940, 258)


def test_grid_layout_without_geometry_falls_back_to_simple_size():
    assert panel_size(Panel(id="1", type="singlestat"), "grid") == (300, 150)
    assert panel_size(Panel(id="2", type="graph"), "grid") == (1000, 500)


def test_unknown_layout_is_rejected():
    with pytest.raises(ValueError):
        panel_size(Panel(id="1", type="graph"), "masonry")
