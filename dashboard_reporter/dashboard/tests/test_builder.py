# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import json

import pytest

from dashboard_reporter.config import ReporterSettings
from dashboard_reporter.dashboard.builder import (
    build_dashboard,
    filter_panels,
    panel_id_matches,
    template_variables,
)
from dashboard_reporter.dashboard.model import GridPos, Panel, PanelGeometry
from dashboard_reporter.errors import DashboardParseError

DASH_JSON = """
{"dashboard":
    {
        "panels":
            [{"type":"singlestat", "id":0},
            {"type":"graph", "id":1, "gridPos":{"H":6,"W":24,"X":0,"Y":0}},
            {"type":"singlestat", "id":2, "title":"Panel3Title #"},
            {"type":"text", "gridPos":{"H":6.5,"W":20.5,"X":0,"Y":0}, "id":3},
            {"type":"table", "id":4},
            {"type":"row", "id":5, "collapsed": true}],
        "title":"DashTitle #"
    },

"Meta":
    {"Slug":"testDash"}
}"""


def _settings(**kw) -> ReporterSettings:
    return ReporterSettings(**kw)


def _ids(panels):
    return [p.id for p in panels]


def test_measured_boxes_define_the_panel_set():
    boxes = json.loads(
        '[{"width":940,"height":258,"x":0,"y":0,"id":"12"},'
        '{"width":940,"height":258,"x":940,"y":0,"id":"26"},'
        '{"width":940,"height":258,"x":0,"y":0,"id":"27"}]'
    )
    dash = build_dashboard(DASH_JSON, boxes, {}, _settings())

    assert _ids(dash.panels) == ["12", "26", "27"]
    assert dash.panels[1].geometry == PanelGeometry(width=940, height=258, x=940, y=0)
    assert dash.title == "DashTitle #"
    assert dash.slug == "testDash"


def test_measured_boxes_are_enriched_from_dashboard_json():
    boxes = [{"id": "2", "width": 300, "height": 150, "x": 0, "y": 0},
             {"id": "1", "width": 960, "height": 240, "x": 0, "y": 150}]
    dash = build_dashboard(DASH_JSON, boxes, {}, _settings())

    assert _ids(dash.panels) == ["2", "1"]
    assert dash.panels[0].type == "singlestat"
    assert dash.panels[0].title == "Panel3Title #"
    assert dash.panels[1].grid_pos == GridPos(h=6, w=24, x=0, y=0)


def test_measured_box_of_a_row_panel_is_skipped():
    raw = json.dumps({
        "dashboard": {"title": "T", "panels": [{"type": "graph", "id": 1}, {"type": "row", "id": 5}]},
        "meta": {"slug": "t"},
    })
    boxes = [{"id": "1", "width": 940, "height": 258, "x": 0, "y": 0},
             {"id": "5", "width": 1880, "height": 32, "x": 0, "y": 258}]
    dash = build_dashboard(raw, boxes, {}, _settings())

    assert _ids(dash.panels) == ["1"]
    assert all(not p.is_row for p in dash.panels)


def test_measured_box_of_a_row_panel_is_skipped_in_full_mode():
    boxes = [{"id": "5", "width": 1880, "height": 32, "x": 0, "y": 0},
             {"id": "4", "width": 940, "height": 258, "x": 0, "y": 32}]
    dash = build_dashboard(DASH_JSON, boxes, {}, _settings(DASHBOARD_MODE="full"))

    assert _ids(dash.panels) == ["4"]
    assert dash.panels[0].type == "table"


def test_unusable_measured_boxes_fall_back_to_dashboard_json():
    boxes = json.loads(
        '[{"width":"940px","height":"258px","transform":"translate(0px)","id":"12"},'
        '{"width":"940px","height":"258px","transform":"translate(948px, 0px)","id":"26"},'
        '{"width":"940px","height":"258px","transform":"translate(0px, 266px)","id":"27"}]'
    )
    dash = build_dashboard(DASH_JSON, boxes, {}, _settings())

    assert _ids(dash.panels) == ["0", "1", "2", "3", "4"]


def test_dashboard_json_panels_without_rows_in_source_order():
    dash = build_dashboard(DASH_JSON.encode(), None, {}, _settings())

    assert _ids(dash.panels) == ["0", "1", "2", "3", "4"]
    assert all(p.type != "row" for p in dash.panels)
    assert dash.panels[3].grid_pos == GridPos(h=6.5, w=20.5, x=0, y=0)
    # no gridPos -> zero geometry
    assert dash.panels[0].grid_pos == GridPos()


def test_full_mode_expands_collapsed_rows():
    raw = json.dumps({
        "dashboard": {"panels": [
            {"type": "graph", "id": 1},
            {"type": "row", "id": 2, "collapsed": True, "panels": [
                {"type": "graph", "id": 3}, {"type": "table", "id": 4},
            ]},
            {"type": "text", "id": 5},
        ]},
        "meta": {"slug": "rows"},
    })

    assert _ids(build_dashboard(raw, [], {}, _settings()).panels) == ["1", "5"]
    full = build_dashboard(raw, [], {}, _settings(DASHBOARD_MODE="full"))
    assert _ids(full.panels) == ["1", "3", "4", "5"]


def test_string_panel_ids_are_kept():
    raw = json.dumps({"dashboard": {"panels": [{"type": "graph", "id": "panel-1-clone-0"}]}})
    assert _ids(build_dashboard(raw, [], {}, _settings()).panels) == ["panel-1-clone-0"]


def test_variable_values():
    vars_ = {"var-one": ["oneval"], "var-two": ["twoval"], "from": ["now-1h"]}
    dash = build_dashboard('{"dashboard": {}}', None, vars_, _settings())

    assert "oneval" in dash.variable_values
    assert "twoval" in dash.variable_values
    assert "now-1h" not in dash.variable_values
    assert dash.variables == {"var-one": ["oneval"], "var-two": ["twoval"]}
    assert dash.panels == []


def test_template_variables_accepts_single_strings():
    assert template_variables({"var-a": "x", "b": "y"}) == {"var-a": ["x"]}
    assert template_variables(None) == {}


@pytest.mark.parametrize("raw", ["{not json", b"", "[1, 2]", '{"dashboard": {"panels": "nope"}}'])
def test_malformed_dashboard_json(raw):
    with pytest.raises(DashboardParseError):
        build_dashboard(raw, None, {}, _settings())


def test_filters_apply_after_panel_derivation():
    dash = build_dashboard(DASH_JSON, None, {}, _settings(EXCLUDE_PANEL_IDS=["0", "4"]))
    assert _ids(dash.panels) == ["1", "2", "3"]


# ----------------------------- filter_panels -----------------------------

INT_PANELS = [Panel(id=i) for i in ("1", "2", "3", "4", "15", "26", "37")]
STR_PANELS = [Panel(id=i) for i in (
    "panel-1-clone-0", "panel-1-clone-1", "panel-3", "panel-4", "panel-5", "panel-6", "panel-7",
)]


@pytest.mark.parametrize(
    "panels, include, exclude, expected",
    [
        (INT_PANELS, ["1", "4", "3"], [], ["1", "3", "4"]),
        (INT_PANELS, [], ["2", "4", "3"], ["1", "15", "26", "37"]),
        (INT_PANELS, ["1", "4", "6"], ["2", "4", "3"], ["1", "4", "15", "26", "37"]),
        (INT_PANELS, [], [], ["1", "2", "3", "4", "15", "26", "37"]),
        (STR_PANELS, ["panel-1", "panel-4", "panel-6"], [],
         ["panel-1-clone-0", "panel-1-clone-1", "panel-4", "panel-6"]),
        (STR_PANELS, [], ["panel-1", "panel-4", "panel-3"], ["panel-5", "panel-6", "panel-7"]),
        (STR_PANELS, ["panel-1", "panel-4", "panel-6"], ["panel-2", "panel-4", "panel-3"],
         ["panel-1-clone-0", "panel-1-clone-1", "panel-4", "panel-5", "panel-6", "panel-7"]),
    ],
    ids=["int-include", "int-exclude", "int-both", "int-none", "str-include", "str-exclude", "str-both"],
)
def test_filter_panels(panels, include, exclude, expected):
    settings = _settings(INCLUDE_PANEL_IDS=include, EXCLUDE_PANEL_IDS=exclude)
    assert _ids(filter_panels(panels, settings)) == expected


def test_filter_panels_include_does_not_match_longer_ids():
    # "1" must not pull in "15"
    assert _ids(filter_panels(INT_PANELS, _settings(INCLUDE_PANEL_IDS=["1"]))) == ["1"]


def test_panel_id_matches():
    assert panel_id_matches("panel-1", "panel-1")
    assert panel_id_matches("panel-1-clone-3", "panel-1")
    assert not panel_id_matches("panel-15", "panel-1")
    assert not panel_id_matches("panel", "panel-1")


def test_panel_id_lists_from_comma_separated_strings():
    settings = _settings(INCLUDE_PANEL_IDS="panel-1, panel-4,,", EXCLUDE_PANEL_IDS=None)
    assert settings.INCLUDE_PANEL_IDS == ["panel-1", "panel-4"]
    assert settings.EXCLUDE_PANEL_IDS == []
