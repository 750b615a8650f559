# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# dashboard/builder.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from dashboard_reporter.config import ReporterSettings
from dashboard_reporter.dashboard.model import (
    Dashboard,
    Panel,
    ROW_PANEL_TYPE,
    RawDashboardEnvelope,
    RawGeometryRecord,
    RawPanel,
    lower_keys,
)
from dashboard_reporter.errors import DashboardParseError

logger = logging.getLogger(__name__)

VARIABLE_PREFIX = "var-"
# Repeated panels get ids like "panel-1-clone-0"
CLONE_SEPARATOR = "-"


def build_dashboard(
        raw_json: Union[bytes, str],
        measured_boxes: Optional[Sequence[Mapping[str, Any]]],
        query_variables: Optional[Mapping[str, Iterable[str]]],
        settings: ReporterSettings,
) -> Dashboard:
    """
    Build the filtered, ordered panel list for one report.

    Args:
        raw_json: body of GET /api/dashboards/uid/{uid}
        measured_boxes: panel boxes captured from a live browser session
            ({"id", "width", "height", "x", "y"}); may be empty
        query_variables: request query parameters; keys starting with "var-"
            are template variables
        settings: reporter settings (layout, panel filters, dashboard mode)

    Raises:
        DashboardParseError: the dashboard JSON is malformed
    """
    envelope = parse_dashboard_json(raw_json)
    json_panels = _flatten_panels(envelope.dashboard.panels, expand_rows=settings.DASHBOARD_MODE == "full")

    measured = _decode_measured_boxes(measured_boxes)
    if measured:
        panels = _panels_from_measured(measured, json_panels)
    else:
        panels = [p.to_panel() for p in json_panels if p.type != ROW_PANEL_TYPE]

    variables = template_variables(query_variables)
    dashboard = Dashboard(
        title=envelope.dashboard.title,
        slug=envelope.meta.slug,
        panels=filter_panels(panels, settings),
        variable_values=serialize_variables(variables),
        variables=variables,
    )
    logger.debug(
        "Built dashboard %r (slug=%s): %d panel(s) of %d discovered",
        dashboard.title, dashboard.slug, len(dashboard.panels), len(panels),
    )
    return dashboard


def parse_dashboard_json(raw_json: Union[bytes, str]) -> RawDashboardEnvelope:
    try:
        data = json.loads(raw_json)
    except (TypeError, ValueError) as e:
        raise DashboardParseError(f"Malformed dashboard JSON: {e}") from e
    if not isinstance(data, dict):
        raise DashboardParseError(f"Dashboard JSON must be an object, got {type(data).__name__}")
    try:
        return RawDashboardEnvelope.model_validate(lower_keys(data))
    except ValidationError as e:
        raise DashboardParseError(f"Unexpected dashboard JSON structure: {e}") from e


def _flatten_panels(raw_panels: List[RawPanel], *, expand_rows: bool) -> List[RawPanel]:
    # Collapsed rows carry their children in row.panels; Grafana only shows them when expanded
    out: List[RawPanel] = []
    for p in raw_panels:
        out.append(p)
        if expand_rows and p.type == "row" and p.panels:
            out.extend(p.panels)
    return out


def _decode_measured_boxes(boxes: Optional[Sequence[Mapping[str, Any]]]) -> List[RawGeometryRecord]:
    if not boxes:
        return []
    try:
        return [RawGeometryRecord.model_validate(lower_keys(dict(b))) for b in boxes]
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning(
            "Ignoring %d measured panel box(es), falling back to dashboard JSON layout: %s",
            len(boxes), e,
        )
        return []


def _panels_from_measured(measured: List[RawGeometryRecord], json_panels: List[RawPanel]) -> List[Panel]:
    by_id: Dict[str, RawPanel] = {p.id: p for p in json_panels}
    panels: List[Panel] = []
    for box in measured:
        raw = by_id.get(box.id)
        if raw is not None and raw.type == ROW_PANEL_TYPE:
            # rows are structural, never rendered
            logger.debug("Skipping measured box %s: row panel", box.id)
            continue
        panel = raw.to_panel() if raw is not None else Panel(id=box.id)
        panel.geometry = box.to_geometry()
        panels.append(panel)
    return panels


def template_variables(query_variables: Optional[Mapping[str, Iterable[str]]]) -> Dict[str, List[str]]:
    """Keep only "var-*" query parameters, values always as lists."""
    out: Dict[str, List[str]] = {}
    for key, values in (query_variables or {}).items():
        if not key.startswith(VARIABLE_PREFIX):
            continue
        if isinstance(values, (str, bytes)):
            values = [values]
        out[key] = [str(v) for v in values]
    return out


def serialize_variables(variables: Mapping[str, List[str]]) -> str:
    parts = []
    for key, values in variables.items():
        name = key[len(VARIABLE_PREFIX):]
        parts.append(f"{name}={','.join(values)}")
    return "; ".join(parts)


def panel_id_matches(panel_id: str, ref: str) -> bool:
    """True for the same id or a clone of it: "panel-1" matches "panel-1-clone-0", not "panel-15"."""
    return panel_id == ref or panel_id.startswith(ref + CLONE_SEPARATOR)


def _matches_any(panel_id: str, refs: Sequence[str]) -> bool:
    return any(panel_id_matches(panel_id, ref) for ref in refs)


def filter_panels(panels: Sequence[Panel], settings: ReporterSettings) -> List[Panel]:
    """
    Apply include / exclude panel id filters, preserving discovery order.

    With both configured the result is (all - excluded) | included.
    """
    include = settings.INCLUDE_PANEL_IDS
    exclude = settings.EXCLUDE_PANEL_IDS
    if not include and not exclude:
        return list(panels)

    kept: List[Panel] = []
    for panel in panels:
        if include and _matches_any(panel.id, include):
            kept.append(panel)
        elif exclude and not _matches_any(panel.id, exclude):
            kept.append(panel)
    return kept
