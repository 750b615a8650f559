# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# dashboard/model.py
"""
Dashboard / panel types and the decode step from Grafana's loosely-typed JSON.

Grafana JSON is decoded into pydantic "raw" models first (case-insensitive keys,
unknown fields ignored, missing optional fields defaulted) and then converted into
the plain dataclasses the rest of the package works with.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ROW_PANEL_TYPE = "row"


# ----------------------------- Plain types -----------------------------

@dataclass(frozen=True)
class GridPos:
    """Logical grid units from the dashboard's declared layout."""
    h: float = 0
    w: float = 0
    x: float = 0
    y: float = 0


@dataclass(frozen=True)
class PanelGeometry:
    """Pixel bounding box measured by a live browser session."""
    width: float
    height: float
    x: float = 0
    y: float = 0


@dataclass
class Panel:
    id: str
    type: str = ""
    title: str = ""
    grid_pos: GridPos = field(default_factory=GridPos)
    geometry: Optional[PanelGeometry] = None

    @property
    def is_row(self) -> bool:
        return self.type == ROW_PANEL_TYPE


@dataclass(frozen=True)
class TimeRange:
    # Passed verbatim to the render endpoint
    from_: str = "now-6h"
    to: str = "now"


@dataclass
class Dashboard:
    title: str
    slug: str
    panels: List[Panel] = field(default_factory=list)
    variable_values: str = ""
    variables: Dict[str, List[str]] = field(default_factory=dict)


# ----------------------------- Raw (wire) models -----------------------------

def lower_keys(value: Any) -> Any:
    """Recursively lower-case mapping keys so decoding is case-insensitive."""
    if isinstance(value, dict):
        return {str(k).lower(): lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [lower_keys(v) for v in value]
    return value


class _Raw(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RawGridPos(_Raw):
    h: float = 0
    w: float = 0
    x: float = 0
    y: float = 0

    def to_grid_pos(self) -> GridPos:
        return GridPos(h=self.h, w=self.w, x=self.x, y=self.y)


class RawPanel(_Raw):
    id: str = ""
    type: str = ""
    title: Optional[str] = None
    gridpos: Optional[RawGridPos] = None
    collapsed: bool = False
    panels: List["RawPanel"] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        if v is None:
            return ""
        # Numeric ids (older schema) become their decimal string
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v)

    def to_panel(self) -> Panel:
        return Panel(
            id=self.id,
            type=self.type or "",
            title=self.title or "",
            grid_pos=self.gridpos.to_grid_pos() if self.gridpos else GridPos(),
        )


RawPanel.model_rebuild()


class RawDashboardBody(_Raw):
    title: str = ""
    panels: List[RawPanel] = Field(default_factory=list)


class RawMeta(_Raw):
    slug: str = ""


class RawDashboardEnvelope(_Raw):
    dashboard: RawDashboardBody = Field(default_factory=RawDashboardBody)
    meta: RawMeta = Field(default_factory=RawMeta)


class RawGeometryRecord(_Raw):
    """One measured panel box. Geometry must be numeric (pixels)."""
    id: str
    width: Union[int, float]
    height: Union[int, float]
    x: Union[int, float] = 0
    y: Union[int, float] = 0

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v)

    @field_validator("width", "height", "x", "y", mode="before")
    @classmethod
    def _numeric_only(cls, v):
        # "940px" style values come from an older capture script and are not usable
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"expected a number, got {v!r}")
        return v

    def to_geometry(self) -> PanelGeometry:
        return PanelGeometry(width=self.width, height=self.height, x=self.x, y=self.y)
