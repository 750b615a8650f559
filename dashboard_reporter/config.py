# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# dashboard_reporter/config.py
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

LayoutMode = Literal["simple", "grid"]
Orientation = Literal["portrait", "landscape"]
DashboardMode = Literal["default", "full"]


class ReporterSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REPORTER_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # Grafana
    APP_URL: str = Field(default="http://localhost:3000", alias="REPORTER_APP_URL")
    SKIP_TLS_CHECK: bool = Field(default=False, alias="REPORTER_SKIP_TLS_CHECK")
    HTTP_TIMEOUT: float = Field(default=60.0, alias="REPORTER_HTTP_TIMEOUT")

    # Report layout
    LAYOUT: LayoutMode = Field(default="simple", alias="REPORTER_LAYOUT")
    ORIENTATION: Orientation = Field(default="portrait", alias="REPORTER_ORIENTATION")
    DASHBOARD_MODE: DashboardMode = Field(default="default", alias="REPORTER_DASHBOARD_MODE")
    TIME_ZONE: Optional[str] = Field(default=None, alias="REPORTER_TIME_ZONE")
    LOGO: Optional[str] = Field(default=None, alias="REPORTER_LOGO")

    # Panel selection
    INCLUDE_PANEL_IDS: Annotated[List[str], NoDecode] = Field(
        default_factory=list, alias="REPORTER_INCLUDE_PANEL_IDS"
    )
    EXCLUDE_PANEL_IDS: Annotated[List[str], NoDecode] = Field(
        default_factory=list, alias="REPORTER_EXCLUDE_PANEL_IDS"
    )

    # Workers / retries
    MAX_RENDER_WORKERS: int = Field(default=2, ge=1, alias="REPORTER_MAX_RENDER_WORKERS")
    MAX_BROWSER_WORKERS: int = Field(default=6, ge=1, alias="REPORTER_MAX_BROWSER_WORKERS")
    PANEL_RETRY_ATTEMPTS: int = Field(default=3, ge=1, alias="REPORTER_PANEL_RETRY_ATTEMPTS")
    PANEL_RETRY_SLEEP: float = Field(default=10.0, ge=0, alias="REPORTER_PANEL_RETRY_SLEEP")
    RENDER_TIMEOUT: float = Field(default=300.0, gt=0, alias="REPORTER_RENDER_TIMEOUT")

    # Chromium
    REMOTE_CHROME_URL: Optional[str] = Field(default=None, alias="REPORTER_REMOTE_CHROME_URL")
    HEADLESS: bool = Field(default=True, alias="REPORTER_HEADLESS")

    # Accept comma-separated panel ids from the environment
    @field_validator("INCLUDE_PANEL_IDS", "EXCLUDE_PANEL_IDS", mode="before")
    @classmethod
    def _split_ids(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return [str(p).strip() for p in v if str(p).strip()]


@lru_cache()
def get_settings() -> ReporterSettings:
    return ReporterSettings()
