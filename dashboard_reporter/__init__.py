# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

"""
Grafana dashboard ➜ PDF reports.
File: dashboard_reporter/__init__.py
"""
from dashboard_reporter.client.grafana import GrafanaClient
from dashboard_reporter.config import ReporterSettings, get_settings
from dashboard_reporter.dashboard.builder import build_dashboard, filter_panels
from dashboard_reporter.dashboard.model import Dashboard, GridPos, Panel, PanelGeometry, TimeRange
from dashboard_reporter.rendering.pdf import DocumentRenderer
from dashboard_reporter.report import ReportGenerator, open_report_generator

__version__ = "0.1.0"
