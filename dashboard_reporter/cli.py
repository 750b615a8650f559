# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# dashboard_reporter/cli.py
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from dotenv import find_dotenv, load_dotenv
from rich.console import Console

from dashboard_reporter.config import ReporterSettings, get_settings
from dashboard_reporter.dashboard.model import TimeRange
from dashboard_reporter.errors import ReporterError
from dashboard_reporter.rendering.browser import close_shared_browser
from dashboard_reporter.report import open_report_generator
from dashboard_reporter.utils.logging_config import configure_logging


def parse_variables(pairs: Sequence[str]) -> Dict[str, List[str]]:
    """["host=a", "host=b", "var-port=1"] -> {"var-host": ["a", "b"], "var-port": ["1"]}"""
    out: Dict[str, List[str]] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ValueError(f"Expected name=value, got {pair!r}")
        if not name.startswith("var-"):
            name = "var-" + name
        out.setdefault(name, []).append(value)
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render a Grafana dashboard to a PDF report")
    parser.add_argument("--uid", required=True, help="Dashboard UID")
    parser.add_argument("--from", dest="time_from", default="now-6h", help="Time range start")
    parser.add_argument("--to", dest="time_to", default="now", help="Time range end")
    parser.add_argument("--var", action="append", default=[], metavar="NAME=VALUE",
                        help="Template variable (repeatable)")
    parser.add_argument("--cookie", default="", help="Cookie header forwarded to Grafana")
    parser.add_argument("--layout", choices=["simple", "grid"], help="Override REPORTER_LAYOUT")
    parser.add_argument("--orientation", choices=["portrait", "landscape"],
                        help="Override REPORTER_ORIENTATION")
    parser.add_argument("--include-panel", action="append", default=[], help="Panel id to include")
    parser.add_argument("--exclude-panel", action="append", default=[], help="Panel id to exclude")
    parser.add_argument("--out", default="report.pdf", help="Output PDF path")
    return parser


def settings_from_args(args: argparse.Namespace, base: Optional[ReporterSettings] = None) -> ReporterSettings:
    settings = base or get_settings()
    overrides = {}
    if args.layout:
        overrides["LAYOUT"] = args.layout
    if args.orientation:
        overrides["ORIENTATION"] = args.orientation
    if args.include_panel:
        overrides["INCLUDE_PANEL_IDS"] = list(args.include_panel)
    if args.exclude_panel:
        overrides["EXCLUDE_PANEL_IDS"] = list(args.exclude_panel)
    return settings.model_copy(update=overrides) if overrides else settings


async def run(args: argparse.Namespace, settings: ReporterSettings) -> bytes:
    try:
        async with open_report_generator(settings) as generator:
            return await generator.generate(
                args.uid,
                TimeRange(args.time_from, args.time_to),
                query_variables=parse_variables(args.var),
                cookie=args.cookie,
            )
    finally:
        await close_shared_browser()


def main(argv: Optional[Sequence[str]] = None) -> None:
    load_dotenv(find_dotenv(usecwd=True))
    configure_logging()

    console = Console()
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)

    try:
        pdf = asyncio.run(run(args, settings))
    except ValueError as exc:
        raise SystemExit(f"Invalid arguments: {exc}") from exc
    except asyncio.TimeoutError as exc:
        raise SystemExit(f"Report timed out after {settings.RENDER_TIMEOUT}s") from exc
    except ReporterError as exc:
        raise SystemExit(f"Report failed: {exc}") from exc

    out = Path(args.out)
    out.write_bytes(pdf)
    console.print(f"Wrote {out} ({len(pdf)} bytes)")


if __name__ == "__main__":
    main()
