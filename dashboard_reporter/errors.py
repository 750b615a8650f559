# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# dashboard_reporter/errors.py
from typing import Any, Dict, Optional


class ReporterError(RuntimeError):
    """Base reporter error"""
    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: Dict[str, Any] = context
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items() if v is not None)
        return f"{self.message} ({details})" if details else self.message


class DashboardFetchError(ReporterError):
    """Dashboard metadata could not be fetched. Never retried."""
    def __init__(self, message: str, uid: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, uid=uid, url=url, status=status)
        self.uid = uid
        self.status = status


class PanelFetchError(ReporterError):
    """Panel image could not be fetched after all retry attempts."""
    def __init__(self, message: str, panel_id: str, url: Optional[str] = None,
                 attempts: int = 0, last_error: Optional[str] = None):
        super().__init__(message, panel_id=panel_id, url=url, attempts=attempts, last_error=last_error)
        self.panel_id = panel_id
        self.attempts = attempts
        self.last_error = last_error


class DashboardParseError(ReporterError):
    pass


class RenderError(ReporterError):
    """Browser navigation, lifecycle tracking or PDF capture failed."""
    def __init__(self, message: str, stage: str):
        super().__init__(message, stage=stage)
        self.stage = stage
