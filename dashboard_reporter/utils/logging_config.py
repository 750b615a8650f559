# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# utils/logging_config.py
import logging
import os


def _to_level(name: str, default: int) -> int:
    level = getattr(logging, (name or "").upper(), None)
    return level if isinstance(level, int) else default

def configure_logging():
    # --- Root config ---
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("LOG_FORMAT",
                           "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    level = _to_level(log_level_name, logging.INFO)

    logging.basicConfig(level=level, format=log_format, force=True)
    logging.captureWarnings(True)

    # --- Normalize noisy library loggers ---
    desired_levels = {
        "asyncio": os.getenv("ASYNCIO_LEVEL", "WARNING"),
        "aiohttp.access": os.getenv("AIOHTTP_ACCESS_LEVEL", "WARNING"),
        "aiohttp.client": os.getenv("AIOHTTP_CLIENT_LEVEL", "WARNING"),
        # playwright driver chatter
        "playwright": os.getenv("PLAYWRIGHT_LEVEL", "WARNING"),
    }

    for name, lvl_name in desired_levels.items():
        lg = logging.getLogger(name)
        # Handlers attached by libraries cause duplicates
        for h in list(lg.handlers):
            lg.removeHandler(h)
        lg.propagate = True
        lg.setLevel(_to_level(lvl_name, level))
