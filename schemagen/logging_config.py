"""
Logging setup for the schemagen command line.

Library code only creates module loggers; handlers are installed here,
once, by the entry point.
"""

from __future__ import annotations

import logging
from typing import Optional

import json_log_formatter

from .config import Settings


def setup_logging(settings: Settings, level_override: Optional[str] = None) -> None:
    """Configure logging based on configuration.

    Args:
        settings: schemagen settings
        level_override: Level name that takes precedence over settings.log_level
    """
    level_name = level_override or settings.log_level
    level = getattr(logging, level_name.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]
