"""Logging setup for s3nav.

The terminal belongs to the UI, so log records go to a file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .config import default_log_path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    path: Optional[Path] = None, level: Optional[str] = None
) -> Path:
    """Send ``s3nav`` log records to *path* and return the path used."""
    log_path = path or default_log_path()
    level_name = (level or os.environ.get("S3NAV_LOG_LEVEL") or "INFO").upper()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    package_logger = logging.getLogger("s3nav")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
        existing.close()
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level_name, logging.INFO))
    package_logger.propagate = False
    return log_path
