#!/usr/bin/env python3
"""
Logging setup for applications using mwcc.

The library itself only logs to the "mwcc" logger hierarchy and never
configures handlers. Applications that want to see that output call
setup_logging() once:

    from mwcc.logging_config import setup_logging

    logger = setup_logging(site_id="enwiki", log_dir="./logs")

Console output goes to stderr. A rotating log file is added when a log
directory is given or MWCC_LOG_DIR is set.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_dir() -> Optional[Path]:
    """Return the log directory from MWCC_LOG_DIR, or None if unset."""
    value = os.environ.get("MWCC_LOG_DIR")
    return Path(value) if value else None


def setup_logging(
    name: str = "mwcc",
    site_id: Optional[str] = None,
    log_dir: Optional[str] = None,
    level: int = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,  # 5 MB
    backup_count: int = 3,
    console: bool = True,
) -> logging.Logger:
    """
    Attach handlers to the named logger.

    Args:
        name: Logger to configure (default: the library's root logger)
        site_id: Site identifier used in the log filename (e.g., "enwiki")
        log_dir: Directory for the log file (default: MWCC_LOG_DIR, else none)
        level: Logging level
        max_bytes: Max log file size before rotation
        backup_count: Number of rotated log files to keep
        console: Whether to log to stderr

    Returns:
        The configured logger

    Log files are named {site_id}-{name}.log, or {name}.log without a site_id.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    log_path = Path(log_dir) if log_dir else get_log_dir()
    if log_path is not None:
        log_path.mkdir(parents=True, exist_ok=True)
        filename = f"{site_id}-{name}.log" if site_id else f"{name}.log"
        file_handler = RotatingFileHandler(
            log_path / filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
