#!/usr/bin/env python3
"""
Logging configuration for batch bots.

Sets up logging to both console and a rotating file. Worker threads log
concurrently, so every record carries the thread name.

Usage:
    from wikibatch.logging_config import setup_logging

    logger = setup_logging(
        name="cleanup",
        wiki_id="commons",
        log_dir="/var/log/bots",  # Optional, defaults to ./logs
    )
    logger.info("Starting batch...")
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    name: str,
    wiki_id: Optional[str] = None,
    log_dir: Optional[str] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    console: bool = True,
) -> logging.Logger:
    """
    Set up logging to console and file for one bot run.

    Args:
        name: Logger name (used in log filename)
        wiki_id: Wiki identifier for log filename (e.g., "commons")
        log_dir: Directory for log files (default: LOG_DIR env var or ./logs)
        level: Logging level (default: INFO)
        max_bytes: Max log file size before rotation
        backup_count: Number of rotated log files to keep
        console: Whether to also log to stdout

    Returns:
        Configured logger instance. Pass it to the dispatcher so worker
        output lands in the same file.

    Log files are named: {wiki_id}-{name}.log (e.g., commons-cleanup.log)
    """
    log_path = Path(log_dir) if log_dir else get_log_dir()
    log_path.mkdir(parents=True, exist_ok=True)

    log_filename = f"{wiki_id}-{name}.log" if wiki_id else f"{name}.log"
    log_file = log_path / log_filename

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Re-initialization replaces handlers instead of stacking them
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.debug(f"Logging initialized: {log_file}")
    return logger


def get_log_dir(default: str = "./logs") -> Path:
    """
    Get the log directory from environment or default.

    Checks LOG_DIR environment variable first.
    """
    return Path(os.environ.get("LOG_DIR", default))
