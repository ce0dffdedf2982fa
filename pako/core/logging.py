"""
Logging setup — console plus a dated log file under ~/.pako/logs.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path


def setup_logging(
    log_dir: Path | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> logging.Logger:
    """
    Setup Pako logging.

    Args:
        log_dir: Directory for log files (default: ~/.pako/logs)
        console_level: Minimum level for console output
        file_level: Minimum level for file output

    Returns:
        The configured "pako" logger
    """
    log_dir = (log_dir or (Path.home() / ".pako" / "logs")).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("pako")
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers
    logger.handlers = []

    # Console handler (minimal output)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)

    # File handler (detailed output)
    log_file = log_dir / f"pako_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info(f"Logging initialized. File: {log_file}")

    return logger


def parse_level(name: str) -> int:
    """Map a level name from config ("debug", "INFO", ...) to its numeric value."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO
