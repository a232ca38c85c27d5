"""
Logging configuration for the pdfdesk package.
"""
import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``pdfdesk`` package logger.

    Handlers are only installed once, so calling this again just
    updates the level.

    Args:
        level: Level name such as "DEBUG" or "INFO"
        log_file: Optional path for an additional file handler

    Returns:
        The package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger("pdfdesk")
    package_logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if not package_logger.handlers:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        package_logger.addHandler(console)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    for handler in package_logger.handlers:
        handler.setLevel(log_level)

    return package_logger
