"""
Structured logging configuration.

Progress notices, cache messages and availability advisories are all
log records under the ``crimedata`` namespace, so callers decide where
they go. Nothing is configured on import.
"""

import logging
import sys
from pathlib import Path


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure crimedata logging.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file that receives DEBUG output
    """
    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
    )

    root_logger = logging.getLogger("crimedata")
    root_logger.setLevel(logging.DEBUG)

    # File handler - detailed output
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    # Console handler - cleaner output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    for noisy_logger in ["urllib3", "requests", "filelock"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    root_logger.info("Logging configured - level=%s, file=%s", level, log_file)


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger under the crimedata namespace.

    Usage:
        from crimedata.logging_config import get_logger
        logger = get_logger(__name__)
        logger.info("Downloading %d files", count)

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name == "crimedata" or name.startswith("crimedata."):
        return logging.getLogger(name)
    return logging.getLogger(f"crimedata.{name}")
