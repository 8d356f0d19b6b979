"""
Consistent logging setup for the GAG-ML pipeline.

Library modules use ``logging.getLogger(__name__)`` and never attach handlers.
Only CLI entrypoints call :func:`setup_logger`, which configures the root
``gag_ml`` logger so that child loggers propagate to it.
"""

import logging
import sys
from pathlib import Path


def setup_logger(
    name: str = "gag_ml",
    level: int = logging.INFO,
    log_file: Path | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Setup a logger with console and optional file output.

    Args:
        name: Logger name (typically "gag_ml" for the CLI)
        level: Logging level (default: INFO)
        log_file: Optional path to log file (parent directories are created)
        format_string: Custom format string (default: timestamp + level + message)

    Returns:
        Configured logger instance with handlers attached
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    # Handlers live on this logger only; child loggers propagate up to it.
    logger.propagate = False

    if format_string is None:
        format_string = "[%(asctime)s] %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def verbosity_to_level(verbose: int) -> int:
    """Map a ``-v`` count to a logging level (0 -> INFO, 1+ -> DEBUG)."""
    return logging.DEBUG if verbose and verbose > 0 else logging.INFO


def log_section(logger: logging.Logger, title: str, width: int = 80, char: str = "="):
    """Log a section header."""
    logger.info(char * width)
    logger.info(title)
    logger.info(char * width)
