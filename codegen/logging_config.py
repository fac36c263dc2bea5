"""Unified logging configuration for the codegen CLI and pipeline."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

# Log directory, configurable via LOG_DIR env var
LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Package loggers that share one set of handlers
PACKAGE_LOGGERS = ("codegen", "catalog")

# Prevent duplicate handlers
_configured_loggers: set[str] = set()


def resolve_level(level: str) -> int:
    """Map a config log level ("debug" | "info" | "warn" | "error") to logging's."""
    try:
        return LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


def setup_logger(
    name: str,
    filename: Optional[str] = None,
    level: str = "info",
) -> logging.Logger:
    """Setup a logger with console and optional file handlers.

    Args:
        name: Logger name (e.g., 'codegen', 'catalog')
        filename: Log file name or path; relative names land in LOG_DIR
        level: Config log level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    numeric = resolve_level(level)
    logger.setLevel(numeric)
    if name in _configured_loggers:
        for handler in logger.handlers:
            handler.setLevel(numeric)
        return logger

    logger.propagate = False  # Prevent duplicate logs

    if filename:
        path = Path(filename)
        if not path.is_absolute() and path.parent == Path("."):
            path = LOG_DIR / path
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding='utf-8')
        fh.setLevel(numeric)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
        ))
        logger.addHandler(fh)

    # Console handler
    sh = logging.StreamHandler()
    sh.setLevel(numeric)
    sh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] %(message)s"
    ))
    logger.addHandler(sh)

    _configured_loggers.add(name)
    return logger


def configure_logging(level: str = "info", log_file: Optional[str] = None) -> logging.Logger:
    """Configure every package logger and return the 'codegen' one."""
    for name in PACKAGE_LOGGERS:
        setup_logger(name, log_file, level)
    return logging.getLogger("codegen")
