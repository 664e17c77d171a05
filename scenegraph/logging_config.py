"""Logging setup for the conversion pipeline, SSE bus and API.

Dedicated loggers (pipeline, sse, api) each write their own file under
LOG_DIR and echo to the console. Module loggers below ``scenegraph.*`` go to
``scenegraph.log`` once ``configure_logging()`` has run.
"""
from __future__ import annotations

import logging
from pathlib import Path

from .settings import LOG_DIR as _LOG_DIR_SETTING
from .settings import LOG_LEVEL

LOG_DIR = Path(_LOG_DIR_SETTING or str(Path(__file__).parent.parent / "logs"))

FILE_FORMAT = "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
CONSOLE_FORMAT = "%(asctime)s [%(name)s] %(message)s"

_configured_loggers: set[str] = set()


def setup_logger(name: str, filename: str, propagate: bool = False) -> logging.Logger:
    """Attach a file handler (LOG_DIR/filename) and a console handler once.

    Args:
        name: Logger name (e.g. 'scenegraph.sse')
        filename: Log file name (e.g. 'sse.log')
        propagate: Also pass records to parent loggers.
    """
    logger = logging.getLogger(name)
    if name in _configured_loggers:
        return logger

    logger.setLevel(LOG_LEVEL)
    logger.propagate = propagate

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(LOG_DIR / filename, encoding="utf-8")
    fh.setFormatter(logging.Formatter(FILE_FORMAT))
    sh = logging.StreamHandler()
    sh.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(fh)
    logger.addHandler(sh)

    _configured_loggers.add(name)
    return logger


def configure_logging() -> logging.Logger:
    """Route all ``scenegraph.*`` module loggers to scenegraph.log."""
    return setup_logger("scenegraph", "scenegraph.log")


def get_pipeline_logger() -> logging.Logger:
    """Logger for conversion runs (generation side)."""
    return setup_logger("scenegraph.pipeline", "pipeline.log")


def get_sse_logger() -> logging.Logger:
    """Logger for SSE events (FastAPI side)."""
    return setup_logger("scenegraph.sse", "sse.log")


def get_api_logger() -> logging.Logger:
    """Logger for API requests."""
    return setup_logger("scenegraph.api", "api.log")
