"""
Structured logging configuration for the attestation service.

Provides JSON-formatted logs carrying a component field so checksummer,
API and service lines can be told apart in one stream.

Environment Variables:
    ATTEST_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    ATTEST_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from attestation.observability.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, component="checksummer")
    logger.info("Published checksum for range %d-%d", 0, 2879)

Components receive their logger as a constructor argument; setup_logging()
is only called by the process entrypoint.
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class ComponentFilter(logging.Filter):
    """
    Logging filter that adds component to all log records.

    Ensures every line has a component field, even if not set via LoggerAdapter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = "N/A"  # type: ignore
        return True


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure root logger with structured logging.

    Explicit arguments win over ATTEST_LOG_LEVEL / ATTEST_LOG_FORMAT.
    """
    log_level = (level or os.getenv("ATTEST_LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.getenv("ATTEST_LOG_FORMAT", "json")).lower()
    resolved = _LEVELS.get(log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.addFilter(ComponentFilter())

    if fmt == "json":
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(component)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [component=%(component)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # uvicorn installs its own handlers unless told otherwise; route it through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = []
        uv_logger.propagate = True


def get_logger(name: str, component: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger tagged with a component name.

    Example:
        logger = get_logger(__name__, component="read-api")
        logger.info("Serving")
        # Output (JSON): {"timestamp": "...", "level": "INFO", "message": "Serving", "component": "read-api"}
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"component": component or "N/A"})
