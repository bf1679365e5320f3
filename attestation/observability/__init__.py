"""
Logging and metrics for the attestation service.
"""

from .logging_config import setup_logging, get_logger, ComponentFilter
from .metrics import init_metrics, start_metrics_server

__all__ = [
    "setup_logging",
    "get_logger",
    "ComponentFilter",
    "init_metrics",
    "start_metrics_server",
]
