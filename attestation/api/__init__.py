"""
Read API and its transports.
"""

from .read_api import ReadAPI
from .http import HTTPTransport, Transport, create_app

__all__ = ["ReadAPI", "HTTPTransport", "Transport", "create_app"]
