"""
Prometheus metrics for the attestation service.

Exposes checksummer progress and read API traffic via an HTTP /metrics
endpoint for Prometheus scraping.

Usage:
    from attestation.observability.metrics import start_metrics_server, track_published

    start_metrics_server(enabled=True, port=8080)

    with track_checksum_duration():
        digest = source.checksum(start, stop)
    track_published(next_cursor=stop + 1)

All helpers are no-ops until init_metrics() has run, so library users and
tests never need a metrics server.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Generator, Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

CHECKSUMS_PUBLISHED: Optional[Counter] = None
CHECKSUM_CURSOR: Optional[Gauge] = None
CHECKSUM_DURATION: Optional[Histogram] = None
API_REQUESTS: Optional[Counter] = None

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Initialize Prometheus metrics (call once at startup).

    Thread-safe via module-level lock; repeated calls are ignored.
    """
    global CHECKSUMS_PUBLISHED, CHECKSUM_CURSOR, CHECKSUM_DURATION, API_REQUESTS
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        CHECKSUMS_PUBLISHED = Counter(
            "attest_checksums_published_total",
            "Total number of chunk checksums published to the archive",
        )

        # Next epoch the checksummer will try to cover
        CHECKSUM_CURSOR = Gauge(
            "attest_checksum_cursor",
            "Start epoch of the next chunk to checksum",
        )

        CHECKSUM_DURATION = Histogram(
            "attest_checksum_duration_seconds",
            "Duration of chunk digest computation in seconds",
            buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0),
        )

        # Read API requests (labels: method, outcome)
        API_REQUESTS = Counter(
            "attest_api_requests_total",
            "Total number of read API requests",
            labelnames=["method", "outcome"],
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in a background daemon thread.

    Args:
        enabled: Whether to start the server (METRICS_ENABLED)
        port: HTTP port for /metrics (METRICS_PORT)
    """
    if not enabled:
        logger.info("Metrics server disabled (METRICS_ENABLED=false)")
        return

    init_metrics()
    start_http_server(port, addr="0.0.0.0")
    logger.info(f"Metrics server started on http://0.0.0.0:{port}/metrics")


@contextmanager
def track_checksum_duration() -> Generator[None, None, None]:
    """Time a chunk digest computation."""
    if CHECKSUM_DURATION is None:
        yield
        return

    with CHECKSUM_DURATION.time():
        yield


def set_cursor(cursor: int) -> None:
    if CHECKSUM_CURSOR is not None:
        CHECKSUM_CURSOR.set(cursor)


def track_published(next_cursor: int) -> None:
    """Count a published chunk and move the cursor gauge."""
    if CHECKSUMS_PUBLISHED is not None:
        CHECKSUMS_PUBLISHED.inc()
    set_cursor(next_cursor)


def track_api_request(method: str, outcome: str) -> None:
    """
    Count a read API request.

    Args:
        method: "checksum_exists" or "get_checksum"
        outcome: "ok", "invalid" or "error"
    """
    if API_REQUESTS is not None:
        API_REQUESTS.labels(method=method, outcome=outcome).inc()
