"""
Tests for the HTTP transport of the read API.
"""

import socket

import httpx
import pytest
from fastapi.testclient import TestClient

from attestation.api.http import HTTPTransport, create_app
from attestation.api.read_api import ReadAPI
from attestation.core.models import ChecksumRange
from attestation.service import Service
from attestation.tests.fakes import FailingArchive, MemoryArchive


def _client(archive):
    return TestClient(create_app(ReadAPI(archive)))


def test_get_checksum_found():
    client = _client(MemoryArchive(100, [ChecksumRange(0, 99, "d0")]))

    resp = client.get("/checksums", params={"start": 0, "stop": 99})

    assert resp.status_code == 200
    assert resp.json() == {"start": 0, "stop": 99, "digest": "d0"}


def test_get_checksum_absent_is_null():
    client = _client(MemoryArchive(100))

    resp = client.get("/checksums", params={"start": 200, "stop": 299})

    assert resp.status_code == 200
    assert resp.json()["digest"] is None


def test_invalid_range_is_400():
    archive = MemoryArchive(100)
    client = _client(archive)

    resp = client.get("/checksums", params={"start": 10, "stop": 50})

    assert resp.status_code == 400
    assert "interval of size 100" in resp.json()["detail"]
    assert archive.get_calls == []


def test_missing_params_rejected():
    client = _client(MemoryArchive(100))

    assert client.get("/checksums", params={"start": 0}).status_code == 422
    assert client.get("/checksums/exists").status_code == 422


def test_checksum_exists_by_hash():
    client = _client(MemoryArchive(100, [ChecksumRange(0, 99, "d0")]))

    assert client.get("/checksums/exists", params={"hash": "d0"}).json() == {"hash": "d0", "exists": True}
    assert client.get("/checksums/exists", params={"hash": "zz"}).json()["exists"] is False


def test_store_failure_is_503():
    client = _client(FailingArchive(100))

    resp = client.get("/checksums", params={"start": 0, "stop": 99})

    assert resp.status_code == 503
    assert client.get("/checksums/exists", params={"hash": "d0"}).status_code == 503


def test_healthz_reports_interval():
    client = _client(MemoryArchive(2880))

    resp = client.get("/healthz")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "interval": 2880}


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_transport_serves_until_stopped():
    """A real uvicorn server answers once start() returns and exits on stop()."""
    port = _free_port()
    transport = HTTPTransport(host="127.0.0.1", port=port)
    transport.start(ReadAPI(MemoryArchive(100, [ChecksumRange(0, 99, "abc")])))
    thread = transport._thread
    try:
        resp = httpx.get(f"http://127.0.0.1:{port}/checksums", params={"start": 0, "stop": 99}, timeout=5.0)
        assert resp.status_code == 200
        assert resp.json() == {"start": 0, "stop": 99, "digest": "abc"}
    finally:
        transport.stop()

    assert not thread.is_alive()


def test_transport_start_fails_when_port_taken():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]

        transport = HTTPTransport(host="127.0.0.1", port=port)
        with pytest.raises(RuntimeError, match="failed to start"):
            transport.start(ReadAPI(MemoryArchive(100)))

        # nothing half-started is left behind; stop() is a no-op
        transport.stop()


def test_service_serving_surfaces_bind_failure():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]

        service = Service(MemoryArchive(100), transport=HTTPTransport(host="127.0.0.1", port=port))
        try:
            with pytest.raises(RuntimeError):
                service.start_serving(poll_seconds=0.01)
        finally:
            service.close()
