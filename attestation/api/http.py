"""HTTP transport for the read API.

Endpoints:
  GET /checksums/exists?hash=<digest>   is the digest published for any range
  GET /checksums?start=<int>&stop=<int> digest for one aligned chunk (null if absent)
  GET /healthz                           liveness plus the archive interval

Validation failures map to 400, archive failures to 503.

Usage:
    transport = HTTPTransport(host="0.0.0.0", port=8087)
    transport.start(read_api)   # returns once bound; serves on a daemon thread
    ...
    transport.stop()
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..core.errors import StoreError, ValidationError
from ..observability.logging_config import get_logger
from .read_api import ReadAPI


# ------------------------------------------------------------------
# Response models
# ------------------------------------------------------------------

class ExistsOut(BaseModel):
    hash: str
    exists: bool


class ChecksumOut(BaseModel):
    start: int
    stop: int
    digest: Optional[str] = None


class HealthOut(BaseModel):
    status: str
    interval: int


def create_app(api: ReadAPI) -> FastAPI:
    """Build the FastAPI application bound to one ReadAPI."""
    app = FastAPI(title="chain-attest", version=__version__)
    app.state.read_api = api

    @app.exception_handler(ValidationError)
    async def _invalid_request(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def _store_failure(request: Request, exc: StoreError) -> JSONResponse:
        api.logger.error("Archive query failed for %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "checksum archive unavailable"})

    @app.get("/healthz", response_model=HealthOut)
    def healthz() -> HealthOut:
        return HealthOut(status="ok", interval=api.interval())

    @app.get("/checksums/exists", response_model=ExistsOut)
    def checksum_exists(digest: str = Query(..., alias="hash", min_length=1)) -> ExistsOut:
        return ExistsOut(hash=digest, exists=api.checksum_exists(digest))

    @app.get("/checksums", response_model=ChecksumOut)
    def get_checksum(start: int = Query(...), stop: int = Query(...)) -> ChecksumOut:
        return ChecksumOut(start=start, stop=stop, digest=api.get_checksum(start, stop))

    return app


class Transport(ABC):
    """Request/response carrier the service binds its ReadAPI to."""

    @abstractmethod
    def start(self, api: ReadAPI) -> None:
        """Begin serving api without blocking the caller."""
        ...

    @abstractmethod
    def stop(self) -> None:
        ...


class HTTPTransport(Transport):
    """uvicorn server running the FastAPI app on a background thread."""

    def __init__(
        self, host: str = "0.0.0.0", port: int = 8087, startup_timeout: float = 10.0, logger=None
    ) -> None:
        self.host = host
        self.port = port
        self.startup_timeout = startup_timeout
        self.logger = logger or get_logger(__name__, component="http")
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    def start(self, api: ReadAPI) -> None:
        """
        Start serving and wait until the socket is bound.

        Raises:
            RuntimeError: If already started, or if the server exits (e.g. the
                port is taken) or does not come up within startup_timeout
        """
        if self._server is not None:
            raise RuntimeError("HTTP transport already started")
        config = uvicorn.Config(create_app(api), host=self.host, port=self.port, log_config=None)
        server = uvicorn.Server(config)
        thread = threading.Thread(target=server.run, name="attest-http", daemon=True)
        thread.start()

        # uvicorn exits its thread on bind failure instead of raising
        deadline = time.monotonic() + self.startup_timeout
        while not server.started:
            if not thread.is_alive():
                raise RuntimeError(f"read API failed to start on {self.host}:{self.port}")
            if time.monotonic() >= deadline:
                server.should_exit = True
                thread.join(self.startup_timeout)
                raise RuntimeError(
                    f"read API did not start on {self.host}:{self.port} within {self.startup_timeout}s"
                )
            thread.join(0.05)

        self._server = server
        self._thread = thread
        self.logger.info("Read API listening on http://%s:%d", self.host, self.port)

    def stop(self, timeout: float = 10.0) -> None:
        if self._server is None:
            return
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout)
        self._server = None
        self._thread = None
        self.logger.info("Read API stopped")
