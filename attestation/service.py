"""
Attestation service: composition root for source log, archive, engine and API.

Checksumming and serving are independent: a process may run only the
background checksummer, only the read API against an existing archive, or
both.
"""

import queue
import threading
from typing import List, Optional

from .api.http import HTTPTransport, Transport
from .api.read_api import ReadAPI
from .archive.sqlite_store import SQLiteChecksumArchive
from .archive.store import ChecksumArchive
from .checksum.engine import ChecksumEngine
from .core.config import AttestationConfig, DEFAULT_BACKOFF_SECONDS, DEFAULT_CHUNK_SIZE
from .core.errors import ConfigError
from .log.sqlite_store import SQLiteSourceLog
from .log.store import SourceLog
from .observability.logging_config import get_logger


class Service:
    """
    Owns the SourceLog, ChecksumArchive, ChecksumEngine and ReadAPI.

    Usage:
        with Service.from_config(config) as service:
            errors = service.start_checksumming()
            service.start_serving()  # blocks until close() or cancel is set
    """

    def __init__(
        self,
        archive: ChecksumArchive,
        source: Optional[SourceLog] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        check_for_gaps: bool = False,
        follow: bool = True,
        transport: Optional[Transport] = None,
        logger=None,
    ) -> None:
        """
        Args:
            archive: Checksum archive (required)
            source: Source log; only needed for checksumming
            chunk_size: Epochs per chunk (0 = default)
            backoff_seconds: Engine wait between population checks
            check_for_gaps: Backfill archive gaps before checksumming
            follow: Keep waiting for new data instead of stopping when caught up
            transport: Carrier for the read API (default: HTTP on port 8087)
            logger: Logger (or LoggerAdapter) for this instance

        Raises:
            ConfigError: If archive is missing
        """
        if archive is None:
            raise ConfigError("cannot create attestation service without a checksum archive")
        self.archive = archive
        self.source = source
        self.chunk_size = chunk_size or DEFAULT_CHUNK_SIZE
        self.backoff_seconds = backoff_seconds
        self.check_for_gaps = check_for_gaps
        self.follow = follow
        self.transport = transport
        self.logger = logger or get_logger(__name__, component="service")

        self.api = ReadAPI(archive)
        self.engine: Optional[ChecksumEngine] = None
        self._quit = threading.Event()
        self._engine_thread: Optional[threading.Thread] = None
        self._closed = False

    @classmethod
    def from_config(cls, config: AttestationConfig, transport: Optional[Transport] = None) -> "Service":
        """
        Build SQLite-backed components from config.

        The source log is only opened when checksumming is enabled.

        Raises:
            ConfigError: If required paths are missing
            StoreError: If the archive cannot be opened
        """
        config.validate()
        source = SQLiteSourceLog(config.src_db_dir) if config.checksum else None
        try:
            archive = SQLiteChecksumArchive(config.repo_db_dir, config.chunk_size)
        except Exception:
            if source is not None:
                source.close()
            raise
        if transport is None and config.serve:
            transport = HTTPTransport(host=config.server_host, port=config.server_port)
        return cls(
            archive=archive,
            source=source,
            chunk_size=config.chunk_size,
            backoff_seconds=config.backoff_seconds,
            check_for_gaps=config.check_for_gaps,
            follow=config.follow,
            transport=transport,
        )

    def __enter__(self) -> "Service":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def checksumming(self) -> bool:
        return self._engine_thread is not None and self._engine_thread.is_alive()

    def start_checksumming(self) -> "queue.Queue[BaseException]":
        """
        Launch the checksumming loop on a background thread.

        Returns:
            Queue receiving the loop's failure, if it fails. The loop is not
            restarted; call again (or restart the service) to resume from the
            archive's cursor.

        Raises:
            ConfigError: If the service has no source log
            RuntimeError: If the loop is already running or the service is closed
        """
        if self._closed:
            raise RuntimeError("attestation service is closed")
        if self.source is None:
            raise ConfigError("cannot checksum without a source log")
        if self.checksumming:
            raise RuntimeError("checksumming loop already running")

        self.engine = ChecksumEngine(
            self.source,
            self.archive,
            chunk_size=self.chunk_size,
            backoff_seconds=self.backoff_seconds,
            check_for_gaps=self.check_for_gaps,
            follow=self.follow,
        )
        errors: "queue.Queue[BaseException]" = queue.Queue()
        engine = self.engine

        def checksum_loop() -> None:
            try:
                engine.run(self._quit)
            except Exception as ex:
                self.logger.error("Checksumming loop failed at epoch %d: %s", engine.cursor, ex)
                errors.put(ex)
            finally:
                self.logger.info("attestation service checksumming loop exited")

        self._engine_thread = threading.Thread(target=checksum_loop, name="attest-checksummer", daemon=True)
        self._engine_thread.start()
        return errors

    def start_serving(self, cancel: Optional[threading.Event] = None, poll_seconds: float = 0.5) -> None:
        """
        Bind the read API to the transport and block until shutdown.

        Shutdown is close() on this service, or cancel being set by the
        caller. Request handling is left entirely to the transport.

        Raises:
            ConfigError: If no transport is configured
        """
        if self._closed:
            raise RuntimeError("attestation service is closed")
        if self.transport is None:
            raise ConfigError("cannot serve without a transport")

        self.transport.start(self.api)
        self.logger.info("attestation service serving read API")
        try:
            while not self._quit.wait(poll_seconds):
                if cancel is not None and cancel.is_set():
                    break
        finally:
            self.transport.stop()
            self.logger.info("attestation service serve loop exited")

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Stop the checksumming loop, then close the source log and archive.

        Every release step is attempted; the first failure is raised.
        """
        if self._closed:
            return
        self._closed = True
        self._quit.set()

        errors: List[BaseException] = []
        if self._engine_thread is not None:
            self._engine_thread.join(timeout)
            if self._engine_thread.is_alive():
                errors.append(RuntimeError("checksumming loop did not stop in time"))

        for resource in (self.source, self.archive):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as ex:
                self.logger.error("Failed to close %s: %s", type(resource).__name__, ex)
                errors.append(ex)

        if errors:
            raise errors[0]
