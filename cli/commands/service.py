"""
Service command: run the checksummer and/or the read API
"""

import queue
import signal
import threading
from typing import List, Optional

import typer
from rich.console import Console

from attestation.core.config import AttestationConfig
from attestation.core.errors import ConfigError, StoreError
from attestation.observability.logging_config import get_logger, setup_logging
from attestation.observability.metrics import start_metrics_server
from attestation.service import Service

console = Console()


def _apply_overrides(config: AttestationConfig, **overrides) -> AttestationConfig:
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    return config


def run_command(
    checksum_db_directory: Optional[str] = typer.Option(
        None, "--checksum-db-directory", help="Directory that contains (or will contain) checksums.db"
    ),
    msgindex_db_directory: Optional[str] = typer.Option(
        None, "--msgindex-db-directory", help="Directory that contains the source msgindex.db"
    ),
    chunk_size: Optional[int] = typer.Option(
        None, "--checksum-chunk-size", help="Epoch range size to calculate checksums over"
    ),
    checksum_on: Optional[bool] = typer.Option(
        None, "--checksum-on/--checksum-off", help="Turn checksumming on"
    ),
    server_on: Optional[bool] = typer.Option(None, "--server-on/--server-off", help="Turn on the HTTP read API"),
    server_host: Optional[str] = typer.Option(None, "--server-host", help="Bind address for the read API"),
    server_port: Optional[int] = typer.Option(None, "--server-port", help="Port for the read API"),
    check_for_gaps: Optional[bool] = typer.Option(
        None, "--check-for-gaps/--no-check-for-gaps", help="Backfill archive gaps before checksumming"
    ),
    follow: Optional[bool] = typer.Option(
        None, "--follow/--no-follow", help="Keep waiting for new epochs once caught up"
    ),
    backoff: Optional[float] = typer.Option(
        None, "--backoff", help="Seconds to wait before re-checking an incomplete chunk"
    ),
    metrics_on: Optional[bool] = typer.Option(None, "--metrics-on/--metrics-off", help="Expose Prometheus metrics"),
    metrics_port: Optional[int] = typer.Option(None, "--metrics-port", help="Port for /metrics"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="json or text"),
):
    """
    Generate msgindex.db checksums and/or serve the persisted checksums.

    Flags override the environment (CHECKSUM_DB_DIRECTORY, MSG_INDEX_DB_DIRECTORY, ...).

    Examples:
        attest run --checksum-db-directory ./repo --msgindex-db-directory ./lotus --checksum-on
        attest run --checksum-db-directory ./repo --checksum-off --server-on --server-port 8087
    """
    setup_logging(log_level, log_format)
    logger = get_logger("attest", component="cli")

    try:
        config = _apply_overrides(
            AttestationConfig.from_env(),
            repo_db_dir=checksum_db_directory,
            src_db_dir=msgindex_db_directory,
            chunk_size=chunk_size,
            checksum=checksum_on,
            serve=server_on,
            server_host=server_host,
            server_port=server_port,
            check_for_gaps=check_for_gaps,
            follow=follow,
            backoff_seconds=backoff,
            metrics_enabled=metrics_on,
            metrics_port=metrics_port,
        ).validate()
        if not config.checksum and not config.serve:
            raise ConfigError("nothing to do: enable checksumming and/or the server")
        service = Service.from_config(config)
    except (ConfigError, StoreError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    logger.info("attestation config: %s", config)
    start_metrics_server(enabled=config.metrics_enabled, port=config.metrics_port)

    shutdown = threading.Event()
    previous_handlers = {
        sig: signal.signal(sig, lambda *_: shutdown.set()) for sig in (signal.SIGINT, signal.SIGTERM)
    }

    exit_code = 0
    errors: Optional[queue.Queue] = None
    if config.checksum:
        logger.info("beginning attestation checksumming process")
        try:
            errors = service.start_checksumming()
        except (ConfigError, StoreError) as e:
            logger.error("cannot start checksumming: %s", e)
            console.print(f"[red]Error:[/red] {e}")
            exit_code = 2
            shutdown.set()

    serve_failures: List[BaseException] = []

    def serve() -> None:
        try:
            service.start_serving(shutdown)
        except Exception as e:
            logger.error("read API stopped: %s", e)
            serve_failures.append(e)
            shutdown.set()

    server_thread = None
    if config.serve and not shutdown.is_set():
        logger.info("beginning attestation server")
        server_thread = threading.Thread(target=serve, name="attest-serve", daemon=True)
        server_thread.start()

    while not shutdown.wait(1.0):
        if errors is not None:
            try:
                err = errors.get_nowait()
            except queue.Empty:
                err = None
            if err is not None:
                errors = None
                if not config.serve:
                    exit_code = 1
                    break
                logger.warning("checksumming stopped (%s); still serving the archive as it stands", err)
        if not config.serve and not service.checksumming:
            # offline run over a finished database
            if errors is not None and not errors.empty():
                exit_code = 1
            break

    try:
        service.close()
    except Exception as e:
        logger.error("shutdown error: %s", e)
        exit_code = exit_code or 1
    if server_thread is not None:
        server_thread.join(10.0)
    if serve_failures:
        console.print(f"[red]Error:[/red] {serve_failures[0]}")
        exit_code = exit_code or 1
    for sig, handler in previous_handlers.items():
        signal.signal(sig, handler)

    raise typer.Exit(exit_code)
