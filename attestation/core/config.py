"""
Attestation service configuration.

Environment Variables:
    SUPPORTS_CHECKSUMMING: Run the background checksummer (true/false) - default: false
    SUPPORTS_SERVER: Serve the read API (true/false) - default: false
    SERVER_HOST: Bind address for the read API - default: 0.0.0.0
    SERVER_PORT: Port for the read API - default: 8087
    MSG_INDEX_DB_DIRECTORY: Directory holding msgindex.db (required when checksumming)
    CHECKSUM_DB_DIRECTORY: Directory holding/for checksums.db (required)
    CHECKSUM_CHUNK_SIZE: Epochs per checksum - default: 2880
    CHECK_FOR_GAPS: Backfill archive gaps before checksumming (true/false) - default: false
    CHECKSUM_FOLLOW: Keep waiting for new epochs once caught up (true/false) - default: true
    CHECKSUM_BACKOFF_SECONDS: Wait between population checks - default: 30
    METRICS_ENABLED: Expose Prometheus metrics (true/false) - default: false
    METRICS_PORT: Port for the /metrics endpoint - default: 8080
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_CHUNK_SIZE = 2880
DEFAULT_SERVER_PORT = 8087
DEFAULT_BACKOFF_SECONDS = 30.0
DEFAULT_METRICS_PORT = 8080

_TRUTHY = ("1", "true", "yes", "on")


def _env_bool(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    val = env.get(key)
    if val is None or not val.strip():
        return default
    return val.strip().lower() in _TRUTHY


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    val = env.get(key)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError as ex:
        raise ConfigError(f"{key} must be an integer, got {val!r}") from ex


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    val = env.get(key)
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError as ex:
        raise ConfigError(f"{key} must be a number, got {val!r}") from ex


@dataclass
class AttestationConfig:
    repo_db_dir: str
    src_db_dir: Optional[str] = None
    checksum: bool = False
    serve: bool = False
    server_host: str = "0.0.0.0"
    server_port: int = DEFAULT_SERVER_PORT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    check_for_gaps: bool = False
    follow: bool = True
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS
    metrics_enabled: bool = False
    metrics_port: int = DEFAULT_METRICS_PORT

    def __post_init__(self) -> None:
        if not self.chunk_size:
            self.chunk_size = DEFAULT_CHUNK_SIZE

    def validate(self) -> "AttestationConfig":
        """
        Check required parameters.

        Raises:
            ConfigError: If a required path is missing or a value is out of range
        """
        if not self.repo_db_dir:
            raise ConfigError("a checksums.db directory path must be provided")
        if self.checksum and not self.src_db_dir:
            raise ConfigError(
                "if checksumming is enabled, a source msgindex.db directory path must be provided"
            )
        if self.chunk_size < 0:
            raise ConfigError(f"chunk size must be positive, got {self.chunk_size}")
        if self.backoff_seconds < 0:
            raise ConfigError(f"backoff must not be negative, got {self.backoff_seconds}")
        if not 0 < self.server_port < 65536:
            raise ConfigError(f"invalid server port {self.server_port}")
        return self

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "AttestationConfig":
        env = os.environ if env is None else env
        return AttestationConfig(
            repo_db_dir=env.get("CHECKSUM_DB_DIRECTORY", ""),
            src_db_dir=env.get("MSG_INDEX_DB_DIRECTORY") or None,
            checksum=_env_bool(env, "SUPPORTS_CHECKSUMMING"),
            serve=_env_bool(env, "SUPPORTS_SERVER"),
            server_host=env.get("SERVER_HOST") or "0.0.0.0",
            server_port=_env_int(env, "SERVER_PORT", DEFAULT_SERVER_PORT),
            chunk_size=_env_int(env, "CHECKSUM_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            check_for_gaps=_env_bool(env, "CHECK_FOR_GAPS"),
            follow=_env_bool(env, "CHECKSUM_FOLLOW", default=True),
            backoff_seconds=_env_float(env, "CHECKSUM_BACKOFF_SECONDS", DEFAULT_BACKOFF_SECONDS),
            metrics_enabled=_env_bool(env, "METRICS_ENABLED"),
            metrics_port=_env_int(env, "METRICS_PORT", DEFAULT_METRICS_PORT),
        )
