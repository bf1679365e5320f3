"""
Core primitives shared by every attestation component.

- Canonical: deterministic serialization for digests
- Models: LogRecord and ChecksumRange
- Gaps: the ordered-interval gap scan
- Config: explicit service configuration
- Errors: ConfigError, StoreError, ValidationError
"""

from .canonical import canonicalize, canonical_json_bytes, canonical_json_str
from .models import LogRecord, ChecksumRange
from .gaps import UNBOUNDED, contiguous, find_gaps, normalize_bounds
from .config import AttestationConfig, DEFAULT_CHUNK_SIZE
from .errors import ConfigError, StoreError, ValidationError

__all__ = [
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "LogRecord",
    "ChecksumRange",
    "UNBOUNDED",
    "contiguous",
    "find_gaps",
    "normalize_bounds",
    "AttestationConfig",
    "DEFAULT_CHUNK_SIZE",
    "ConfigError",
    "StoreError",
    "ValidationError",
]
