"""
Exception types for the attestation service.

Absence of data is never an error: lookups return None instead.
"""


class ConfigError(Exception):
    """Raised when a required path or parameter is missing or invalid."""
    pass


class StoreError(Exception):
    """Raised when a source log or checksum archive query fails."""
    pass


class ValidationError(Exception):
    """Raised when an API request is malformed (e.g. a misaligned range)."""
    pass
