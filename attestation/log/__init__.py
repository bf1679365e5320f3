"""
Source log access.

This module provides:
- SourceLog: Abstract read-only view over the message log
- SQLiteSourceLog: msgindex.db-backed implementation
- digest_records: The chunk digest function
"""

from .store import SourceLog
from .sqlite_store import SQLiteSourceLog, MESSAGES_DB, MESSAGES_SCHEMA
from .digest import EMPTY_DIGEST, digest_records, record_line

__all__ = [
    "SourceLog",
    "SQLiteSourceLog",
    "MESSAGES_DB",
    "MESSAGES_SCHEMA",
    "EMPTY_DIGEST",
    "digest_records",
    "record_line",
]
