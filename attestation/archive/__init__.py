"""
Checksum archive storage.

This module provides:
- ChecksumArchive: Abstract archive interface
- SQLiteChecksumArchive: checksums.db-backed implementation
"""

from .store import ChecksumArchive
from .sqlite_store import SQLiteChecksumArchive, REPO_DB, REPO_SCHEMA

__all__ = [
    "ChecksumArchive",
    "SQLiteChecksumArchive",
    "REPO_DB",
    "REPO_SCHEMA",
]
