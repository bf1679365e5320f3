"""
Test doubles and fixture builders for the attestation tests.
"""

import os
import sqlite3
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from attestation.archive.store import ChecksumArchive
from attestation.core.errors import StoreError
from attestation.core.gaps import find_gaps, normalize_bounds
from attestation.core.models import ChecksumRange, LogRecord
from attestation.log.sqlite_store import MESSAGES_DB, MESSAGES_SCHEMA
from attestation.log.store import SourceLog


def records_for_epochs(epochs: Iterable[int], per_epoch: int = 2) -> List[LogRecord]:
    records = []
    for epoch in epochs:
        for i in range(per_epoch):
            records.append(LogRecord(cid=f"bafy-{epoch:06d}-{i}", tipset_cid=f"ts-{epoch:06d}", epoch=epoch))
    return records


def make_msgindex(directory: str, records: Iterable[LogRecord]) -> str:
    """Create (or extend) <directory>/msgindex.db with records; returns its path."""
    path = os.path.join(directory, MESSAGES_DB)
    conn = sqlite3.connect(path)
    try:
        for stmt in MESSAGES_SCHEMA:
            conn.execute(stmt)
        conn.executemany(
            "INSERT INTO messages (cid, tipset_cid, epoch) VALUES (?, ?, ?)",
            [(r.cid, r.tipset_cid, r.epoch) for r in records],
        )
        conn.commit()
    finally:
        conn.close()
    return path


class ScriptedSourceLog(SourceLog):
    """
    Source log whose population answers are scripted per range.

    not_ready: range -> number of times check_range_is_populated answers
    False before answering True. Ranges beyond max_epoch are never populated.
    """

    def __init__(self, max_epoch: int = 10**9, not_ready: Optional[Dict[Tuple[int, int], int]] = None):
        self.max_epoch = max_epoch
        self.not_ready = dict(not_ready or {})
        self.population_checks: List[Tuple[int, int]] = []
        self.checksummed: List[Tuple[int, int]] = []
        self.fail_on_checksum: Optional[Exception] = None
        self.closed = False

    def check_range_is_populated(self, start: int, stop: int) -> bool:
        if start > stop:
            raise ValueError("start epoch cannot be greater than stop epoch")
        self.population_checks.append((start, stop))
        if stop > self.max_epoch:
            return False
        remaining = self.not_ready.get((start, stop), 0)
        if remaining > 0:
            self.not_ready[(start, stop)] = remaining - 1
            return False
        return True

    def checksum(self, start: int, stop: int) -> str:
        if self.fail_on_checksum is not None:
            raise self.fail_on_checksum
        self.checksummed.append((start, stop))
        return f"digest-{start}-{stop}"

    def find_gaps(self, start: int = -1, stop: int = -1) -> List[Tuple[int, int]]:
        return []

    def close(self) -> None:
        self.closed = True


class MemoryArchive(ChecksumArchive):
    """Dict-backed archive that records every call."""

    def __init__(self, interval: int = 100, ranges: Iterable[ChecksumRange] = ()):
        self._interval = interval
        self._lock = threading.Lock()
        self.entries: Dict[Tuple[int, int], str] = {(r.start, r.stop): r.digest for r in ranges}
        self.published: List[Tuple[int, int, str]] = []
        self.get_calls: List[Tuple[int, int]] = []
        self.fail_on_close: Optional[Exception] = None
        self.closed = False

    def publish_checksum(self, start: int, stop: int, digest: str) -> None:
        with self._lock:
            self.entries[(start, stop)] = digest
            self.published.append((start, stop, digest))

    def checksum_exists(self, digest: str) -> bool:
        with self._lock:
            return digest in self.entries.values()

    def get_checksum(self, start: int, stop: int) -> Optional[str]:
        with self._lock:
            self.get_calls.append((start, stop))
            return self.entries.get((start, stop))

    def find_next_checksum(self) -> int:
        with self._lock:
            if not self.entries:
                return 0
            return max(stop for _, stop in self.entries) + 1

    def list_ranges(self, start: int = -1, stop: int = -1) -> List[ChecksumRange]:
        with self._lock:
            items = sorted(self.entries.items())
        return [ChecksumRange(s, e, d) for (s, e), d in items]

    def find_gaps(self, start: int = -1, stop: int = -1) -> List[Tuple[int, int]]:
        lower, upper = normalize_bounds(start, stop)
        return find_gaps(((r.start, r.stop) for r in self.list_ranges()), lower=lower, upper=upper)

    def interval(self) -> int:
        return self._interval

    def close(self) -> None:
        self.closed = True
        if self.fail_on_close is not None:
            raise self.fail_on_close


class BrokenArchive(MemoryArchive):
    """Archive whose writes always fail."""

    def publish_checksum(self, start: int, stop: int, digest: str) -> None:
        raise StoreError("disk I/O error")


class FailingArchive(MemoryArchive):
    """Archive whose reads always fail."""

    def get_checksum(self, start: int, stop: int) -> Optional[str]:
        raise StoreError("database disk image is malformed")

    def checksum_exists(self, digest: str) -> bool:
        raise StoreError("database disk image is malformed")
