"""
SQLite-backed checksum archive (checksums.db).

Table layout:
    checksums (start, stop, digest), UNIQUE (start, stop) ON CONFLICT REPLACE
    indexes on digest, start and stop

Each operation opens its own connection, so every statement is atomic on
its own and no connection is shared between the checksummer thread and
API request threads.
"""

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from ..core.config import DEFAULT_CHUNK_SIZE
from ..core.errors import StoreError
from ..core.gaps import find_gaps, normalize_bounds
from ..core.models import ChecksumRange
from ..observability.logging_config import get_logger
from .store import ChecksumArchive

REPO_DB = "checksums.db"

REPO_SCHEMA = [
    """CREATE TABLE IF NOT EXISTS checksums (
        start INTEGER NOT NULL,
        stop INTEGER NOT NULL,
        digest VARCHAR(66) NOT NULL,
        UNIQUE (start, stop) ON CONFLICT REPLACE
    )""",
    "CREATE INDEX IF NOT EXISTS checksum_digests ON checksums (digest)",
    "CREATE INDEX IF NOT EXISTS checksum_starts ON checksums (start)",
    "CREATE INDEX IF NOT EXISTS checksum_stops ON checksums (stop)",
]

_INSERT = "INSERT INTO checksums (start, stop, digest) VALUES (?, ?, ?)"
_EXISTS = "SELECT EXISTS(SELECT 1 FROM checksums WHERE digest = ?)"
_GET = "SELECT digest FROM checksums WHERE start = ? AND stop = ?"
_MAX_STOP = "SELECT MAX(stop) FROM checksums"


def _overlap_filter(lower: Optional[int], upper: Optional[int]) -> Tuple[str, Tuple[int, ...]]:
    clauses = []
    params: List[int] = []
    if lower is not None:
        clauses.append("stop >= ?")
        params.append(lower)
    if upper is not None:
        clauses.append("start <= ?")
        params.append(upper)
    if not clauses:
        return "", ()
    return "WHERE " + " AND ".join(clauses), tuple(params)


class SQLiteChecksumArchive(ChecksumArchive):
    """
    Checksum archive stored in <repo_dir>/checksums.db.

    Attributes:
        existed: Whether checksums.db was already present when opened
    """

    def __init__(
        self, repo_dir: str, interval: int = DEFAULT_CHUNK_SIZE, create: bool = True, logger=None
    ) -> None:
        """
        Open the archive, creating directory and schema if needed.

        Args:
            repo_dir: Directory with/for checksums.db
            interval: Chunk size in epochs (0 = default)
            create: When False, open an existing checksums.db only and leave
                the filesystem untouched
            logger: Logger (or LoggerAdapter) for this instance

        Raises:
            StoreError: If the directory or schema cannot be created, or if
                create is False and checksums.db does not exist
        """
        self.path = os.path.join(repo_dir, REPO_DB)
        self._interval = interval or DEFAULT_CHUNK_SIZE
        self.logger = logger or get_logger(__name__, component="archive")
        self._closed = False
        self.existed = os.path.exists(self.path)

        if not create:
            if not self.existed:
                raise StoreError(f"checksum archive {self.path} does not exist")
            return

        try:
            os.makedirs(repo_dir or ".", exist_ok=True)
        except OSError as ex:
            raise StoreError(f"create archive directory {repo_dir}: {ex}") from ex

        with self._connect() as conn:
            # WAL lets API readers proceed while the checksummer writes
            conn.execute("PRAGMA journal_mode=WAL")
            for stmt in REPO_SCHEMA:
                conn.execute(stmt)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if self._closed:
            raise StoreError("checksum archive is closed")
        try:
            conn = sqlite3.connect(self.path)
        except sqlite3.Error as ex:
            raise StoreError(f"open checksum archive {self.path}: {ex}") from ex
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as ex:
            raise StoreError(f"checksum archive {self.path}: {ex}") from ex
        finally:
            conn.close()

    def publish_checksum(self, start: int, stop: int, digest: str) -> None:
        with self._connect() as conn:
            conn.execute(_INSERT, (start, stop, digest))

    def checksum_exists(self, digest: str) -> bool:
        with self._connect() as conn:
            (exists,) = conn.execute(_EXISTS, (digest,)).fetchone()
        return bool(exists)

    def get_checksum(self, start: int, stop: int) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(_GET, (start, stop)).fetchone()
        return row[0] if row else None

    def find_next_checksum(self) -> int:
        with self._connect() as conn:
            (last_stop,) = conn.execute(_MAX_STOP).fetchone()
        if last_stop is None:
            return 0
        return last_stop + 1

    def list_ranges(self, start: int = -1, stop: int = -1) -> List[ChecksumRange]:
        lower, upper = normalize_bounds(start, stop)
        where, params = _overlap_filter(lower, upper)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT start, stop, digest FROM checksums {where} ORDER BY start, stop",
                params,
            ).fetchall()
        return [ChecksumRange(start=r[0], stop=r[1], digest=r[2]) for r in rows]

    def find_gaps(self, start: int = -1, stop: int = -1) -> List[Tuple[int, int]]:
        lower, upper = normalize_bounds(start, stop)
        ranges = self.list_ranges(start, stop)
        gaps = find_gaps(((r.start, r.stop) for r in ranges), lower=lower, upper=upper)
        if gaps:
            self.logger.warning("Found %d gap(s) in checksum archive for range %d to %d", len(gaps), start, stop)
        else:
            self.logger.debug("No gaps found for range %d to %d", start, stop)
        return gaps

    def interval(self) -> int:
        return self._interval

    def close(self) -> None:
        self._closed = True
