"""
SQLite-backed source log over a msgindex.db message index.

The index is owned and written by the node's ingestion; this view opens it
read-only, one connection per operation, so it can be queried while the
log keeps growing.
"""

import os
import shutil
import sqlite3
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from ..core.errors import ConfigError, StoreError
from ..core.gaps import find_gaps, normalize_bounds
from ..core.models import LogRecord
from ..observability.logging_config import get_logger
from .digest import digest_records
from .store import SourceLog

MESSAGES_DB = "msgindex.db"

MESSAGES_SCHEMA = [
    """CREATE TABLE IF NOT EXISTS messages (
        cid VARCHAR(80) PRIMARY KEY ON CONFLICT REPLACE,
        tipset_cid VARCHAR(80) NOT NULL,
        epoch INTEGER NOT NULL
    )""",
    "CREATE INDEX IF NOT EXISTS tipset_cids ON messages (tipset_cid)",
    "CREATE INDEX IF NOT EXISTS tipset_epochs ON messages (epoch)",
]

_EPOCH_EXISTS = "SELECT EXISTS(SELECT 1 FROM messages WHERE epoch = ?)"
_COPY_RANGE = (
    "INSERT INTO messages (cid, tipset_cid, epoch) "
    "SELECT cid, tipset_cid, epoch FROM src.messages WHERE epoch >= ? AND epoch <= ?"
)
_SELECT_ORDERED = "SELECT cid, tipset_cid, epoch FROM messages ORDER BY cid"


def _epoch_filter(lower: Optional[int], upper: Optional[int]) -> Tuple[str, Tuple[int, ...]]:
    if lower is not None and upper is not None:
        return "WHERE epoch >= ? AND epoch <= ?", (lower, upper)
    if lower is not None:
        return "WHERE epoch >= ?", (lower,)
    if upper is not None:
        return "WHERE epoch <= ?", (upper,)
    return "", ()


class SQLiteSourceLog(SourceLog):
    """
    Read-only source log backed by <src_dir>/msgindex.db.

    Digests are computed over a scratch copy of the requested range held in
    a private temp directory; the scratch database is deleted after every
    computation and the directory on close().
    """

    def __init__(self, src_dir: str, logger=None) -> None:
        """
        Args:
            src_dir: Directory containing msgindex.db
            logger: Logger (or LoggerAdapter) for this instance

        Raises:
            ConfigError: If src_dir is empty
        """
        if not src_dir:
            raise ConfigError("source log directory path cannot be empty")
        self.path = os.path.join(src_dir, MESSAGES_DB)
        self.logger = logger or get_logger(__name__, component="source-log")
        self._scratch_dir = tempfile.mkdtemp(prefix="attest-scratch-")
        self._closed = False

    def _src_uri(self) -> str:
        return Path(self.path).resolve().as_uri() + "?mode=ro"

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if self._closed:
            raise StoreError("source log is closed")
        try:
            conn = sqlite3.connect(self._src_uri(), uri=True)
        except sqlite3.Error as ex:
            raise StoreError(f"open source log {self.path}: {ex}") from ex
        try:
            yield conn
        except sqlite3.Error as ex:
            raise StoreError(f"query source log {self.path}: {ex}") from ex
        finally:
            conn.close()

    def _epoch_intervals(
        self, conn: sqlite3.Connection, lower: Optional[int], upper: Optional[int]
    ) -> Iterator[Tuple[int, int]]:
        where, params = _epoch_filter(lower, upper)
        cur = conn.execute(f"SELECT DISTINCT epoch FROM messages {where} ORDER BY epoch", params)
        for (epoch,) in cur:
            yield epoch, epoch

    def check_range_is_populated(self, start: int, stop: int) -> bool:
        if start > stop:
            raise ValueError("start epoch cannot be greater than stop epoch")
        with self._connect() as conn:
            for epoch in (start, stop):
                (exists,) = conn.execute(_EPOCH_EXISTS, (epoch,)).fetchone()
                if not exists:
                    return False
            gaps = find_gaps(self._epoch_intervals(conn, start, stop))
        return not gaps

    def find_gaps(self, start: int = -1, stop: int = -1) -> List[Tuple[int, int]]:
        lower, upper = normalize_bounds(start, stop)
        with self._connect() as conn:
            gaps = find_gaps(self._epoch_intervals(conn, lower, upper))
        if not gaps:
            self.logger.debug("No gaps found for range %d to %d", start, stop)
        return gaps

    def checksum(self, start: int, stop: int) -> str:
        if self._closed:
            raise StoreError("source log is closed")
        scratch_path = os.path.join(self._scratch_dir, f"{start}-{stop}-{MESSAGES_DB}")
        try:
            conn = sqlite3.connect(Path(scratch_path).as_uri(), uri=True, isolation_level=None)
        except sqlite3.Error as ex:
            raise StoreError(f"open scratch database: {ex}") from ex
        try:
            for stmt in MESSAGES_SCHEMA:
                conn.execute(stmt)
            conn.execute("ATTACH DATABASE ? AS src", (self._src_uri(),))
            conn.execute(_COPY_RANGE, (start, stop))
            conn.execute("DETACH DATABASE src")
            rows = conn.execute(_SELECT_ORDERED)
            return digest_records(LogRecord(*row) for row in rows)
        except sqlite3.Error as ex:
            raise StoreError(f"checksum range {start}-{stop}: {ex}") from ex
        finally:
            conn.close()
            try:
                os.remove(scratch_path)
            except FileNotFoundError:
                pass
            except OSError as ex:
                self.logger.error("remove scratch db: %s", ex)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            shutil.rmtree(self._scratch_dir)
        except FileNotFoundError:
            pass
        except OSError as ex:
            raise StoreError(f"remove scratch directory {self._scratch_dir}: {ex}") from ex
