"""
Checksum engine: the chunk-by-chunk checksumming state machine.

    IDLE -> WAITING_FOR_DATA -> COMPUTING -> PUBLISHING -> (next chunk)
                                                   any -> STOPPED

The cursor starts at the archive's next unchecksummed epoch and only moves
after a chunk has been published, so a restarted engine resumes exactly
where the previous one stopped. Publishing is an upsert per range, so
redoing a chunk after a crash is harmless.
"""

import threading
from enum import Enum
from typing import Optional, Tuple

from ..archive.store import ChecksumArchive
from ..core.config import DEFAULT_BACKOFF_SECONDS, DEFAULT_CHUNK_SIZE
from ..core.errors import ConfigError
from ..log.store import SourceLog
from ..observability.logging_config import get_logger
from ..observability.metrics import set_cursor, track_checksum_duration, track_published


class EngineState(str, Enum):
    IDLE = "idle"
    WAITING_FOR_DATA = "waiting_for_data"
    COMPUTING = "computing"
    PUBLISHING = "publishing"
    STOPPED = "stopped"


class ChecksumEngine:
    """
    Drives SourceLog -> digest -> ChecksumArchive, one chunk at a time.

    Chunks are chunk_size epochs wide and inclusive: [start, start + chunk_size - 1].

    Usage:
        engine = ChecksumEngine(source, archive, chunk_size=2880)
        cancel = threading.Event()
        engine.run(cancel)  # returns when cancel is set; raises on store failure
    """

    def __init__(
        self,
        source: SourceLog,
        archive: ChecksumArchive,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        check_for_gaps: bool = False,
        follow: bool = True,
        logger=None,
    ) -> None:
        """
        Args:
            source: Log to checksum
            archive: Where digests are published; also yields the start cursor
            chunk_size: Epochs per chunk (0 = default)
            backoff_seconds: Wait before re-checking an unpopulated chunk
            check_for_gaps: Backfill archive gaps below the cursor before looping
            follow: Keep waiting for new data; False returns once the log is exhausted
            logger: Logger (or LoggerAdapter) for this instance

        Raises:
            ConfigError: If source or archive is missing, or the archive's
                resume cursor is not aligned to chunk_size
            StoreError: If the resume cursor cannot be read
        """
        if source is None:
            raise ConfigError("cannot checksum without a source log")
        if archive is None:
            raise ConfigError("cannot checksum without a checksum archive")
        self.source = source
        self.archive = archive
        self.chunk_size = chunk_size or DEFAULT_CHUNK_SIZE
        self.backoff_seconds = backoff_seconds
        self.check_for_gaps = check_for_gaps
        self.follow = follow
        self.logger = logger or get_logger(__name__, component="checksummer")

        self.state = EngineState.IDLE
        self.cursor = archive.find_next_checksum()
        if self.cursor % self.chunk_size:
            raise ConfigError(
                f"archive resumes at epoch {self.cursor}, which is not a multiple of chunk size "
                f"{self.chunk_size}; it was written with a different chunk geometry"
            )
        set_cursor(self.cursor)

    def next_range(self) -> Tuple[int, int]:
        """The chunk the engine will attempt next."""
        return self.cursor, self.cursor + self.chunk_size - 1

    def _checksum_and_publish(self, start: int, stop: int) -> str:
        self.state = EngineState.COMPUTING
        with track_checksum_duration():
            digest = self.source.checksum(start, stop)

        self.state = EngineState.PUBLISHING
        self.archive.publish_checksum(start, stop, digest)
        self.logger.info("Published checksum %s for range %d-%d", digest, start, stop)
        return digest

    def step(self) -> bool:
        """
        Run one iteration without waiting.

        Returns:
            True if a chunk was published and the cursor advanced, False if
            the next chunk is not fully populated yet (cursor unchanged)

        Raises:
            StoreError: If the source log or archive fails
        """
        start, stop = self.next_range()
        self.state = EngineState.WAITING_FOR_DATA
        if not self.source.check_range_is_populated(start, stop):
            return False

        self._checksum_and_publish(start, stop)
        self.cursor = stop + 1
        self.state = EngineState.IDLE
        track_published(self.cursor)
        return True

    def backfill_gaps(self, cancel: Optional[threading.Event] = None) -> int:
        """
        Checksum missing chunks below the cursor.

        Only whole, interval-aligned chunks inside a gap are attempted;
        chunks whose source range is not populated are skipped and stay
        reported as gaps.

        Returns:
            Number of chunks published
        """
        if self.cursor == 0:
            return 0

        filled = 0
        size = self.chunk_size
        for gap_start, gap_stop in self.archive.find_gaps(0, self.cursor - 1):
            # First aligned chunk start inside the gap
            start = -(-gap_start // size) * size
            if start != gap_start or (gap_stop + 1) % size:
                self.logger.warning(
                    "Archive gap %d-%d is not aligned to chunk size %d", gap_start, gap_stop, size
                )
            while start + size - 1 <= gap_stop:
                if cancel is not None and cancel.is_set():
                    return filled
                stop = start + size - 1
                self.state = EngineState.WAITING_FOR_DATA
                if self.source.check_range_is_populated(start, stop):
                    self._checksum_and_publish(start, stop)
                    filled += 1
                else:
                    self.logger.warning("Cannot backfill range %d-%d: source log incomplete", start, stop)
                start += size

        self.state = EngineState.IDLE
        if filled:
            self.logger.info("Backfilled %d chunk(s) in checksum archive", filled)
        return filled

    def run(self, cancel: Optional[threading.Event] = None) -> None:
        """
        Checksum chunks until cancelled (or, with follow=False, until caught up).

        Cancellation is honored only between iterations and during the
        backoff wait; a started computation or publish always completes.

        Raises:
            StoreError: On the first source log or archive failure. The loop
                does not restart itself.
        """
        cancel = cancel or threading.Event()
        self.logger.info("Checksumming from epoch %d in chunks of %d", self.cursor, self.chunk_size)
        try:
            if self.check_for_gaps:
                self.backfill_gaps(cancel)

            while not cancel.is_set():
                if self.step():
                    continue

                start, stop = self.next_range()
                if not self.follow:
                    self.logger.info("Range %d-%d not yet populated, nothing left to checksum", start, stop)
                    break

                # the range is incomplete; the source log may still be growing
                self.logger.debug("Range %d-%d not yet populated, waiting %ss", start, stop, self.backoff_seconds)
                if cancel.wait(self.backoff_seconds):
                    break
        finally:
            self.state = EngineState.STOPPED
            self.logger.info("Checksumming loop exited at epoch %d", self.cursor)
