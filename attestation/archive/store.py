"""
ChecksumArchive abstract interface.

Defines the contract for persisting published (range, digest) entries.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..core.models import ChecksumRange


class ChecksumArchive(ABC):
    """
    Abstract checksum archive.

    All implementations must guarantee:
    - Upsert per (start, stop): publishing a range again replaces its digest
    - Atomic writes: a range either exists with a digest or does not exist
    - Absence is a value (None), never an error
    """

    @abstractmethod
    def publish_checksum(self, start: int, stop: int, digest: str) -> None:
        """
        Publish digest for [start, stop]; last write wins.

        Raises:
            StoreError: If the write fails
        """
        ...

    @abstractmethod
    def checksum_exists(self, digest: str) -> bool:
        ...

    @abstractmethod
    def get_checksum(self, start: int, stop: int) -> Optional[str]:
        """Return the digest published for exactly [start, stop], or None."""
        ...

    @abstractmethod
    def find_next_checksum(self) -> int:
        """
        Start epoch of the next checksum to publish.

        Returns:
            max(stop) + 1 over stored ranges, or 0 for an empty archive
        """
        ...

    @abstractmethod
    def find_gaps(self, start: int = -1, stop: int = -1) -> List[Tuple[int, int]]:
        """
        Find epoch intervals not covered by any stored range.

        Args:
            start: Lower bound (inclusive), -1 for unbounded
            stop: Upper bound (inclusive), -1 for unbounded

        Returns:
            Ordered inclusive (gap_start, gap_stop) pairs, including boundary
            gaps against explicit bounds
        """
        ...

    @abstractmethod
    def list_ranges(self, start: int = -1, stop: int = -1) -> List[ChecksumRange]:
        """Stored ranges overlapping the window, ordered by start."""
        ...

    @abstractmethod
    def interval(self) -> int:
        """Configured chunk size in epochs."""
        ...

    def close(self) -> None:
        return None
