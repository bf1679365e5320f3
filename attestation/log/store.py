"""
SourceLog abstract interface.

Read-only view over the epoch-ordered message log being attested.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple


class SourceLog(ABC):
    """
    Abstract source log interface.

    All implementations must guarantee:
    - Read-only access (the live log is never mutated)
    - Deterministic digests (same records -> same digest)
    - Query failures raise StoreError
    """

    @abstractmethod
    def check_range_is_populated(self, start: int, stop: int) -> bool:
        """
        Check that [start, stop] is fully present in the log.

        True iff both boundary epochs exist and no epoch gap lies between
        them.

        Raises:
            ValueError: If start > stop
            StoreError: If the query fails
        """
        ...

    @abstractmethod
    def checksum(self, start: int, stop: int) -> str:
        """
        Digest every record with epoch in [start, stop].

        The range must already be confirmed populated via
        check_range_is_populated(); the result is meaningless otherwise.

        Raises:
            StoreError: If copying or hashing fails
        """
        ...

    @abstractmethod
    def find_gaps(self, start: int = -1, stop: int = -1) -> List[Tuple[int, int]]:
        """
        Find missing epoch intervals between present epochs.

        Args:
            start: Lower bound (inclusive), -1 for unbounded
            stop: Upper bound (inclusive), -1 for unbounded

        Returns:
            Ordered inclusive (gap_start, gap_stop) pairs; empty when the
            window holds no epochs
        """
        ...

    def close(self) -> None:
        """Release scratch resources. Default: nothing to release."""
        return None
