"""
Data model for the source log and the checksum archive.
"""

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass(frozen=True)
class LogRecord:
    """
    One message in the source log.

    Fields:
        cid: Unique message key
        tipset_cid: Identifier of the containing group (tipset)
        epoch: Ordinal position in the log (many records may share one)

    Records are written by ingestion outside this service; they are only
    read here.
    """
    cid: str
    tipset_cid: str
    epoch: int

    def digest_row(self) -> List[Any]:
        """Fixed field order used when the record contributes to a digest."""
        return [self.cid, self.tipset_cid, self.epoch]


@dataclass(frozen=True)
class ChecksumRange:
    """
    A published archive entry.

    Fields:
        start: First epoch covered (inclusive)
        stop: Last epoch covered (inclusive)
        digest: Content hash of every record with epoch in [start, stop]
    """
    start: int
    stop: int
    digest: str

    @property
    def span(self) -> int:
        return self.stop - self.start + 1

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "stop": self.stop, "digest": self.digest}
