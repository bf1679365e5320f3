"""
Read API over the checksum archive.

Transport-agnostic: the HTTP layer (or a test) calls these methods directly.
The archive is read without going through the checksum engine.
"""

from typing import Optional

from ..archive.store import ChecksumArchive
from ..core.errors import StoreError, ValidationError
from ..observability.logging_config import get_logger
from ..observability.metrics import track_api_request


class ReadAPI:
    def __init__(self, archive: ChecksumArchive, logger=None) -> None:
        self.archive = archive
        self.logger = logger or get_logger(__name__, component="read-api")

    def interval(self) -> int:
        return self.archive.interval()

    def validate_range(self, start: int, stop: int) -> None:
        """
        Check that [start, stop] is exactly one archive chunk.

        Raises:
            ValidationError: If the span differs from the interval or start is misaligned
        """
        interval = self.archive.interval()
        if start < 0 or stop < 0:
            raise ValidationError("checksum range bounds must not be negative")
        if stop - start + 1 != interval:
            raise ValidationError(f"checksum expected to span an interval of size {interval}")
        if start % interval != 0:
            raise ValidationError(f"checksum range must start at a multiple of the interval size {interval}")

    def checksum_exists(self, digest: str) -> bool:
        """Return True if digest is published for any range."""
        try:
            exists = self.archive.checksum_exists(digest)
        except StoreError:
            track_api_request("checksum_exists", "error")
            raise
        track_api_request("checksum_exists", "ok")
        return exists

    def get_checksum(self, start: int, stop: int) -> Optional[str]:
        """
        Return the digest published for [start, stop].

        Returns:
            The digest, or None if the (valid) range is not published yet

        Raises:
            ValidationError: If the range is not one aligned chunk
            StoreError: If the archive query fails
        """
        try:
            self.validate_range(start, stop)
        except ValidationError as ex:
            track_api_request("get_checksum", "invalid")
            self.logger.debug("Rejected GetChecksum(%d, %d): %s", start, stop, ex)
            raise

        try:
            digest = self.archive.get_checksum(start, stop)
        except StoreError:
            track_api_request("get_checksum", "error")
            raise
        track_api_request("get_checksum", "ok")
        return digest
