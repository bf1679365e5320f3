"""
Chunk digest computation.

A chunk digest is SHA3-256 over the concatenation of one canonical JSON line
per record, in ascending cid order:

    ["<cid>","<tipset_cid>",<epoch>]\\n

Because the order is fixed by the record key, two logs holding the same
records produce the same digest no matter how the rows were inserted.
"""

import hashlib
from typing import Iterable

from ..core.canonical import canonical_json_bytes
from ..core.models import LogRecord

EMPTY_DIGEST = hashlib.sha3_256(b"").hexdigest()


def record_line(record: LogRecord) -> bytes:
    """Serialized form of one record as it enters the digest."""
    return canonical_json_bytes(record.digest_row()) + b"\n"


def digest_records(records: Iterable[LogRecord]) -> str:
    """
    Digest records already sorted by cid.

    Args:
        records: Records in ascending cid order

    Returns:
        SHA3-256 hash as hex string
    """
    h = hashlib.sha3_256()
    for record in records:
        h.update(record_line(record))
    return h.hexdigest()
