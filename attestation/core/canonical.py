"""
Canonical serialization for chunk digests.

Digest rows pass through here before hashing, so every operator produces
the same bytes for the same records. Only values whose JSON text is stable
across platforms are accepted: strings, integers, booleans and None, nested
in lists, tuples or string-keyed dicts.
"""

import json
from typing import Any

_SCALARS = (str, bool, int, type(None))


def canonicalize(obj: Any) -> Any:
    """
    Normalize obj into plain JSON-ready structures.

    Rules:
    - dict keys sorted; keys must be strings
    - tuples become lists
    - floats and other scalars are rejected (their text is not stable)

    Raises:
        TypeError: If obj holds a value with no canonical encoding
    """
    if isinstance(obj, dict):
        for key in obj:
            if not isinstance(key, str):
                raise TypeError(f"canonical dict keys must be strings, got {type(key).__name__}")
        return {k: canonicalize(obj[k]) for k in sorted(obj)}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    if isinstance(obj, _SCALARS):
        return obj
    raise TypeError(f"no canonical encoding for {type(obj).__name__}")


def canonical_json_bytes(obj: Any) -> bytes:
    """Compact UTF-8 JSON (no whitespace, sorted keys) of canonicalize(obj)."""
    text = json.dumps(canonicalize(obj), separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    return canonical_json_bytes(obj).decode("utf-8")
