"""
Canonical serialization for persisted snapshots.

The catalog index and username cache are rewritten wholesale on every mutation.
Going through these helpers keeps the files byte-stable for identical content.
"""

import json
from typing import Any


def canonicalize(obj: Any) -> Any:
    """
    Convert arbitrary nested dict/list to canonical form.

    Rules:
    - dict keys converted to strings and sorted
    - tuples converted to lists
    - recursive normalization
    """
    if isinstance(obj, dict):
        items = {str(k): v for k, v in obj.items()}
        return {k: canonicalize(items[k]) for k in sorted(items.keys())}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    return obj


def canonical_json_str(obj: Any, indent: int = 2) -> str:
    """
    Deterministic JSON string for storage.

    Keys are sorted and unicode is kept as-is (ensure_ascii=False).
    """
    return json.dumps(canonicalize(obj), sort_keys=True, indent=indent, ensure_ascii=False)


def canonical_json_bytes(obj: Any, indent: int = 2) -> bytes:
    """UTF-8 encoded form of canonical_json_str."""
    return canonical_json_str(obj, indent=indent).encode("utf-8")
