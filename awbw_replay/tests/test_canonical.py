"""
Tests for canonical serialization of persisted snapshots.
"""

import json

from awbw_replay.core.canonical import canonicalize, canonical_json_bytes, canonical_json_str


def test_canonicalize_dict_key_order():
    """Dict key order must not affect canonical output."""
    d1 = {"z": 1, "a": 2, "m": 3}
    d2 = {"a": 2, "m": 3, "z": 1}

    assert canonicalize(d1) == canonicalize(d2)
    assert canonical_json_bytes(d1) == canonical_json_bytes(d2)


def test_canonicalize_int_keys_become_strings():
    """Index records are keyed by replay id; keys must serialize as strings."""
    canon = canonicalize({42: {"players": {2: "b", 1: "a"}}})

    assert list(canon.keys()) == ["42"]
    assert list(canon["42"]["players"].keys()) == ["1", "2"]


def test_canonicalize_tuples_to_lists():
    assert canonicalize({"path": ((1, 2), (3, 4))}) == {"path": [[1, 2], [3, 4]]}


def test_canonical_json_keeps_unicode():
    """Usernames are stored as-is, not escaped."""
    text = canonical_json_str({"501": "Zoë"})

    assert "Zoë" in text
    assert json.loads(text) == {"501": "Zoë"}
