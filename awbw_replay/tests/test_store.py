"""
Tests for FileReplayStore.
"""

import os
import tempfile

import pytest

from awbw_replay.catalog import FileReplayStore
from awbw_replay.core import StorageError


def test_write_read_roundtrip():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileReplayStore(tmpdir)
        store.write_bytes("42.zip", b"payload")

        assert store.exists("42.zip")
        assert store.read_bytes("42.zip") == b"payload"
        assert store.list_names() == ["42.zip"]


def test_overwrite_leaves_no_temp_files():
    """Atomic replace: only the target file remains after rewrites."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileReplayStore(tmpdir)
        for i in range(5):
            store.write_bytes("replay_index.json", f"{{\"n\": {i}}}".encode())

        assert os.listdir(tmpdir) == ["replay_index.json"]
        assert store.read_bytes("replay_index.json") == b'{"n": 4}'


def test_list_names_skips_directories():
    with tempfile.TemporaryDirectory() as tmpdir:
        os.mkdir(os.path.join(tmpdir, "7"))
        store = FileReplayStore(tmpdir)
        store.write_bytes("8", b"x")

        assert store.list_names() == ["8"]


def test_read_missing_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(StorageError):
            FileReplayStore(tmpdir).read_bytes("missing.zip")


def test_delete_missing_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(StorageError, match="not found"):
            FileReplayStore(tmpdir).delete("missing.zip")


def test_path_names_rejected():
    """Names must stay inside the store directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileReplayStore(tmpdir)

        with pytest.raises(StorageError):
            store.write_bytes("../escape.zip", b"x")
        with pytest.raises(StorageError):
            store.exists("")
