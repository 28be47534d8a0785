"""
Replay container detection.

A replay file is either a zip archive holding the match document, or a single
stream that is gzip-compressed (or plain) JSON. The file extension picks the
first decoder to try; on failure the other one is tried before giving up.
"""

import gzip
import io
import json
import logging
import zipfile
import zlib
from typing import Any, Dict, Optional

from ..core.errors import DecodeError

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"
GZIP_MAGIC = b"\x1f\x8b"


def is_zip(data: bytes) -> bool:
    return data[:4] == ZIP_MAGIC


def decode_stream(data: bytes) -> Dict[str, Any]:
    """
    Decode a non-zip stream: gzip-compressed or plain UTF-8 JSON.

    Raises:
        DecodeError: If the stream is not a JSON object
    """
    try:
        if data[:2] == GZIP_MAGIC:
            data = gzip.decompress(data)
        doc = json.loads(data.decode("utf-8"))
    except (OSError, EOFError, UnicodeDecodeError, json.JSONDecodeError) as ex:
        raise DecodeError(f"Replay stream is not valid JSON: {ex}") from ex

    if not isinstance(doc, dict):
        raise DecodeError(f"Replay document must be a JSON object, got {type(doc).__name__}")
    return doc


def decode_zip(data: bytes) -> Dict[str, Any]:
    """
    Decode the first archive member that holds a match document.

    Raises:
        DecodeError: If the archive is unreadable or no member parses
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            members = [i for i in archive.infolist() if not i.is_dir()]
            if not members:
                raise DecodeError("Replay archive is empty")

            last_error: Optional[DecodeError] = None
            for info in members:
                try:
                    raw = archive.read(info)
                except (zlib.error, EOFError, RuntimeError, NotImplementedError, OSError) as ex:
                    # Corrupt, encrypted or unsupported member
                    logger.debug(f"Cannot read archive member {info.filename}: {ex}")
                    last_error = DecodeError(f"Cannot read archive member {info.filename}: {ex}")
                    continue
                try:
                    return decode_stream(raw)
                except DecodeError as ex:
                    logger.debug(f"Skipping archive member {info.filename}: {ex}")
                    last_error = ex
    except zipfile.BadZipFile as ex:
        raise DecodeError(f"Replay archive is corrupt: {ex}") from ex

    raise DecodeError(f"No member of the replay archive holds a match document: {last_error}")


def read_document(data: bytes, name_hint: str = "") -> Dict[str, Any]:
    """
    Decode replay bytes into the raw match document.

    Args:
        data: File contents
        name_hint: Original file name, used only for its extension

    Returns:
        Parsed JSON document

    Raises:
        DecodeError: If neither decoder accepts the bytes
    """
    if name_hint.lower().endswith(".zip"):
        order = (decode_zip, decode_stream)
    else:
        order = (decode_stream, decode_zip)

    first, fallback = order
    try:
        return first(data)
    except DecodeError as ex:
        logger.debug(f"{first.__name__} failed for {name_hint or '<stream>'}, trying {fallback.__name__}: {ex}")
        try:
            return fallback(data)
        except DecodeError:
            raise ex
