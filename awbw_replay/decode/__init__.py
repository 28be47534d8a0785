"""
Replay decoding: container detection, action decoders and match model builder.
"""

from .actions import ATTACK_FIRST_POWERS, DECODERS, register_decoders
from .container import decode_stream, decode_zip, is_zip, read_document
from .match import build_match, build_summary, decode_replay

__all__ = [
    "ATTACK_FIRST_POWERS",
    "DECODERS",
    "register_decoders",
    "decode_stream",
    "decode_zip",
    "is_zip",
    "read_document",
    "build_match",
    "build_summary",
    "decode_replay",
]
