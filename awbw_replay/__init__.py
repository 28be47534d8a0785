"""
AWBW Replay Engine

Catalog, decoder and deterministic playback engine for turn-based match replays.
"""

__version__ = "0.1.0"
