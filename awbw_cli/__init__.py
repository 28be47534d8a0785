"""
AWBW Replay CLI

Commands:
- awbw-replay catalog list/scan/ingest/remove - Replay catalog operations
- awbw-replay replay inspect/play - Decode and play back a stored replay
"""

__version__ = "0.1.0"
