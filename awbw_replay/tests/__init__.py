"""
Test suite for the replay catalog and playback engine.

Focus areas:
- Decoder determinism and strict key checking
- Fail-fast match decoding
- Catalog persistence and background enrichment
- Combat ordering during playback
"""
