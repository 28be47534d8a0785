"""
Replay catalog and ingestion.

This module provides:
- ReplayStore: Abstract byte-stream storage for replay artifacts
- FileReplayStore: Directory-backed store with atomic writes
- Catalog: Persisted replay index with scan/ingest/remove and notifications
- UsernameEnricher: Background username resolution with a retry policy
"""

from .store import FileReplayStore, ReplayStore
from .lookup import HttpUsernameLookup, UsernameLookup
from .enrichment import EnrichmentResult, RetryPolicy, UsernameCache, UsernameEnricher
from .index import INDEX_NAME, Catalog, CatalogEvent, replay_id_from_name

__all__ = [
    "FileReplayStore",
    "ReplayStore",
    "HttpUsernameLookup",
    "UsernameLookup",
    "EnrichmentResult",
    "RetryPolicy",
    "UsernameCache",
    "UsernameEnricher",
    "INDEX_NAME",
    "Catalog",
    "CatalogEvent",
    "replay_id_from_name",
]
