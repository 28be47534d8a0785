"""
Replay catalog: the persisted index of known replays.

The catalog owns the index (replay id -> MatchSummary) and the username
cache. Both are loaded from the store at construction and rewritten in full
on every mutation. Scanning and enrichment run on background executors;
callers observe their results through added/changed/removed callbacks.
"""

import json
import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import BinaryIO, Callable, Dict, List, Optional, Union

from ..core.canonical import canonical_json_bytes
from ..core.errors import DecodeError, EnrichmentError, StorageError
from ..core.models import MatchModel, MatchSummary
from ..core.registry import ActionRegistry, default_registry
from ..decode.container import is_zip
from ..decode.match import decode_replay
from ..logging_config import get_logger
from .. import metrics
from .enrichment import EnrichmentResult, RetryPolicy, UsernameCache, UsernameEnricher
from .lookup import HttpUsernameLookup, UsernameLookup
from .store import FileReplayStore, ReplayStore

logger = logging.getLogger(__name__)

INDEX_NAME = "replay_index.json"
ZIP_EXTENSION = ".zip"

Listener = Callable[[MatchSummary], None]
Source = Union[str, os.PathLike, bytes, bytearray, BinaryIO]


class CatalogEvent(str, Enum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


def replay_id_from_name(name: str) -> Optional[int]:
    """
    Derive the replay id from a stored file name.

    Accepts "<id>.zip" and bare "<id>"; anything else is not a replay.
    """
    stem, ext = os.path.splitext(name)
    if ext not in ("", ZIP_EXTENSION) or not stem.isdigit():
        return None
    return int(stem)


def artifact_names(replay_id: int) -> List[str]:
    return [f"{replay_id}{ZIP_EXTENSION}", str(replay_id)]


class Catalog:
    """
    Catalog of known replays.

    Usage:
        catalog = Catalog(FileReplayStore("ReplayData/Replays"), HttpUsernameLookup(url))
        catalog.subscribe(CatalogEvent.ADDED, on_added)
        catalog.scan()
    """

    def __init__(
        self,
        store: ReplayStore,
        lookup: UsernameLookup,
        policy: Optional[RetryPolicy] = None,
        registry: Optional[ActionRegistry] = None,
        sleep: Callable[[float], None] = time.sleep,
        scan_on_start: bool = False,
    ) -> None:
        self.store = store
        self.registry = registry or default_registry()
        self._lock = threading.RLock()
        self._index: Dict[int, MatchSummary] = self._load_index()
        self.usernames = UsernameCache.load(store)
        self.enricher = UsernameEnricher(self.usernames, lookup, policy, sleep)

        self._listeners: Dict[CatalogEvent, List[Listener]] = {kind: [] for kind in CatalogEvent}
        # One worker each: scans ingest files in order and enrichment runs one replay at a time
        self._ingest_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="replay-ingest")
        self._enrich_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="replay-enrich")
        self._pending: List[Future] = []
        self._pending_lock = threading.Lock()

        if scan_on_start:
            self.scan()

    @classmethod
    def from_config(cls, config) -> "Catalog":
        """Build a file-backed catalog from a CatalogConfig."""
        return cls(
            FileReplayStore(config.replay_dir),
            HttpUsernameLookup(config.username_url, timeout=config.lookup_timeout),
            policy=config.retry_policy,
            scan_on_start=config.scan_on_start,
        )

    # Queries

    def get_all(self) -> List[MatchSummary]:
        with self._lock:
            return [self._index[k] for k in sorted(self._index.keys())]

    def get_by_id(self, replay_id: int) -> Optional[MatchSummary]:
        with self._lock:
            return self._index.get(replay_id)

    def __contains__(self, replay_id: object) -> bool:
        with self._lock:
            return replay_id in self._index

    def __len__(self) -> int:
        with self._lock:
            return len(self._index)

    def subscribe(self, kind: CatalogEvent, callback: Listener) -> Callable[[], None]:
        """
        Register a callback for added/changed/removed notifications.

        Callbacks may run on a background thread.

        Returns:
            Function that removes the subscription
        """
        kind = CatalogEvent(kind)
        with self._lock:
            self._listeners[kind].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners[kind]:
                    self._listeners[kind].remove(callback)

        return unsubscribe

    # Ingestion

    def scan(self) -> None:
        """
        Diff the store against the index and queue background work.

        New replay files are queued for ingest, known replays with unresolved
        usernames for enrichment. Only the (unchanged) index is written before
        returning; new entries arrive later through callbacks.
        """
        try:
            names = self.store.list_names()
        except StorageError as ex:
            logger.error(f"Replay scan failed: {ex}")
            return

        new_files: List[str] = []
        needs_names: List[MatchSummary] = []
        seen = set()

        for name in names:
            replay_id = replay_id_from_name(name)
            if replay_id is None or replay_id in seen:
                continue
            seen.add(replay_id)

            summary = self.get_by_id(replay_id)
            if summary is None:
                new_files.append(name)
            elif summary.unresolved_users():
                needs_names.append(summary)

        logger.info(f"Scan found {len(new_files)} new replays, {len(needs_names)} needing usernames")
        self._track(self._ingest_executor.submit(self._run_scan, new_files, needs_names))
        self._save()

    def _run_scan(self, new_files: List[str], needs_names: List[MatchSummary]) -> None:
        for summary in needs_names:
            self._schedule_enrichment(summary)

        for name in new_files:
            try:
                self._ingest_bytes(self.store.read_bytes(name), name)
            except (DecodeError, StorageError) as ex:
                # Nothing is recorded for the file, so the next scan retries it
                logger.error(f"Failed to parse saved file {name}: {ex}")
            except Exception:
                # One bad file must not stop the rest of the batch
                metrics.track_decode_failure()
                logger.exception(f"Unexpected error ingesting saved file {name}")

    def ingest(self, source: Source) -> MatchSummary:
        """
        Decode and store a replay.

        Args:
            source: Path, raw bytes or binary stream of a replay file

        Returns:
            The stored MatchSummary

        Raises:
            DecodeError: If the replay cannot be decoded (nothing is stored)
            StorageError: If the source cannot be read or the store written
        """
        if isinstance(source, (bytes, bytearray)):
            data, name = bytes(source), ""
        elif hasattr(source, "read"):
            data = source.read()
            name = os.path.basename(str(getattr(source, "name", "")))
        else:
            name = os.path.basename(os.fspath(source))
            try:
                with open(source, "rb") as f:
                    data = f.read()
            except OSError as ex:
                raise StorageError(f"Cannot read replay {source}: {ex}") from ex

        return self._ingest_bytes(data, name)

    def _ingest_bytes(self, data: bytes, name: str) -> MatchSummary:
        try:
            match = decode_replay(data, name, self.registry)
        except DecodeError:
            metrics.track_decode_failure()
            raise

        summary = match.summary
        log = get_logger(__name__, trace_id=f"replay-{summary.id}")

        artifact = f"{summary.id}{ZIP_EXTENSION}" if is_zip(data) else str(summary.id)
        # Stored under the replay id, never the original file name
        self.store.write_bytes(artifact, data)
        for stale in artifact_names(summary.id):
            if stale != artifact and self.store.exists(stale):
                self.store.delete(stale)

        self._fill_from_cache(summary)

        with self._lock:
            existed = summary.id in self._index
            self._index[summary.id] = summary
            self._save()

        outcome = CatalogEvent.CHANGED if existed else CatalogEvent.ADDED
        metrics.track_ingest(outcome.value)
        log.info(f"Replay {outcome.value}: {summary.name}")
        self._emit(outcome, summary)

        if summary.unresolved_users():
            self._schedule_enrichment(summary)
        return summary

    def _fill_from_cache(self, summary: MatchSummary) -> None:
        for player in summary.players.values():
            if player.username is None:
                cached = self.usernames.get(player.user_id)
                if cached is not None:
                    player.username = cached
            else:
                self.usernames.setdefault(player.user_id, player.username)

    def remove(self, replay_id: int) -> MatchSummary:
        """
        Delete a replay's stored artifact and index entry.

        Raises:
            StorageError: If the replay is unknown or deletion fails
        """
        with self._lock:
            summary = self._index.get(replay_id)
            if summary is None:
                raise StorageError(f"Unknown replay: {replay_id}")

            for name in artifact_names(replay_id):
                if self.store.exists(name):
                    self.store.delete(name)

            del self._index[replay_id]
            self._save()

        logger.info(f"Replay removed: {replay_id}")
        self._emit(CatalogEvent.REMOVED, summary)
        return summary

    def load_match(self, replay_id: int) -> MatchModel:
        """
        Decode a stored replay into its full match model.

        Usernames come from the cache. If the indexed summary still has
        unresolved users, enrichment is queued for it; its result arrives
        through a changed event, not in the returned model.

        Raises:
            StorageError: If no artifact is stored for the replay
            DecodeError: If the stored artifact no longer decodes
        """
        for name in artifact_names(replay_id):
            if self.store.exists(name):
                match = decode_replay(self.store.read_bytes(name), name, self.registry)
                self._fill_from_cache(match.summary)

                indexed = self.get_by_id(replay_id)
                if indexed is not None and indexed.unresolved_users():
                    self._schedule_enrichment(indexed)
                return match
        raise StorageError(f"No stored replay with id {replay_id}")

    # Enrichment

    def _schedule_enrichment(self, summary: MatchSummary) -> None:
        self._track(self._enrich_executor.submit(self._run_enrichment, summary.id))

    def _run_enrichment(self, replay_id: int) -> Optional[EnrichmentResult]:
        summary = self.get_by_id(replay_id)
        if summary is None:
            return None

        log = get_logger(__name__, trace_id=f"replay-{replay_id}")
        try:
            result = self.enricher.enrich(summary)
        except EnrichmentError as ex:
            log.error(str(ex))
            if ex.result is not None and ex.result.progress:
                self._commit_enrichment(summary)
            raise

        log.info(f"Enrichment resolved {len(result.resolved)} users with {result.lookups} lookups")
        if result.progress:
            self._commit_enrichment(summary)
        return result

    def _commit_enrichment(self, summary: MatchSummary) -> None:
        with self._lock:
            if self._index.get(summary.id) is not summary:
                return
            self._save()
        self._emit(CatalogEvent.CHANGED, summary)

    # Background work

    def _track(self, future: Future) -> None:
        with self._pending_lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for queued scans and enrichments, including work they queue.

        Returns:
            True if everything finished before the timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._pending_lock:
                pending = [f for f in self._pending if not f.done()]
            if not pending:
                return True
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            _, not_done = wait(pending, timeout=remaining)
            if not_done:
                return False

    def close(self) -> None:
        self.drain()
        self._ingest_executor.shutdown(wait=True)
        self._enrich_executor.shutdown(wait=True)

    def __enter__(self) -> "Catalog":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # Persistence

    def _load_index(self) -> Dict[int, MatchSummary]:
        if not self.store.exists(INDEX_NAME):
            return {}
        try:
            raw = json.loads(self.store.read_bytes(INDEX_NAME).decode("utf-8")) or {}
            return {int(k): MatchSummary.from_record(v) for k, v in raw.items()}
        except ValueError as ex:
            raise StorageError(f"Corrupt replay index {INDEX_NAME}: {ex}") from ex

    def _save(self) -> None:
        with self._lock:
            records = {k: s.to_record() for k, s in self._index.items()}
            self.store.write_bytes(INDEX_NAME, canonical_json_bytes(records))
            self.usernames.save(self.store)

    def _emit(self, kind: CatalogEvent, summary: MatchSummary) -> None:
        with self._lock:
            listeners = list(self._listeners[kind])
        for callback in listeners:
            try:
                callback(summary)
            except Exception:
                logger.exception(f"Catalog {kind.value} listener failed for replay {summary.id}")
