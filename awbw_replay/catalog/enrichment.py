"""
Username enrichment.

Fills in missing player display names through an external lookup. Names are
cached by user id and shared by every replay that references the same user.
Failed lookups are retried after a fixed delay until the run's failure budget
is spent.
"""

import json
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..core.canonical import canonical_json_bytes
from ..core.errors import EnrichmentError, StorageError
from ..core.models import MatchSummary
from .. import metrics
from .lookup import UsernameLookup
from .store import ReplayStore

logger = logging.getLogger(__name__)

USERNAME_CACHE_NAME = "username_cache.json"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy for one enrichment run.

    Fields:
        max_failures: Cumulative failures (per run, not per user) that abort the run
        retry_delay: Seconds to wait after a failed lookup
        lookup_delay: Seconds to wait between successful distinct lookups
    """
    max_failures: int = 3
    retry_delay: float = 1.0
    lookup_delay: float = 0.15


class UsernameCache:
    """Process-wide user id -> display name map, persisted as one JSON object."""

    def __init__(self, names: Optional[Dict[int, str]] = None) -> None:
        self._names: Dict[int, str] = dict(names or {})
        self._lock = threading.Lock()

    def get(self, user_id: int) -> Optional[str]:
        with self._lock:
            return self._names.get(user_id)

    def set(self, user_id: int, name: str) -> None:
        with self._lock:
            self._names[user_id] = name

    def setdefault(self, user_id: int, name: str) -> None:
        with self._lock:
            self._names.setdefault(user_id, name)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._names

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)

    def snapshot(self) -> Dict[int, str]:
        with self._lock:
            return dict(self._names)

    @classmethod
    def load(cls, store: ReplayStore, name: str = USERNAME_CACHE_NAME) -> "UsernameCache":
        if not store.exists(name):
            return cls()
        try:
            raw = json.loads(store.read_bytes(name).decode("utf-8")) or {}
            return cls({int(k): str(v) for k, v in raw.items()})
        except (ValueError, AttributeError) as ex:
            raise StorageError(f"Corrupt username cache {name}: {ex}") from ex

    def save(self, store: ReplayStore, name: str = USERNAME_CACHE_NAME) -> None:
        store.write_bytes(name, canonical_json_bytes(self.snapshot()))


@dataclass
class EnrichmentResult:
    replay_id: int
    resolved: List[int] = field(default_factory=list)
    lookups: int = 0
    failures: int = 0

    @property
    def progress(self) -> bool:
        return bool(self.resolved)


class UsernameEnricher:
    """
    Resolve missing usernames for one summary at a time.

    Usage:
        enricher = UsernameEnricher(cache, HttpUsernameLookup(url), RetryPolicy())
        result = enricher.enrich(summary)
    """

    def __init__(
        self,
        cache: UsernameCache,
        lookup: UsernameLookup,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cache = cache
        self.lookup = lookup
        self.policy = policy or RetryPolicy()
        self.sleep = sleep

    def enrich(self, summary: MatchSummary) -> EnrichmentResult:
        """
        Fill missing usernames of summary in place.

        Returns:
            EnrichmentResult listing the user ids resolved by this run

        Raises:
            EnrichmentError: When cumulative failures reach policy.max_failures.
                Users resolved before the abort stay resolved; the partial
                result is attached as ``error.result``.
        """
        result = EnrichmentResult(replay_id=summary.id)
        queue = deque(summary.players.values())

        while queue:
            player = queue.popleft()

            if player.username is not None:
                self.cache.setdefault(player.user_id, player.username)
                continue

            cached = self.cache.get(player.user_id)
            if cached is not None:
                player.username = cached
                result.resolved.append(player.user_id)
                metrics.track_lookup("cached")
                continue

            result.lookups += 1
            try:
                name = self.lookup.lookup(player.user_id)
                outcome = "hit" if name else "miss"
            except Exception as e:
                logger.warning(f"Error while getting username for user {player.user_id}: {e}")
                name = None
                outcome = "error"
            metrics.track_lookup(outcome)

            if not name:
                result.failures += 1
                if result.failures >= self.policy.max_failures:
                    raise EnrichmentError(
                        f"Failed to get usernames for replay {summary.id}:{summary.name} "
                        f"after {result.failures} failures",
                        result=result,
                    )
                queue.append(player)
                self.sleep(self.policy.retry_delay)
                continue

            player.username = name
            self.cache.set(player.user_id, name)
            result.resolved.append(player.user_id)

            if queue:
                self.sleep(self.policy.lookup_delay)

        return result
