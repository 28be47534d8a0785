"""
Catalog configuration from environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .catalog.enrichment import RetryPolicy

DEFAULT_REPLAY_DIR = os.path.join("ReplayData", "Replays")
DEFAULT_USERNAME_URL = "https://awbw.amarriner.com/api/username/{user_id}"


def _env_float(key: str, default: float) -> float:
    val = os.getenv(key)
    if not val:
        return default
    try:
        parsed = float(val)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    if not val:
        return default
    try:
        parsed = int(val)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclass
class CatalogConfig:
    replay_dir: str
    username_url: str
    lookup_timeout: float
    retry_policy: RetryPolicy
    scan_on_start: bool
    metrics_enabled: bool
    metrics_port: int

    @staticmethod
    def from_env(replay_dir: Optional[str] = None) -> "CatalogConfig":
        return CatalogConfig(
            replay_dir=replay_dir or os.getenv("AWBW_REPLAY_DIR", DEFAULT_REPLAY_DIR),
            username_url=os.getenv("AWBW_USERNAME_URL", DEFAULT_USERNAME_URL),
            lookup_timeout=_env_float("AWBW_LOOKUP_TIMEOUT", 10.0),
            retry_policy=RetryPolicy(
                max_failures=_env_int("AWBW_ENRICH_MAX_FAILURES", 3),
                retry_delay=_env_float("AWBW_ENRICH_RETRY_DELAY", 1.0),
                lookup_delay=_env_float("AWBW_ENRICH_LOOKUP_DELAY", 0.15),
            ),
            scan_on_start=os.getenv("AWBW_SCAN_ON_START", "1") == "1",
            metrics_enabled=os.getenv("METRICS_ENABLED", "false").lower() == "true",
            metrics_port=_env_int("METRICS_PORT", 8080),
        )
