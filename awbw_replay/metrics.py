"""
Prometheus metrics for the replay catalog and playback driver.

Environment Variables:
    METRICS_ENABLED: Enable metrics server (true/false) - default: false
    METRICS_PORT: HTTP port for /metrics endpoint - default: 8080

Usage:
    from awbw_replay.metrics import start_metrics_server, track_ingest

    start_metrics_server(enabled=True, port=8080)
    track_ingest("added")
"""

import logging
import threading

from prometheus_client import Counter, start_http_server

logger = logging.getLogger(__name__)

REPLAYS_INGESTED = Counter(
    "awbw_replays_ingested_total",
    "Replays stored in the catalog",
    labelnames=["outcome"],
)

DECODE_FAILURES = Counter(
    "awbw_replay_decode_failures_total",
    "Replay files that failed to decode",
)

USERNAME_LOOKUPS = Counter(
    "awbw_username_lookups_total",
    "Username resolutions by outcome (hit, cached, miss, error)",
    labelnames=["outcome"],
)

PLAYBACK_ACTIONS = Counter(
    "awbw_playback_actions_total",
    "Actions executed by the playback driver",
    labelnames=["action"],
)

_server_started = False
_server_lock = threading.Lock()


def start_metrics_server(enabled: bool, port: int) -> None:
    """Start the /metrics HTTP endpoint once, in a background thread."""
    global _server_started

    if not enabled:
        logger.info("Metrics server disabled")
        return

    with _server_lock:
        if _server_started:
            return
        start_http_server(port)
        _server_started = True
        logger.info(f"Metrics server listening on :{port}")


def track_ingest(outcome: str) -> None:
    REPLAYS_INGESTED.labels(outcome=outcome).inc()


def track_decode_failure() -> None:
    DECODE_FAILURES.inc()


def track_lookup(outcome: str) -> None:
    USERNAME_LOOKUPS.labels(outcome=outcome).inc()


def track_action(code: str) -> None:
    PLAYBACK_ACTIONS.labels(action=code).inc()
