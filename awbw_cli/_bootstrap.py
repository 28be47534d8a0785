"""
Shared setup for CLI commands: logging, metrics and catalog construction.
"""

from typing import Optional

from awbw_replay.catalog import Catalog
from awbw_replay.config import CatalogConfig
from awbw_replay.logging_config import setup_logging
from awbw_replay.metrics import start_metrics_server


def bootstrap(verbose: bool = False) -> None:
    setup_logging(level="DEBUG" if verbose else None)


def open_catalog(replay_dir: Optional[str] = None) -> Catalog:
    """Build the file-backed catalog without scanning; commands scan explicitly."""
    config = CatalogConfig.from_env(replay_dir)
    config.scan_on_start = False
    start_metrics_server(enabled=config.metrics_enabled, port=config.metrics_port)
    return Catalog.from_config(config)
