"""
Structured logging configuration.

Provides JSON or text logs with trace_id support so every line about one
replay (ingest, enrichment, playback) can be correlated.

Environment Variables:
    AWBW_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    AWBW_LOG_FORMAT: Log format (json, text) - default: text

Usage:
    from awbw_replay.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, trace_id="replay-42")
    logger.info("Replay ingested")
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger


class TraceIDFilter(logging.Filter):
    """
    Logging filter that adds trace_id to all log records.

    Ensures all logs have a trace_id field, even if not set via LoggerAdapter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "N/A"  # type: ignore
        return True


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure root logger.

    Arguments override AWBW_LOG_LEVEL / AWBW_LOG_FORMAT.
    """
    log_level = (level or os.getenv("AWBW_LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.getenv("AWBW_LOG_FORMAT", "text")).lower()

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    numeric_level = level_map.get(log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    # Handler-level so records propagated from child loggers get a trace_id too
    handler.addFilter(TraceIDFilter())

    if fmt == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [trace_id=%(trace_id)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger with optional trace_id for correlation.

    Args:
        name: Logger name (typically __name__)
        trace_id: Trace ID for correlating logs (typically "replay-<id>")
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"trace_id": trace_id or "N/A"})
