"""Logging configuration for product-metrics.

LOGS vs METRICS
----------------
Both describe what the service did, at different resolutions:

  LOGS    — one line per event.  "GET /products/{product_id} → 404 (3.1ms)".
            Good for "what happened to THIS request?"

  METRICS — aggregated numbers.  The duration histogram and error counters
            in metrics/inventory.py.  Good for "how slow is the p95 right
            now?" and "how often does the price lookup fail?"

The access line written by RequestContextMiddleware carries the same
route template and status code that the duration histogram is tagged
with, so a spike on a dashboard can be traced back to individual lines.

TWO FORMATTERS
---------------
  _ContainerFormatter — single-line, human-readable, for local dev.
  _JsonFormatter      — one JSON object per line for log aggregation.
                        Set LOG_JSON=true to switch.
"""

from __future__ import annotations

import json
import logging
import sys


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    WARNING and above get a [filename:lineno] suffix.
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # Milliseconds go before the +0000 offset
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter.

    Request fields attached by RequestContextMiddleware become top-level
    keys, so the aggregator can filter on route or status_code directly.
    """

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "route",
        "status_code",
        "duration_ms",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger: one stdout handler, chosen formatter.

    Unknown level names fall back to INFO.  uvicorn and HTTP client
    loggers are held at WARNING or above so they don't drown the access
    lines at DEBUG.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
