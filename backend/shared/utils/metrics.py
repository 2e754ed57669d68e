"""
Lightweight metrics collection for the Zonera services.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
SOURCE_REQUESTS = Counter(
    "zn_source_requests_total",
    "Total upstream HTTP requests",
    ["source", "status"],
)
SOURCE_FAILURES = Counter(
    "zn_source_failures_total",
    "Source fetches that contributed no matches because of a failure",
    ["source", "reason"],
)
MALFORMED_RECORDS = Counter(
    "zn_malformed_records_total",
    "Raw source entries skipped because they could not be parsed",
    ["source"],
)
INGEST_NORMALIZATIONS = Counter(
    "zn_ingest_normalizations_total",
    "Total records normalized into canonical matches",
    ["source", "status"],
)
REFRESH_CYCLES = Counter(
    "zn_refresh_cycles_total",
    "Completed refresh cycles",
    ["outcome"],
)

# ── Histograms ──────────────────────────────────────────────────────────
SOURCE_LATENCY = Histogram(
    "zn_source_latency_seconds",
    "Upstream request latency in seconds",
    ["source"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
REFRESH_DURATION = Histogram(
    "zn_refresh_duration_seconds",
    "Wall time of one refresh cycle (all sources settled)",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ── Gauges ──────────────────────────────────────────────────────────────
BOARD_MATCHES = Gauge(
    "zn_board_matches",
    "Matches in the latest published snapshot",
    ["source", "status"],
)
LAST_REFRESH_TS = Gauge(
    "zn_last_refresh_timestamp_seconds",
    "Unix time of the latest published snapshot",
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if labels:
            histogram.labels(**labels).observe(elapsed)
        else:
            histogram.observe(elapsed)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
