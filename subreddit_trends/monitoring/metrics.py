"""Prometheus metrics for monitoring the subreddit trends pipeline."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Define metrics
STAGE_ATTEMPTS = Counter(
    "subreddit_trends_stage_attempts_total",
    "Number of fallback stage attempts",
    ["stage", "outcome"],
)

CACHE_LOOKUPS = Counter(
    "subreddit_trends_cache_lookups_total",
    "Result cache lookups by outcome",
    ["outcome"],
)

UPSTREAM_RESPONSES = Counter(
    "subreddit_trends_upstream_responses_total",
    "Upstream HTTP responses by status code, 0 for transport failures",
    ["status"],
)

RESOLUTIONS = Counter(
    "subreddit_trends_resolutions_total",
    "Subreddit resolutions by probe source",
    ["source"],
)

REQUEST_DURATION = Histogram(
    "subreddit_trends_request_duration_seconds",
    "Duration of upstream requests in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the trends pipeline."""

    def __init__(self, port: int = 8000):
        """
        Initialize the Prometheus exporter.

        Args:
            port: Port to expose metrics on
        """
        self.port = port
        self.server_started = False

    def start_server(self) -> None:
        """Start the Prometheus metrics server."""
        if not self.server_started:
            try:
                start_http_server(self.port)
                self.server_started = True
                logger.info(f"Started Prometheus metrics server on port {self.port}")
            except OSError as e:
                logger.error(f"Failed to start Prometheus metrics server: {str(e)}")

    def record_stage(self, stage: str, outcome: str) -> None:
        """
        Record a fallback stage attempt.

        Args:
            stage: Stage name (e.g., 'oauth', 'json', 'rss', 'html')
            outcome: 'success', 'empty', 'error', 'rate_limited' or 'timeout'
        """
        STAGE_ATTEMPTS.labels(stage=stage, outcome=outcome).inc()

    def record_cache_lookup(self, outcome: str) -> None:
        """
        Record a cache lookup.

        Args:
            outcome: 'hit', 'miss' or 'joined' (awaited an in-flight fetch)
        """
        CACHE_LOOKUPS.labels(outcome=outcome).inc()

    def record_upstream_status(self, status: int) -> None:
        """Record an upstream response status."""
        UPSTREAM_RESPONSES.labels(status=str(status)).inc()

    def record_resolution(self, source: str) -> None:
        """Record which probe produced a resolution."""
        RESOLUTIONS.labels(source=source).inc()

    def time_request(self) -> "RequestTimer":
        """
        Create a context manager for timing upstream requests.

        Returns:
            RequestTimer context manager
        """
        return RequestTimer()


class RequestTimer:
    """Context manager for timing upstream requests."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            duration = time.time() - self.start_time
            REQUEST_DURATION.observe(duration)
