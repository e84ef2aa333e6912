"""
Prometheus metrics collection.

In-memory counters on a registry owned by the collector, scraped through
the /metrics endpoint.
"""

from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, Info

from .. import __version__

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for icstools.

    Each collector registers its metrics on its own registry so several
    app instances (tests, reloads) never collide.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        # Service info
        self.service_info = Info(
            "icstools_service",
            "icstools service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": __version__,
            "service": "icstools",
        })

        # Request metrics
        self.calendar_requests_total = Counter(
            "calendar_requests_total",
            "Total calendar requests",
            ["calendar", "mode", "outcome"],
            registry=self.registry,
        )

        self.calendar_processing_seconds = Histogram(
            "calendar_processing_seconds",
            "Time spent parsing, transforming and serializing a calendar",
            ["mode"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
            registry=self.registry,
        )

        # Upstream metrics
        self.upstream_fetch_seconds = Histogram(
            "upstream_fetch_seconds",
            "Upstream calendar fetch duration in seconds",
            ["calendar"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        self.upstream_bytes = Histogram(
            "upstream_document_bytes",
            "Size of fetched upstream documents",
            ["calendar"],
            buckets=[1024, 16384, 65536, 262144, 1048576, 4194304, 10485760],
            registry=self.registry,
        )

        # Transform metrics
        self.events_processed_total = Counter(
            "events_processed_total",
            "Events read from upstream documents",
            ["calendar", "mode"],
            registry=self.registry,
        )

        self.events_removed_total = Counter(
            "events_removed_total",
            "Events removed by a transform",
            ["calendar", "mode"],
            registry=self.registry,
        )

        self.calendar_errors_total = Counter(
            "calendar_errors_total",
            "Failed calendar requests by error code",
            ["calendar", "error_code"],
            registry=self.registry,
        )

        logger.info("Metrics collector initialized")

    def record_fetch(self, calendar: str, duration_seconds: float, size_bytes: int) -> None:
        self.upstream_fetch_seconds.labels(calendar=calendar).observe(duration_seconds)
        self.upstream_bytes.labels(calendar=calendar).observe(size_bytes)

    def record_transform(
        self,
        calendar: str,
        mode: str,
        events_in: int,
        events_out: int,
        processing_time_ms: float,
    ) -> None:
        """Record a successful transform."""
        self.calendar_requests_total.labels(calendar=calendar, mode=mode, outcome="success").inc()
        self.calendar_processing_seconds.labels(mode=mode).observe(processing_time_ms / 1000)
        self.events_processed_total.labels(calendar=calendar, mode=mode).inc(events_in)
        self.events_removed_total.labels(calendar=calendar, mode=mode).inc(max(0, events_in - events_out))

    def record_error(self, calendar: str, mode: str, error_code: str) -> None:
        """Record a failed calendar request."""
        self.calendar_requests_total.labels(calendar=calendar, mode=mode, outcome="error").inc()
        self.calendar_errors_total.labels(calendar=calendar, error_code=error_code).inc()
