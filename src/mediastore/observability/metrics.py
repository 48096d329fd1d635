"""Prometheus metrics for mediastore.

Provides counters for:
- Upload calls (by provider and outcome)
- Deduplicated uploads and lost write races
- Verifications (by provider, existence and integrity status)
- Deletions (by provider and outcome)

Usage:
    from mediastore.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.uploads_total.labels(provider="r2", outcome="verified").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, generate_latest

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""
        pass


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    uploads_total: Any = field(default_factory=NoOpMetric)
    upload_dedup_total: Any = field(default_factory=NoOpMetric)
    write_races_total: Any = field(default_factory=NoOpMetric)
    verifications_total: Any = field(default_factory=NoOpMetric)
    deletions_total: Any = field(default_factory=NoOpMetric)

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, enabled: bool = True, registry: CollectorRegistry | None = None) -> None:
        """Create the Prometheus collectors (once)."""
        if self._initialized:
            return

        if not enabled:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = registry or REGISTRY

        self.uploads_total = Counter(
            "mediastore_uploads_total",
            "Upload calls by final outcome",
            ["provider", "outcome"],
            registry=self._registry,
        )
        self.upload_dedup_total = Counter(
            "mediastore_upload_dedup_total",
            "Uploads skipped because identical content was already stored",
            ["provider"],
            registry=self._registry,
        )
        self.write_races_total = Counter(
            "mediastore_write_races_total",
            "Conditional writes rejected because a concurrent writer won",
            ["provider"],
            registry=self._registry,
        )
        self.verifications_total = Counter(
            "mediastore_verifications_total",
            "Metadata-only verifications",
            ["provider", "exists", "integrity"],
            registry=self._registry,
        )
        self.deletions_total = Counter(
            "mediastore_deletions_total",
            "Delete calls by outcome",
            ["provider", "outcome"],
            registry=self._registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def init_metrics(enabled: bool) -> MetricsRegistry:
    """Initialize the global registry from a settings flag.

    Only the first initialization takes effect; later calls return the
    registry unchanged.
    """
    metrics_registry.initialize(enabled=enabled)
    return metrics_registry
