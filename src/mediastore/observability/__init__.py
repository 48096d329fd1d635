"""Observability for mediastore: structured logging and Prometheus metrics."""

from mediastore.observability.logging import LogContext, configure_logging
from mediastore.observability.metrics import MetricsRegistry, get_metrics, init_metrics

__all__ = [
    "LogContext",
    "configure_logging",
    "MetricsRegistry",
    "get_metrics",
    "init_metrics",
]
