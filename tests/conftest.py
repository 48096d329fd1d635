"""Global pytest configuration and fixtures.

Each test gets its own Prometheus registry so counter assertions never
see increments from other tests.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from prometheus_client import CollectorRegistry

from mediastore.observability import metrics


@pytest.fixture(autouse=True)
def metrics_registry(monkeypatch: pytest.MonkeyPatch) -> Iterator[metrics.MetricsRegistry]:
    """Replace the global metrics registry with a fresh, isolated one."""
    registry = metrics.MetricsRegistry()
    registry.initialize(enabled=True, registry=CollectorRegistry())
    monkeypatch.setattr(metrics, "metrics_registry", registry)
    yield registry


@pytest.fixture
def prometheus(metrics_registry: metrics.MetricsRegistry) -> CollectorRegistry:
    """The CollectorRegistry backing this test's counters."""
    assert metrics_registry._registry is not None
    return metrics_registry._registry
