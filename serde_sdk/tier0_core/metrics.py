"""
serde_sdk.tier0_core.metrics
─────────────────────────────
Counters and histograms with standard naming and labels, plus the two
metrics every serializer call records.

Minimal stack: prometheus-client
Configure via: SERDE_METRICS_ENABLED=true|false
"""
from __future__ import annotations

import os
from typing import Callable

from prometheus_client import Counter, Histogram

from serde_sdk.tier0_core.config import get_config

# Standard labels applied to every metric
_DEFAULT_LABELS = ["service", "env"]
_SERVICE = os.getenv("APP_NAME", "serde")
_ENV = os.getenv("APP_ENV", "development")
_DEFAULT_LABEL_VALUES = {"service": _SERVICE, "env": _ENV}


def counter(name: str, description: str, labels: list[str] | None = None) -> Callable:
    """
    Create a counter with standard labels.

    Usage:
        ops_total = counter("serde_operations_total", "Operations", ["operation"])
        ops_total(operation="encode_text").inc()
    """
    all_labels = _DEFAULT_LABELS + (labels or [])
    c = Counter(name, description, all_labels)

    def _counter(**extra_labels: str) -> Counter:
        return c.labels(**_DEFAULT_LABEL_VALUES, **extra_labels)

    return _counter


def histogram(
    name: str,
    description: str,
    labels: list[str] | None = None,
    buckets: tuple = (64, 256, 1024, 4096, 16384, 65536, 262144, 1048576, 4194304),
) -> Callable:
    """
    Create a histogram with standard labels. Default buckets are byte sizes.

    Usage:
        payload = histogram("serde_payload_bytes", "Payload size", ["operation"])
        payload(operation="compress").observe(len(data))
    """
    all_labels = _DEFAULT_LABELS + (labels or [])
    h = Histogram(name, description, all_labels, buckets=buckets)

    def _histogram(**extra_labels: str) -> Histogram:
        return h.labels(**_DEFAULT_LABEL_VALUES, **extra_labels)

    return _histogram


# ── Serializer metrics ────────────────────────────────────────────────────────

operations_total = counter(
    "serde_operations_total",
    "Serializer and compression operations by outcome",
    ["operation", "outcome"],
)
payload_bytes = histogram(
    "serde_payload_bytes",
    "Size of produced or consumed payloads in bytes",
    ["operation"],
)


def record(operation: str, outcome: str, size: int | None = None) -> None:
    """Record one operation. No-op when SERDE_METRICS_ENABLED is false."""
    if not get_config().metrics_enabled:
        return
    operations_total(operation=operation, outcome=outcome).inc()
    if size is not None:
        payload_bytes(operation=operation).observe(size)


__sdk_export__ = {
    "surface": "service",
    "exports": ["counter", "histogram", "record"],
    "description": "Prometheus counters and histograms for serializer operations",
    "tier": "tier0_core",
    "module": "metrics",
}
