"""
serde_sdk test configuration.

Tests run against the default config with metrics on and console logs.
Override by setting environment variables before running pytest.
"""
from __future__ import annotations

import os

import pytest

# ── Force test settings ───────────────────────────────────────────────────
# These must be set before any serde_sdk modules are imported.

os.environ.setdefault("SERDE_LOG_LEVEL", "WARNING")
os.environ.setdefault("SERDE_LOG_FORMAT", "console")
os.environ.setdefault("SERDE_METRICS_ENABLED", "true")
os.environ.setdefault("APP_ENV", "test")


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_config_cache():
    """Each test sees env changes made through monkeypatch."""
    from serde_sdk.tier0_core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


@pytest.fixture
def serializer():
    """A serializer on the default registry and default settings."""
    from serde_sdk.tier0_core.config import SerdeConfig
    from serde_sdk.tier1_runtime.serialize import OrchestrationSerializer

    return OrchestrationSerializer(SerdeConfig())


@pytest.fixture
def registry():
    """A fresh registry with only the builtin codecs."""
    from serde_sdk.tier1_runtime.types import new_registry

    return new_registry()
