"""Tests for tier0_core modules."""
from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from serde_sdk.tier0_core.config import (
    Formatting,
    SerdeConfig,
    TypeNameHandling,
    get_config,
)
from serde_sdk.tier0_core.errors import (
    ArgumentError,
    CompressionFormatError,
    ConfigurationError,
    FormatError,
    SerdeError,
    TypeResolutionError,
)


# ── errors ─────────────────────────────────────────────────────────────────

class TestErrors:
    def test_serde_error_has_code(self):
        e = SerdeError("custom_code", user_message="Something broke")
        assert e.code == "custom_code"
        assert "Something broke" in str(e)

    def test_subclass_codes(self):
        assert ArgumentError("buffer").code == "argument_error"
        assert FormatError().code == "format_error"
        assert TypeResolutionError("x.Y").code == "type_resolution_error"
        assert CompressionFormatError().code == "compression_format_error"
        assert ConfigurationError().code == "configuration_error"

    def test_all_errors_are_serde_errors(self):
        for err in (
            ArgumentError("buffer"),
            FormatError(),
            TypeResolutionError("x.Y"),
            CompressionFormatError(),
            ConfigurationError(),
        ):
            assert isinstance(err, SerdeError)

    def test_argument_error_names_argument(self):
        e = ArgumentError("expected_type")
        assert e.argument == "expected_type"
        assert "expected_type" in str(e)
        assert e.to_dict()["error"]["argument"] == "expected_type"

    def test_format_error_position_in_detail(self):
        e = FormatError("Expecting value", lineno=1, colno=5, pos=4)
        assert "line 1, column 5" in str(e)
        assert e.to_dict()["error"]["position"] == {"line": 1, "column": 5, "char": 4}

    def test_format_error_without_position(self):
        e = FormatError("bad envelope")
        assert str(e) == "bad envelope"
        assert "position" not in e.to_dict()["error"]

    def test_type_resolution_error_names_type(self):
        e = TypeResolutionError("app.models.Missing")
        assert e.type_name == "app.models.Missing"
        assert "app.models.Missing" in str(e)
        assert e.to_dict()["error"]["type"] == "app.models.Missing"

    def test_metadata_kept(self):
        e = CompressionFormatError(user_message="bad", size=12)
        assert e.metadata == {"size": 12}


# ── config ─────────────────────────────────────────────────────────────────

class TestConfig:
    def test_defaults(self):
        config = SerdeConfig()
        assert config.formatting is Formatting.NONE
        assert config.type_name_handling is TypeNameHandling.ALL
        assert config.compression_level == 6
        assert not config.is_indented

    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("SERDE_FORMATTING", "indented")
        monkeypatch.setenv("SERDE_INDENT", "4")
        monkeypatch.setenv("SERDE_COMPRESSION_LEVEL", "9")
        config = SerdeConfig()
        assert config.is_indented
        assert config.indent == 4
        assert config.compression_level == 9

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_invalid_compression_level(self):
        with pytest.raises(PydanticValidationError):
            SerdeConfig(compression_level=12)

    def test_invalid_log_format(self):
        with pytest.raises(PydanticValidationError):
            SerdeConfig(log_format="xml")

    def test_log_format_normalised(self):
        assert SerdeConfig(log_format="CONSOLE").log_format == "console"


# ── metrics ────────────────────────────────────────────────────────────────

class TestMetrics:
    def _count(self, operation: str, outcome: str) -> float:
        from prometheus_client import REGISTRY

        from serde_sdk.tier0_core import metrics

        value = REGISTRY.get_sample_value(
            "serde_operations_total",
            {
                "service": metrics._SERVICE,
                "env": metrics._ENV,
                "operation": operation,
                "outcome": outcome,
            },
        )
        return value or 0.0

    def test_record_increments_counter(self):
        from serde_sdk.tier0_core.metrics import record

        before = self._count("unit_test", "ok")
        record("unit_test", "ok", 10)
        assert self._count("unit_test", "ok") == before + 1

    def test_record_disabled(self, monkeypatch):
        from serde_sdk.tier0_core.config import _reset_config
        from serde_sdk.tier0_core.metrics import record

        monkeypatch.setenv("SERDE_METRICS_ENABLED", "false")
        _reset_config()
        before = self._count("unit_test_disabled", "ok")
        record("unit_test_disabled", "ok")
        assert self._count("unit_test_disabled", "ok") == before


# ── logging ────────────────────────────────────────────────────────────────

class TestLogging:
    def test_get_logger_returns_bound_logger(self):
        from serde_sdk.tier0_core.logging import get_logger

        log = get_logger("serde_sdk.test")
        log.info("test.event", key="value")

    def test_bind_and_clear_context(self):
        import structlog

        from serde_sdk.tier0_core.logging import bind_context, clear_context

        bind_context(call_id="c-1")
        assert structlog.contextvars.get_contextvars()["call_id"] == "c-1"
        clear_context()
        assert "call_id" not in structlog.contextvars.get_contextvars()

    def test_concurrent_first_use_configures_once(self, monkeypatch):
        import threading
        import time
        from concurrent.futures import ThreadPoolExecutor

        from serde_sdk.tier0_core import logging as serde_logging

        calls = []
        start = threading.Barrier(8)

        def slow_configure():
            calls.append(1)
            time.sleep(0.05)

        monkeypatch.setattr(serde_logging, "_configured", False)
        monkeypatch.setattr(serde_logging, "_configure_structlog", slow_configure)

        def first_use(i):
            start.wait()
            return serde_logging.get_logger(f"serde_sdk.thread{i}")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(first_use, range(8)))
        assert len(calls) == 1
