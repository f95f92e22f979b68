"""
serde_sdk.tier0_core.logging
─────────────────────────────
Structured logs with levels and context binding, routed through the stdlib
"serde_sdk" logger so host applications keep control of the root logger.

Minimal stack: structlog (stdout JSON or console)
Configure via: SERDE_LOG_LEVEL, SERDE_LOG_FORMAT=json|console
"""
from __future__ import annotations

import logging
import sys
import threading
from typing import Any

import structlog

from serde_sdk.tier0_core.config import get_config


# ── Configuration ─────────────────────────────────────────────────────────────

def _configure_structlog() -> None:
    config = get_config()
    log_level = config.log_level.upper()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if config.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    serde_logger = logging.getLogger("serde_sdk")
    serde_logger.addHandler(handler)
    serde_logger.setLevel(getattr(logging, log_level, logging.INFO))


# ── Public API ────────────────────────────────────────────────────────────────

_configured = False
_configure_lock = threading.Lock()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Return a structured logger bound to the given name.

    Usage:
        log = get_logger(__name__)
        log.debug("serializer.encode", type_tag="builtins.int", size=42)
    """
    global _configured
    if not _configured:
        with _configure_lock:
            if not _configured:
                _configure_structlog()
                _configured = True
    return structlog.get_logger(name or __name__)


def bind_context(**kwargs: Any) -> None:
    """
    Bind key-value pairs to the current thread/async context.
    All subsequent log calls in this context will include these fields.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all context-bound log fields."""
    structlog.contextvars.clear_contextvars()


__sdk_export__ = {
    "surface": "both",
    "exports": ["get_logger", "bind_context", "clear_context"],
    "description": "structlog-based structured logging",
    "tier": "tier0_core",
    "module": "logging",
}
