"""
serde_sdk._registry
────────────────────
Internal module registry: the single source of truth for which modules
exist and what each one exports.

Adding a new module:
  1. Implement it in the right tier
  2. Add ``__sdk_export__`` to the module
  3. Add one tuple to TIER_MODULES below
"""
from __future__ import annotations

import importlib
from typing import Any

TIER_MODULES: list[tuple[str, str]] = [
    # tier0_core: errors, config, logging, metrics
    ("tier0_core", "errors"),
    ("tier0_core", "config"),
    ("tier0_core", "logging"),
    ("tier0_core", "metrics"),
    # tier1_runtime: type registry, compression, serializer
    ("tier1_runtime", "types"),
    ("tier1_runtime", "compress"),
    ("tier1_runtime", "serialize"),
]


def collect_exports() -> dict[str, Any]:
    """
    Import every module in ``TIER_MODULES`` and resolve the names listed in
    its ``__sdk_export__["exports"]``.

    Returns:
        Mapping of export name to object. Raises ``AttributeError`` if a
        module advertises a name it does not define.
    """
    exports: dict[str, Any] = {}

    for tier_path, module_name in TIER_MODULES:
        mod = importlib.import_module(f"serde_sdk.{tier_path}.{module_name}")
        export_meta: dict[str, Any] = getattr(mod, "__sdk_export__", {})
        for name in export_meta.get("exports", []):
            exports[name] = getattr(mod, name)

    return exports
