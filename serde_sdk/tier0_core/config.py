"""
serde_sdk.tier0_core.config
────────────────────────────
Typed configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic and prefixed with SERDE_.
Bad values fail when the config is loaded, not halfway through a call.

Minimal stack: pydantic-settings + python-dotenv
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Formatting(str, Enum):
    """Text layout of an encoded document."""

    NONE = "none"
    INDENTED = "indented"


class TypeNameHandling(str, Enum):
    """
    Which values get a ``$type`` tag. Accepted from callers for familiarity,
    but the serializer always runs with ALL.
    """

    NONE = "none"
    OBJECTS = "objects"
    ARRAYS = "arrays"
    AUTO = "auto"
    ALL = "all"


class SerdeConfig(BaseSettings):
    """
    Typed serde configuration. Every field maps to a SERDE_* env var.
    """

    model_config = SettingsConfigDict(
        env_prefix="SERDE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Text encoding ─────────────────────────────────────────────────────────
    formatting: Formatting = Formatting.NONE
    indent: int = Field(default=2, ge=0)
    sort_keys: bool = False
    ensure_ascii: bool = False
    allow_nan: bool = True
    type_name_handling: TypeNameHandling = TypeNameHandling.ALL

    # ── Compression ───────────────────────────────────────────────────────────
    compression_level: int = 6

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"

    # ── Metrics ───────────────────────────────────────────────────────────────
    metrics_enabled: bool = True

    @field_validator("compression_level")
    @classmethod
    def validate_compression_level(cls, v: int) -> int:
        if not 0 <= v <= 9:
            raise ValueError(f"compression_level must be 0..9, got {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"json", "console"}
        if v.lower() not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got {v!r}")
        return v.lower()

    @property
    def is_indented(self) -> bool:
        return self.formatting is Formatting.INDENTED


@lru_cache(maxsize=1)
def get_config() -> SerdeConfig:
    """
    Return the singleton serde config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    return SerdeConfig()


def _reset_config() -> None:
    """For tests: clear the config cache."""
    get_config.cache_clear()


__sdk_export__ = {
    "surface": "both",
    "exports": ["SerdeConfig", "get_config", "Formatting", "TypeNameHandling"],
    "description": "Typed SERDE_* configuration via pydantic-settings",
    "tier": "tier0_core",
    "module": "config",
}
