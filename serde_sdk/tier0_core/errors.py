"""
serde_sdk.tier0_core.errors
────────────────────────────
Error taxonomy for encode/decode/compress failures. Every error carries a
stable machine-readable code plus the positional or type context that was
available when it was raised.

None of these are retried or recovered internally: each one is a terminal
failure for the single call that raised it.
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class SerdeError(Exception):
    """
    Base class for all serde errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - user_message: short human description
    - detail: internal context (defaults to user_message)
    - metadata: free-form keyword context
    """

    code: str = "serde_error"

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "Serialization failed.",
        detail: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.user_message = user_message
        self.detail = detail or user_message
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
            }
        }


# ── Typed error classes ───────────────────────────────────────────────────────

class ArgumentError(SerdeError):
    """A required argument was absent or out of range."""
    code = "argument_error"

    def __init__(
        self,
        argument: str,
        user_message: str | None = None,
        **metadata: Any,
    ) -> None:
        self.argument = argument
        super().__init__(
            None,
            user_message or f"Argument {argument!r} is required.",
            **metadata,
        )

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["error"]["argument"] = self.argument
        return d


class FormatError(SerdeError):
    """The input is not a well-formed encoded document."""
    code = "format_error"

    def __init__(
        self,
        user_message: str = "Malformed document.",
        lineno: int | None = None,
        colno: int | None = None,
        pos: int | None = None,
        **metadata: Any,
    ) -> None:
        self.lineno = lineno
        self.colno = colno
        self.pos = pos
        detail = user_message
        if lineno is not None:
            detail = f"{user_message} (line {lineno}, column {colno}, char {pos})"
        super().__init__(None, user_message, detail, **metadata)

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.pos is not None:
            d["error"]["position"] = {
                "line": self.lineno,
                "column": self.colno,
                "char": self.pos,
            }
        return d


class TypeResolutionError(SerdeError):
    """A type identity could not be resolved, or resolved to an incompatible type."""
    code = "type_resolution_error"

    def __init__(
        self,
        type_name: str,
        user_message: str | None = None,
        **metadata: Any,
    ) -> None:
        self.type_name = type_name
        super().__init__(
            None,
            user_message or f"Cannot resolve type {type_name!r}.",
            **metadata,
        )

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["error"]["type"] = self.type_name
        return d


class CompressionFormatError(SerdeError):
    """Compressed input is not a valid gzip stream (corrupted or truncated)."""
    code = "compression_format_error"


class ConfigurationError(SerdeError):
    """Misconfiguration detected at start-up (bad settings, clashing registrations)."""
    code = "configuration_error"


__sdk_export__ = {
    "surface": "both",
    "exports": [
        "SerdeError", "ArgumentError", "FormatError",
        "TypeResolutionError", "CompressionFormatError", "ConfigurationError",
    ],
    "description": "Error taxonomy for serialization and compression failures",
    "tier": "tier0_core",
    "module": "errors",
}
