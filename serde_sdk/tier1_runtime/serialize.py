"""
serde_sdk.tier1_runtime.serialize
──────────────────────────────────
Type-faithful JSON serialization. Every value is written together with its
exact runtime type tag, so decoding into a more general expected type (a base
class, ``object``) still rebuilds the original concrete type.

    serializer = OrchestrationSerializer()
    text = serializer.encode_text({"foo": "bar"})
    serializer.decode(text, object)            # → {"foo": "bar"} (a dict)

Type metadata is always embedded. SERDE_TYPE_NAME_HANDLING is accepted but
never weakens that; the policy is fixed when the serializer is built.

Configure via: SERDE_FORMATTING=none|indented, SERDE_INDENT, SERDE_SORT_KEYS,
               SERDE_ENSURE_ASCII, SERDE_ALLOW_NAN
"""
from __future__ import annotations

import gzip
import io
import json
import types
import typing
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterator, TextIO, Type, TypeVar

from pydantic import PydanticSchemaGenerationError, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from serde_sdk.tier0_core.config import Formatting, SerdeConfig, TypeNameHandling, get_config
from serde_sdk.tier0_core.errors import (
    ArgumentError,
    CompressionFormatError,
    FormatError,
    SerdeError,
    TypeResolutionError,
)
from serde_sdk.tier0_core.logging import get_logger
from serde_sdk.tier0_core.metrics import record
from serde_sdk.tier1_runtime import compress as _compress
from serde_sdk.tier1_runtime.types import TypeRegistry, default_registry, is_envelope, qualified_name

T = TypeVar("T")

log = get_logger(__name__)

# Reading tolerates a leading BOM; writing never emits one.
_WRITE_ENCODING = "utf-8"
_READ_ENCODING = "utf-8-sig"


@dataclass(frozen=True)
class EncodingPolicy:
    """
    Immutable encoding settings captured once per serializer.
    ``type_name_handling`` is not an init argument: it is always ALL.
    """

    formatting: Formatting = Formatting.NONE
    indent: int = 2
    sort_keys: bool = False
    ensure_ascii: bool = False
    allow_nan: bool = True
    compression_level: int = 6
    type_name_handling: TypeNameHandling = field(default=TypeNameHandling.ALL, init=False)

    @classmethod
    def from_config(cls, config: SerdeConfig) -> "EncodingPolicy":
        return cls(
            formatting=config.formatting,
            indent=config.indent,
            sort_keys=config.sort_keys,
            ensure_ascii=config.ensure_ascii,
            allow_nan=config.allow_nan,
            compression_level=config.compression_level,
        )

    def dump_kwargs(self, formatting: Formatting | None = None) -> dict[str, Any]:
        formatting = formatting or self.formatting
        if formatting is Formatting.INDENTED:
            layout: dict[str, Any] = {"indent": self.indent}
        else:
            layout = {"indent": None, "separators": (",", ":")}
        return {
            "sort_keys": self.sort_keys,
            "ensure_ascii": self.ensure_ascii,
            "allow_nan": self.allow_nan,
            **layout,
        }


@contextmanager
def _tracked(operation: str) -> Iterator[None]:
    try:
        yield
    except SerdeError as exc:
        record(operation, "error")
        log.debug(f"serializer.{operation}.failed", code=exc.code, detail=exc.detail)
        raise


class OrchestrationSerializer:
    """
    Encodes values with embedded type identity and decodes them back.

    Holds only construction-time state (the frozen policy and a registry
    reference), so one instance can be shared across threads.
    """

    def __init__(
        self,
        settings: SerdeConfig | None = None,
        registry: TypeRegistry | None = None,
    ) -> None:
        config = settings if settings is not None else get_config()
        self._policy = EncodingPolicy.from_config(config)
        self._registry = registry if registry is not None else default_registry()
        if config.type_name_handling is not TypeNameHandling.ALL:
            log.warning(
                "serializer.type_name_handling_overridden",
                requested=config.type_name_handling.value,
                effective=self._policy.type_name_handling.value,
            )
        log.debug(
            "serializer.configured",
            formatting=self._policy.formatting.value,
            compression_level=self._policy.compression_level,
            registered_types=len(self._registry),
        )

    @property
    def policy(self) -> EncodingPolicy:
        return self._policy

    @property
    def registry(self) -> TypeRegistry:
        return self._registry

    # ── Encode ────────────────────────────────────────────────────────────────

    def encode_text(self, value: Any, formatting: Formatting | None = None) -> str:
        """
        Encode *value* as a JSON document. *formatting* overrides the
        configured layout for this call only.
        """
        with _tracked("encode_text"):
            document = self._registry.to_document(value)
            try:
                text = json.dumps(document, **self._policy.dump_kwargs(formatting))
            except ValueError as exc:
                raise ArgumentError("value", f"Value cannot be encoded: {exc}") from exc
        log.debug("serializer.encode_text", type_tag=self._registry.tag_of(document), size=len(text))
        record("encode_text", "ok", len(text))
        return text

    def encode_bytes(self, value: Any) -> bytes:
        """Encode *value* straight to BOM-free UTF-8 bytes."""
        with _tracked("encode_bytes"):
            document = self._registry.to_document(value)
            buffer = io.BytesIO()
            with io.TextIOWrapper(buffer, encoding=_WRITE_ENCODING, newline="") as writer:
                try:
                    json.dump(document, writer, **self._policy.dump_kwargs())
                except ValueError as exc:
                    raise ArgumentError("value", f"Value cannot be encoded: {exc}") from exc
                writer.flush()
                data = buffer.getvalue()
        log.debug("serializer.encode_bytes", type_tag=self._registry.tag_of(document), size=len(data))
        record("encode_bytes", "ok", len(data))
        return data

    # ── Decode ────────────────────────────────────────────────────────────────

    def decode(self, data: str | None, expected_type: Type[T] = object) -> T:
        """
        Decode a JSON document. The embedded type tag wins; *expected_type* is
        checked for compatibility and only drives construction when the
        document carries no tag. ``None`` in, ``None`` out.
        """
        if data is None:
            return None  # type: ignore[return-value]
        with _tracked("decode"):
            try:
                document = json.loads(data)
            except json.JSONDecodeError as exc:
                raise _format_error(exc) from exc
            value = self._materialize(document, expected_type)
        record("decode", "ok", len(data))
        return value

    def decode_bytes(self, buffer: bytes | None, expected_type: Type[T] | None) -> T:
        """Decode a UTF-8 document. Both arguments are required."""
        _require(buffer, expected_type)
        with _tracked("decode_bytes"):
            with io.BytesIO(buffer) as stream, io.TextIOWrapper(stream, encoding=_READ_ENCODING) as reader:
                document = _load(reader)
            value = self._materialize(document, expected_type)
        record("decode_bytes", "ok", len(buffer))
        return value

    def decode_compressed_bytes(self, buffer: bytes | None, expected_type: Type[T] | None) -> T:
        """Gunzip then decode, streaming through one reader chain."""
        _require(buffer, expected_type)
        with _tracked("decode_compressed_bytes"):
            try:
                with io.BytesIO(buffer) as source, \
                        gzip.GzipFile(fileobj=source, mode="rb") as stream, \
                        io.TextIOWrapper(stream, encoding=_READ_ENCODING) as reader:
                    document = _load(reader)
            except _compress.GZIP_READ_ERRORS as exc:
                raise CompressionFormatError(
                    user_message="Compressed data is not a valid gzip stream.",
                    detail=f"gzip read failed: {exc}",
                ) from exc
            value = self._materialize(document, expected_type)
        record("decode_compressed_bytes", "ok", len(buffer))
        return value

    def decode_from_bytes(
        self,
        buffer: bytes | None,
        expected_type: Type[T] | None,
        compressed: bool = False,
    ) -> T:
        if compressed:
            return self.decode_compressed_bytes(buffer, expected_type)
        return self.decode_bytes(buffer, expected_type)

    # ── Compression ───────────────────────────────────────────────────────────

    def compress(self, data: bytes | None) -> bytes | None:
        return _compress.compress(data, self._policy.compression_level)

    def decompress(self, data: bytes | None) -> bytes | None:
        return _compress.decompress(data)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _materialize(self, document: Any, expected_type: Any) -> Any:
        if document is None:
            return None
        if is_envelope(document):
            tag = self._registry.tag_of(document)
            if tag is not None:
                cls = self._registry.resolve(tag).cls
                if not _is_assignable(cls, expected_type):
                    raise TypeResolutionError(
                        tag,
                        f"Type {tag!r} is not assignable to {_type_name(expected_type)}.",
                    )
            return self._registry.from_document(document)
        return self._fallback(document, expected_type)

    def _fallback(self, document: Any, expected_type: Any) -> Any:
        """Build *expected_type* from an untagged document."""
        if expected_type is object or expected_type is Any:
            return document
        codec = self._registry.codec_for_type(expected_type)
        if codec is not None:
            return codec.load(document, self._registry.from_document)
        try:
            return TypeAdapter(expected_type).validate_python(document)
        except PydanticValidationError as exc:
            raise FormatError(
                f"Document does not match {_type_name(expected_type)}: "
                f"{exc.error_count()} error(s)."
            ) from exc
        except PydanticSchemaGenerationError as exc:
            raise TypeResolutionError(
                _type_name(expected_type),
                f"No codec or schema for {_type_name(expected_type)}.",
            ) from exc


# ── Helpers ───────────────────────────────────────────────────────────────────

def _require(buffer: bytes | None, expected_type: Any) -> None:
    if buffer is None:
        raise ArgumentError("buffer")
    if expected_type is None:
        raise ArgumentError("expected_type")


def _load(reader: TextIO) -> Any:
    try:
        return json.load(reader)
    except json.JSONDecodeError as exc:
        raise _format_error(exc) from exc
    except UnicodeDecodeError as exc:
        raise FormatError(f"Invalid UTF-8: {exc.reason}.") from exc


def _format_error(exc: json.JSONDecodeError) -> FormatError:
    return FormatError(exc.msg, lineno=exc.lineno, colno=exc.colno, pos=exc.pos)


def _is_assignable(cls: type, expected: Any) -> bool:
    if expected is object or expected is Any:
        return True
    origin = typing.get_origin(expected)
    if origin is typing.Union or origin is types.UnionType:
        return any(_is_assignable(cls, arg) for arg in typing.get_args(expected))
    if origin is typing.Annotated:
        return _is_assignable(cls, typing.get_args(expected)[0])
    if origin is not None:
        expected = origin
    if isinstance(expected, type):
        try:
            return issubclass(cls, expected)
        except TypeError:
            # Non-runtime_checkable Protocol: structural, nothing to check
            # against a class.
            if getattr(expected, "_is_protocol", False):
                return True
            return False
    return True


def _type_name(tp: Any) -> str:
    return qualified_name(tp) if isinstance(tp, type) else repr(tp)


# ── Module-level shortcuts ────────────────────────────────────────────────────

@lru_cache(maxsize=1)
def get_serializer() -> OrchestrationSerializer:
    """Return the process-wide serializer built from get_config()."""
    return OrchestrationSerializer()


def serialize(value: Any) -> bytes:
    """
    Encode *value* to UTF-8 bytes with the default serializer.

    Usage:
        data = serialize({"foo": "bar"})
    """
    return get_serializer().encode_bytes(value)


def deserialize(data: bytes | str, expected_type: Type[T] = object) -> T:
    """
    Decode bytes or text produced by serialize()/encode_text().

    Usage:
        order = deserialize(raw_bytes, Order)
    """
    if isinstance(data, str):
        return get_serializer().decode(data, expected_type)
    return get_serializer().decode_bytes(data, expected_type)


__sdk_export__ = {
    "surface": "both",
    "exports": ["OrchestrationSerializer", "EncodingPolicy", "serialize", "deserialize"],
    "description": "Type-faithful JSON serialization with optional gzip",
    "tier": "tier1_runtime",
    "module": "serialize",
}
