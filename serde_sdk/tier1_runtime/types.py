"""
serde_sdk.tier1_runtime.types
──────────────────────────────
Type registry: the explicit mapping from a stable type tag to the codec that
knows how to take an instance apart and build it again. The decoder only ever
instantiates types found here; nothing is imported or looked up by name at
decode time.

Every value becomes an envelope:

    {"$type": "builtins.int", "$value": 32}
    {"$type": "builtins.list", "$value": [{"$type": "builtins.int", "$value": 1}]}
    {"$type": "builtins.object"}

Lookup is by exact runtime type, so a ``bool`` is never mistaken for an
``int`` and a subclass needs its own registration.

Usage:
    from serde_sdk import register

    @register
    @dataclass
    class Point:
        x: int
        y: int

    @register(tag="shapes.circle")
    class Circle(Shape): ...
"""
from __future__ import annotations

import base64
import dataclasses
import datetime
import decimal
import enum
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel, ValidationError as PydanticValidationError

from serde_sdk.tier0_core.errors import (
    ArgumentError,
    ConfigurationError,
    FormatError,
    TypeResolutionError,
)


TYPE_KEY = "$type"
VALUE_KEY = "$value"

Encode = Callable[[Any], Any]
Decode = Callable[[Any], Any]


class _NoValue:
    """Marker returned by a dump function whose type carries no field data."""

    def __repr__(self) -> str:
        return "NO_VALUE"


NO_VALUE = _NoValue()


@dataclass(frozen=True)
class TypeCodec:
    """
    How one concrete type is written and rebuilt.

    ``dump(value, encode)`` returns the JSON payload; ``encode`` turns a child
    value into its envelope. ``load(payload, decode)`` rebuilds the instance;
    ``decode`` turns a child envelope back into a value.
    """

    tag: str
    cls: type
    dump: Callable[[Any, Encode], Any]
    load: Callable[[Any, Decode], Any]


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


# ── Registry ──────────────────────────────────────────────────────────────────

class TypeRegistry:
    """Tag → codec and class → codec maps. Populate at start-up, read thereafter."""

    def __init__(self) -> None:
        self._by_tag: dict[str, TypeCodec] = {}
        self._by_cls: dict[type, TypeCodec] = {}
        self._lock = threading.Lock()

    def __contains__(self, cls: object) -> bool:
        return cls in self._by_cls

    def __len__(self) -> int:
        return len(self._by_tag)

    def add(self, codec: TypeCodec) -> TypeCodec:
        with self._lock:
            existing = self._by_tag.get(codec.tag)
            if existing is not None and existing.cls is not codec.cls:
                raise ConfigurationError(
                    user_message=f"Type tag {codec.tag!r} is already registered.",
                    detail=(
                        f"Tag {codec.tag!r} maps to {qualified_name(existing.cls)}, "
                        f"cannot rebind it to {qualified_name(codec.cls)}"
                    ),
                )
            previous = self._by_cls.get(codec.cls)
            if previous is not None and previous.tag != codec.tag:
                del self._by_tag[previous.tag]
            self._by_tag[codec.tag] = codec
            self._by_cls[codec.cls] = codec
        return codec

    def register(
        self,
        cls: type | None = None,
        *,
        tag: str | None = None,
        encode: Callable[[Any], Any] | None = None,
        decode: Callable[[Any], Any] | None = None,
    ) -> Any:
        """
        Register a class. Works bare (``@register``), with options
        (``@register(tag="x")``) or as a direct call (``register(cls)``).

        Dataclasses and pydantic models get field codecs automatically. Plain
        classes are written from their instance ``__dict__``. Pass ``encode``
        and ``decode`` together to control the payload yourself: ``encode``
        may return any registered value and ``decode`` receives it back.
        """
        if (encode is None) != (decode is None):
            raise ConfigurationError(
                user_message="encode and decode must be given together."
            )

        def _apply(target: type) -> type:
            self.add(_build_codec(target, tag or qualified_name(target), encode, decode))
            return target

        if cls is None:
            return _apply
        return _apply(cls)

    def resolve(self, tag: str) -> TypeCodec:
        codec = self._by_tag.get(tag)
        if codec is None:
            raise TypeResolutionError(tag, f"Type {tag!r} is not registered.")
        return codec

    def codec_for_value(self, value: Any) -> TypeCodec:
        codec = self._by_cls.get(type(value))
        if codec is None:
            name = qualified_name(type(value))
            raise TypeResolutionError(
                name, f"Cannot encode unregistered type {name!r}."
            )
        return codec

    def codec_for_type(self, cls: type) -> TypeCodec | None:
        return self._by_cls.get(cls)

    # ── Envelope walk ─────────────────────────────────────────────────────────

    def to_document(self, value: Any) -> Any:
        """Turn a value into its JSON-ready envelope tree."""
        if value is None:
            return None
        codec = self.codec_for_value(value)
        payload = codec.dump(value, self.to_document)
        if payload is NO_VALUE:
            return {TYPE_KEY: codec.tag}
        return {TYPE_KEY: codec.tag, VALUE_KEY: payload}

    def from_document(self, document: Any) -> Any:
        """
        Rebuild a value from an envelope tree. Anything that is not an
        envelope is returned as parsed.
        """
        if not is_envelope(document):
            return document
        tag = document[TYPE_KEY]
        if not isinstance(tag, str):
            raise FormatError(f"{TYPE_KEY} must be a string, got {type(tag).__name__}.")
        extra = set(document) - {TYPE_KEY, VALUE_KEY}
        if extra:
            raise FormatError(
                f"Unexpected keys in envelope for {tag!r}: {sorted(extra)}."
            )
        codec = self.resolve(tag)
        return codec.load(document.get(VALUE_KEY, NO_VALUE), self.from_document)

    def tag_of(self, document: Any) -> str | None:
        if is_envelope(document) and isinstance(document[TYPE_KEY], str):
            return document[TYPE_KEY]
        return None


def is_envelope(document: Any) -> bool:
    return isinstance(document, dict) and TYPE_KEY in document


# ── Codec builders ────────────────────────────────────────────────────────────

def _build_codec(
    cls: type,
    tag: str,
    encode: Callable[[Any], Any] | None,
    decode: Callable[[Any], Any] | None,
) -> TypeCodec:
    if encode is not None and decode is not None:
        return TypeCodec(
            tag,
            cls,
            lambda v, enc: enc(encode(v)),
            lambda p, dec: decode(dec(_require_value(p, tag))),
        )
    if issubclass(cls, enum.Enum):
        return _enum_codec(cls, tag)
    if dataclasses.is_dataclass(cls):
        return _dataclass_codec(cls, tag)
    if issubclass(cls, BaseModel):
        return _model_codec(cls, tag)
    base = next((b for b in cls.__mro__ if b in _SUBCLASSABLE_BASES), None)
    if base is not None:
        return _builtin_subclass_codec(cls, base, tag)
    if issubclass(cls, _OPAQUE_BASES):
        raise ConfigurationError(
            user_message=f"{qualified_name(cls)} extends a builtin value type; pass encode/decode.",
        )
    if "__slots__" in cls.__dict__ and "__dict__" not in cls.__slots__:
        raise ConfigurationError(
            user_message=f"{qualified_name(cls)} uses __slots__; pass encode/decode.",
        )
    return _plain_codec(cls, tag)


def _require_value(payload: Any, tag: str) -> Any:
    if payload is NO_VALUE:
        raise FormatError(f"Envelope for {tag!r} is missing {VALUE_KEY}.")
    return payload


def _require_fields(payload: Any, tag: str) -> dict:
    payload = _require_value(payload, tag)
    if not isinstance(payload, dict):
        raise FormatError(
            f"{tag!r} expects an object payload, got {type(payload).__name__}."
        )
    return payload


def _dataclass_codec(cls: type, tag: str) -> TypeCodec:
    fields = dataclasses.fields(cls)

    def dump(value: Any, enc: Encode) -> dict:
        return {f.name: enc(getattr(value, f.name)) for f in fields}

    def load(payload: Any, dec: Decode) -> Any:
        data = _require_fields(payload, tag)
        init_args = {}
        late = {}
        for f in fields:
            if f.name not in data:
                continue
            target = init_args if f.init else late
            target[f.name] = dec(data[f.name])
        try:
            obj = cls(**init_args)
        except TypeError as exc:
            raise FormatError(f"Cannot build {tag!r}: {exc}") from exc
        for name, val in late.items():
            object.__setattr__(obj, name, val)
        return obj

    return TypeCodec(tag, cls, dump, load)


def _model_codec(cls: type[BaseModel], tag: str) -> TypeCodec:
    def dump(value: BaseModel, enc: Encode) -> dict:
        return {name: enc(getattr(value, name)) for name in type(value).model_fields}

    def load(payload: Any, dec: Decode) -> BaseModel:
        data = _require_fields(payload, tag)
        try:
            # Keys are field names, which aliased fields only accept with by_name.
            return cls.model_validate({k: dec(v) for k, v in data.items()}, by_name=True)
        except PydanticValidationError as exc:
            raise FormatError(f"Cannot build {tag!r}: {exc.error_count()} invalid field(s).") from exc

    return TypeCodec(tag, cls, dump, load)


def _plain_codec(cls: type, tag: str) -> TypeCodec:
    def dump(value: Any, enc: Encode) -> dict:
        return {k: enc(v) for k, v in vars(value).items()}

    def load(payload: Any, dec: Decode) -> Any:
        data = _require_fields(payload, tag)
        obj = cls.__new__(cls)
        obj.__dict__.update({k: dec(v) for k, v in data.items()})
        return obj

    return TypeCodec(tag, cls, dump, load)


def _enum_codec(cls: type[enum.Enum], tag: str) -> TypeCodec:
    def load(payload: Any, dec: Decode) -> enum.Enum:
        raw = dec(_require_value(payload, tag))
        try:
            return cls(raw)
        except ValueError as exc:
            raise FormatError(f"{raw!r} is not a member of {tag!r}.") from exc

    return TypeCodec(tag, cls, lambda v, enc: enc(v.value), load)


def _builtin_subclass_codec(cls: type, base: type, tag: str) -> TypeCodec:
    """
    Subclass of a builtin container or scalar: the contents go through the
    base type's codec, instance attributes go alongside.
    """
    base_codec = _BUILTIN_CODECS[base]
    # namedtuple constructors take positional fields, not one iterable.
    build = getattr(cls, "_make", cls)

    def dump(value: Any, enc: Encode) -> dict:
        payload = {"data": base_codec.dump(value, enc)}
        attrs = getattr(value, "__dict__", None)
        if attrs:
            payload["attrs"] = {k: enc(v) for k, v in attrs.items()}
        return payload

    def load(payload: Any, dec: Decode) -> Any:
        data = _require_fields(payload, tag)
        if "data" not in data:
            raise FormatError(f"Payload for {tag!r} is missing 'data'.")
        contents = base_codec.load(data["data"], dec)
        try:
            obj = build(contents)
        except TypeError as exc:
            raise FormatError(f"Cannot build {tag!r}: {exc}") from exc
        attrs = data.get("attrs", {})
        if not isinstance(attrs, dict):
            raise FormatError(f"'attrs' for {tag!r} must be an object.")
        if attrs:
            obj.__dict__.update({k: dec(v) for k, v in attrs.items()})
        return obj

    return TypeCodec(tag, cls, dump, load)


# ── Builtin codecs ────────────────────────────────────────────────────────────

def _scalar(cls: type, accepts: tuple[type, ...], rejects: tuple[type, ...] = ()) -> TypeCodec:
    tag = qualified_name(cls)

    def load(payload: Any, dec: Decode) -> Any:
        payload = _require_value(payload, tag)
        if not isinstance(payload, accepts) or isinstance(payload, rejects):
            raise FormatError(f"{tag!r} cannot hold {type(payload).__name__} payload.")
        return cls(payload)

    return TypeCodec(tag, cls, lambda v, enc: v, load)


def _sequence(cls: type) -> TypeCodec:
    tag = qualified_name(cls)

    def load(payload: Any, dec: Decode) -> Any:
        payload = _require_value(payload, tag)
        if not isinstance(payload, list):
            raise FormatError(f"{tag!r} expects an array payload, got {type(payload).__name__}.")
        return cls(dec(item) for item in payload)

    return TypeCodec(tag, cls, lambda v, enc: [enc(item) for item in v], load)


def _dump_mapping(value: dict, enc: Encode) -> dict:
    out = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise ArgumentError(
                "value",
                f"Mapping keys must be str, got {type(key).__name__}.",
            )
        out[key] = enc(item)
    return out


def _load_mapping(payload: Any, dec: Decode) -> dict:
    return {k: dec(v) for k, v in _require_fields(payload, "builtins.dict").items()}


def _textual(cls: type, dump: Callable[[Any], str], parse: Callable[[str], Any]) -> TypeCodec:
    tag = qualified_name(cls)

    def load(payload: Any, dec: Decode) -> Any:
        payload = _require_value(payload, tag)
        if not isinstance(payload, str):
            raise FormatError(f"{tag!r} expects a string payload, got {type(payload).__name__}.")
        try:
            return parse(payload)
        except (ValueError, decimal.InvalidOperation) as exc:
            raise FormatError(f"Invalid {tag!r} payload {payload!r}.") from exc

    return TypeCodec(tag, cls, lambda v, enc: dump(v), load)


def _b64decode(text: str) -> bytes:
    return base64.b64decode(text.encode("ascii"), validate=True)


_BUILTIN_CODECS: dict[type, TypeCodec] = {
    codec.cls: codec
    for codec in (
        _scalar(bool, (bool,)),
        _scalar(int, (int,), rejects=(bool,)),
        _scalar(float, (int, float), rejects=(bool,)),
        _scalar(str, (str,)),
        _textual(bytes, lambda v: base64.b64encode(v).decode("ascii"), _b64decode),
        _textual(decimal.Decimal, str, decimal.Decimal),
        _textual(uuid.UUID, str, uuid.UUID),
        _textual(datetime.datetime, datetime.datetime.isoformat, datetime.datetime.fromisoformat),
        _textual(datetime.date, datetime.date.isoformat, datetime.date.fromisoformat),
        *(_sequence(seq) for seq in (list, tuple, set, frozenset)),
        TypeCodec("builtins.dict", dict, _dump_mapping, _load_mapping),
        # Carries no fields: the tag alone identifies it.
        TypeCodec("builtins.object", object, lambda v, enc: NO_VALUE, lambda p, dec: object()),
    )
}

# User subclasses of these reuse the base codec for their contents.
_SUBCLASSABLE_BASES = (dict, list, tuple, set, frozenset, str, bytes, int, float)
# Builtin value types whose subclasses cannot be rebuilt from the base payload.
_OPAQUE_BASES = (decimal.Decimal, uuid.UUID, datetime.date)


def _install_builtins(registry: TypeRegistry) -> None:
    for codec in _BUILTIN_CODECS.values():
        registry.add(codec)


# ── Default registry ──────────────────────────────────────────────────────────

_default = TypeRegistry()
_install_builtins(_default)


def default_registry() -> TypeRegistry:
    return _default


def new_registry() -> TypeRegistry:
    """A fresh registry holding only the builtin codecs."""
    registry = TypeRegistry()
    _install_builtins(registry)
    return registry


def register(
    cls: type | None = None,
    *,
    tag: str | None = None,
    encode: Callable[[Any], Any] | None = None,
    decode: Callable[[Any], Any] | None = None,
) -> Any:
    """Register a class with the default registry. See TypeRegistry.register."""
    return _default.register(cls, tag=tag, encode=encode, decode=decode)


__sdk_export__ = {
    "surface": "both",
    "exports": ["TypeRegistry", "TypeCodec", "register", "default_registry", "new_registry"],
    "description": "Explicit tag → codec registry for type-faithful decoding",
    "tier": "tier1_runtime",
    "module": "types",
}
