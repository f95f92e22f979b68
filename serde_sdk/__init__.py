"""
serde_sdk
─────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from serde_sdk.tier0_core.logging import get_logger
from serde_sdk.tier0_core.errors import (
    SerdeError,
    ArgumentError,
    FormatError,
    TypeResolutionError,
    CompressionFormatError,
    ConfigurationError,
)
from serde_sdk.tier0_core.config import get_config, SerdeConfig, Formatting, TypeNameHandling

from serde_sdk.tier1_runtime.types import (
    TypeRegistry,
    TypeCodec,
    register,
    default_registry,
    new_registry,
)
from serde_sdk.tier1_runtime.compress import compress, decompress
from serde_sdk.tier1_runtime.serialize import (
    OrchestrationSerializer,
    EncodingPolicy,
    serialize,
    deserialize,
)

__version__ = "0.1.0"
__all__ = [
    # logging
    "get_logger",
    # errors
    "SerdeError", "ArgumentError", "FormatError",
    "TypeResolutionError", "CompressionFormatError", "ConfigurationError",
    # config
    "get_config", "SerdeConfig", "Formatting", "TypeNameHandling",
    # types
    "TypeRegistry", "TypeCodec", "register", "default_registry", "new_registry",
    # compress
    "compress", "decompress",
    # serialize
    "OrchestrationSerializer", "EncodingPolicy", "serialize", "deserialize",
]
