"""
serde_sdk.tier1_runtime.compress
─────────────────────────────────
gzip compression over whole byte buffers. The content is never inspected:
whatever goes in comes back out of decompress() byte for byte.

``None`` passes straight through both directions; it is "no data", not an
error. Output is deterministic for a given level (the gzip header mtime is
pinned to 0).

Configure via: SERDE_COMPRESSION_LEVEL (0-9, default 6)
"""
from __future__ import annotations

import gzip
import io
import shutil
import zlib

from serde_sdk.tier0_core.config import get_config
from serde_sdk.tier0_core.errors import ArgumentError, CompressionFormatError
from serde_sdk.tier0_core.logging import get_logger
from serde_sdk.tier0_core.metrics import record

log = get_logger(__name__)

# Errors the gzip reader raises for bad magic, bad CRC, bad deflate data
# and premature end of stream.
GZIP_READ_ERRORS = (gzip.BadGzipFile, zlib.error, EOFError)


def compress(data: bytes | None, level: int | None = None) -> bytes | None:
    """
    Gzip *data* at *level* (defaults to the configured compression level).

    Usage:
        blob = compress(serializer.encode_bytes(value))
    """
    if data is None:
        return None

    level = get_config().compression_level if level is None else level
    if not 0 <= level <= 9:
        raise ArgumentError("level", f"Compression level must be 0..9, got {level}.")
    with io.BytesIO() as output:
        with gzip.GzipFile(fileobj=output, mode="wb", compresslevel=level, mtime=0) as stream:
            stream.write(data)
        compressed = output.getvalue()

    log.debug("compress.done", size_in=len(data), size_out=len(compressed), level=level)
    record("compress", "ok", len(compressed))
    return compressed


def decompress(data: bytes | None) -> bytes | None:
    """
    Reverse compress(). Raises CompressionFormatError if *data* is not a
    complete gzip stream.
    """
    if data is None:
        return None

    try:
        with io.BytesIO(data) as source, io.BytesIO() as output:
            with gzip.GzipFile(fileobj=source, mode="rb") as stream:
                shutil.copyfileobj(stream, output)
            decompressed = output.getvalue()
    except GZIP_READ_ERRORS as exc:
        record("decompress", "error")
        raise CompressionFormatError(
            user_message="Compressed data is not a valid gzip stream.",
            detail=f"gzip read failed after consuming {len(data)} byte(s): {exc}",
        ) from exc

    log.debug("decompress.done", size_in=len(data), size_out=len(decompressed))
    record("decompress", "ok", len(data))
    return decompressed


__sdk_export__ = {
    "surface": "both",
    "exports": ["compress", "decompress"],
    "description": "gzip compress/decompress over byte buffers",
    "tier": "tier1_runtime",
    "module": "compress",
}
