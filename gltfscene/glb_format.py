"""Container decoding: GLB envelope or plain glTF JSON text."""

from __future__ import annotations

import io
import json
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

from .errors import (
    ContainerError,
    ExpectedBinChunk,
    ExpectedJsonChunk,
    InvalidMagic,
    InvalidVersion,
    IoError,
    JsonSyntaxError,
    LengthMismatch,
    TruncatedChunk,
)

logger = logging.getLogger(__name__)

GLB_MAGIC = 0x46546C67  # "glTF"
GLB_VERSION = 2
CHUNK_JSON = 0x4E4F534A  # "JSON"
CHUNK_BIN = 0x004E4942  # "BIN\0"

_HEADER = struct.Struct("<5I")
_CHUNK_HEADER = struct.Struct("<2I")


@dataclass(slots=True)
class FormatOptions:
    strict_length: bool = False  # enforce header total_length == bytes consumed
    max_bytes: int | None = None


@dataclass(frozen=True, slots=True)
class GltfFormat:
    """Decoded container: the JSON document plus the optional GLB binary chunk."""

    json: Any
    binary: bytes | None = None


def _read_exact(f: BinaryIO, n: int, what: str) -> bytes:
    b = f.read(n)
    if len(b) != n:
        raise TruncatedChunk(f"unexpected end of stream reading {what}: wanted {n} bytes, got {len(b)}")
    return b


def _check_size(n: int, options: FormatOptions, what: str) -> None:
    if options.max_bytes is not None and n > options.max_bytes:
        raise ContainerError(f"{what} of {n} bytes exceeds limit of {options.max_bytes}")


def _loads(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise JsonSyntaxError(f"document is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise JsonSyntaxError(f"malformed JSON: {exc}") from exc


def _as_stream(stream: bytes | bytearray | memoryview | BinaryIO) -> BinaryIO:
    if isinstance(stream, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(stream))
    return stream


def parse_container(
    stream: bytes | bytearray | memoryview | BinaryIO,
    options: FormatOptions | None = None,
) -> GltfFormat:
    """Decode ``stream`` into a :class:`GltfFormat`.

    A stream starting with ``g`` is read as a GLB envelope; anything else is
    read to the end and parsed as JSON text.
    """

    opts = options or FormatOptions()
    f = _as_stream(stream)

    first = f.read(1)
    if first != b"g":
        if opts.max_bytes is None:
            data = first + f.read()
        else:
            # one byte past the limit is enough to tell it was exceeded
            data = first + f.read(opts.max_bytes)
        _check_size(len(data), opts, "JSON document")
        logger.debug("decoding %d bytes of glTF JSON text", len(data))
        return GltfFormat(json=_loads(data))

    head = first + f.read(3)
    if len(head) != 4 or struct.unpack("<I", head)[0] != GLB_MAGIC:
        raise InvalidMagic(f"invalid magic {head!r}")
    header = head + _read_exact(f, _HEADER.size - 4, "GLB header")
    _, version, total_length, json_length, json_type = _HEADER.unpack(header)

    if version != GLB_VERSION:
        raise InvalidVersion(f"unsupported GLB version {version}")
    if json_type != CHUNK_JSON:
        raise ExpectedJsonChunk(f"expected JSON chunk, got chunk type 0x{json_type:08X}")

    _check_size(json_length, opts, "JSON chunk")
    document = _loads(_read_exact(f, json_length, "JSON chunk"))
    consumed = _HEADER.size + json_length

    binary: bytes | None = None
    chunk_header = f.read(_CHUNK_HEADER.size)
    if chunk_header:
        if len(chunk_header) != _CHUNK_HEADER.size:
            raise TruncatedChunk("unexpected end of stream reading BIN chunk header")
        bin_length, bin_type = _CHUNK_HEADER.unpack(chunk_header)
        if bin_type != CHUNK_BIN:
            raise ExpectedBinChunk(f"expected BIN chunk, got chunk type 0x{bin_type:08X}")
        _check_size(bin_length, opts, "BIN chunk")
        binary = _read_exact(f, bin_length, "BIN chunk")
        consumed += _CHUNK_HEADER.size + bin_length

    if total_length != consumed:
        if opts.strict_length:
            raise LengthMismatch(f"header declares {total_length} bytes, container holds {consumed}")
        logger.warning("GLB header declares %d bytes but %d were consumed", total_length, consumed)

    logger.debug(
        "decoded GLB: json=%d bytes, bin=%s",
        json_length,
        "absent" if binary is None else f"{len(binary)} bytes",
    )
    return GltfFormat(json=document, binary=binary)


def load_format(path: str | Path, options: FormatOptions | None = None) -> GltfFormat:
    path = Path(path)
    try:
        f = path.open("rb")
    except OSError as exc:
        raise IoError(f"cannot open {path}: {exc}") from exc
    with f:
        return parse_container(f, options)
