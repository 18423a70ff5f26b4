"""Exception types raised while decoding, parsing and opening glTF assets."""

from __future__ import annotations

from typing import Any


class GltfError(Exception):
    """Base class for every error raised by gltfscene."""


class ContainerError(GltfError, ValueError):
    """The GLB envelope is malformed."""


class InvalidMagic(ContainerError):
    pass


class InvalidVersion(ContainerError):
    pass


class ExpectedJsonChunk(ContainerError):
    pass


class ExpectedBinChunk(ContainerError):
    pass


class TruncatedChunk(ContainerError):
    pass


class LengthMismatch(ContainerError):
    pass


class JsonSyntaxError(GltfError, ValueError):
    """The JSON text is not well-formed."""


class SchemaError(GltfError, ValueError):
    """A mandatory field is missing or a field has the wrong JSON shape."""

    def __init__(self, message: str, path: str = "") -> None:
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class InvalidEnumValue(SchemaError):
    def __init__(self, value: Any, path: str = "") -> None:
        self.value = value
        super().__init__(f"invalid value {value!r}", path)


class OutOfRange(GltfError, IndexError):
    """An index refers past the end of its target sequence."""

    def __init__(self, index: int, size: int, path: str = "") -> None:
        self.index = index
        self.size = size
        self.path = path
        message = f"index {index} out of range for {size} element(s)"
        super().__init__(f"{path}: {message}" if path else message)


class UriError(GltfError, ValueError):
    pass


class IoError(GltfError, OSError):
    pass


class MissingBinaryChunk(GltfError):
    pass
