"""glTF 2.0 container decoding and scene model parsing."""

from .errors import (
    ContainerError,
    GltfError,
    InvalidEnumValue,
    IoError,
    JsonSyntaxError,
    MissingBinaryChunk,
    OutOfRange,
    SchemaError,
    UriError,
)
from .glb_format import FormatOptions, GltfFormat, load_format, parse_container
from .opener import ResourceOpener
from .parser import Document, load, parse
from .types import Model
from .uri import DataUri, ExternalUri, parse_uri

__all__ = [
    "ContainerError",
    "DataUri",
    "Document",
    "ExternalUri",
    "FormatOptions",
    "GltfError",
    "GltfFormat",
    "InvalidEnumValue",
    "IoError",
    "JsonSyntaxError",
    "MissingBinaryChunk",
    "Model",
    "OutOfRange",
    "ResourceOpener",
    "SchemaError",
    "UriError",
    "load",
    "load_format",
    "parse",
    "parse_container",
    "parse_uri",
]
