"""``data:`` URI and external path resolution."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import UriError

_DATA_PREFIX = "data:"


class UriMimeType(str, Enum):
    APPLICATION_OCTET_STREAM = "application/octet-stream"
    IMAGE_JPEG = "image/jpeg"
    IMAGE_PNG = "image/png"


@dataclass(frozen=True, slots=True)
class ExternalUri:
    path: str


@dataclass(frozen=True, slots=True)
class DataUri:
    data: bytes
    mime_type: UriMimeType


Uri = Union[ExternalUri, DataUri]


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise UriError(f"invalid base64 payload: {exc}") from exc


def _mime_type(value: str) -> UriMimeType:
    try:
        return UriMimeType(value)
    except ValueError:
        raise UriError("uri mime type") from None


def parse_uri(raw: str) -> Uri:
    """Parse a glTF ``uri`` string.

    Only ``data:<mime>;base64,<payload>`` is decoded inline. Anything else,
    including a ``data:`` string with another encoding token or missing
    separators, is kept as an external path.
    """

    if raw.startswith(_DATA_PREFIX):
        mime_sep = raw.find(";", len(_DATA_PREFIX))
        enc_sep = raw.find(",", mime_sep) if mime_sep != -1 else -1
        if enc_sep != -1 and raw[mime_sep + 1 : enc_sep] == "base64":
            mime = _mime_type(raw[len(_DATA_PREFIX) : mime_sep])
            return DataUri(data=b64decode(raw[enc_sep + 1 :]), mime_type=mime)
    return ExternalUri(path=raw)


def encode_data_uri(data: bytes, mime_type: UriMimeType | str = UriMimeType.APPLICATION_OCTET_STREAM) -> str:
    mime = _mime_type(mime_type.value if isinstance(mime_type, UriMimeType) else mime_type)
    return f"{_DATA_PREFIX}{mime.value};base64,{b64encode(data)}"
