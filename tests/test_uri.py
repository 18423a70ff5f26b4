"""Tests for data URI and external path resolution."""

from __future__ import annotations

import base64

import pytest

from gltfscene.errors import UriError
from gltfscene.uri import DataUri, ExternalUri, UriMimeType, encode_data_uri, parse_uri


@pytest.mark.parametrize(
    "raw",
    [
        "external",
        "textures/albedo.png",
        "data:external",
        "data:external;",
        "data:external;base32",
        "data:external;base32,",
        "data:image/png,aGVsbG8=",
        "DATA:image/png;base64,aGVsbG8=",
    ],
)
def test_non_data_uris_fall_back_to_external_paths(raw: str) -> None:
    assert parse_uri(raw) == ExternalUri(path=raw)


def test_data_uri_with_unknown_mime_fails() -> None:
    with pytest.raises(UriError, match="uri mime type"):
        parse_uri("data:external;base64,")


@pytest.mark.parametrize("mime", list(UriMimeType))
def test_data_uri_decodes_payload(mime: UriMimeType) -> None:
    payload = b"Hello World!\x00\xff"
    raw = f"data:{mime.value};base64,{base64.b64encode(payload).decode('ascii')}"

    assert parse_uri(raw) == DataUri(data=payload, mime_type=mime)


def test_empty_data_uri_payload() -> None:
    assert parse_uri("data:application/octet-stream;base64,") == DataUri(
        data=b"", mime_type=UriMimeType.APPLICATION_OCTET_STREAM
    )


def test_invalid_base64_alphabet_fails() -> None:
    with pytest.raises(UriError):
        parse_uri("data:image/png;base64,@@@@")


def test_encode_data_uri_round_trips() -> None:
    raw = encode_data_uri(b"\x89PNG", "image/png")

    assert raw == "data:image/png;base64,iVBORw=="
    assert parse_uri(raw) == DataUri(data=b"\x89PNG", mime_type=UriMimeType.IMAGE_PNG)


def test_encode_data_uri_rejects_unknown_mime() -> None:
    with pytest.raises(UriError):
        encode_data_uri(b"", "text/plain")
