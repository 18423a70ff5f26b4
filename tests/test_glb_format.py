"""Tests for GLB / JSON container decoding."""

from __future__ import annotations

import io
import json
import logging
import struct

import pytest

from gltfscene.errors import (
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
from gltfscene.glb_format import FormatOptions, GltfFormat, load_format, parse_container
from tests.helpers import build_glb, minimal_document


def test_json_text_is_parsed_directly() -> None:
    result = parse_container(b"[]")

    assert result == GltfFormat(json=[], binary=None)


def test_json_text_from_stream() -> None:
    document = minimal_document(buffers=[{"byteLength": 4}])

    result = parse_container(io.BytesIO(json.dumps(document).encode("utf-8")))

    assert result.json == document
    assert result.binary is None


def test_malformed_json_text_raises() -> None:
    with pytest.raises(JsonSyntaxError):
        parse_container(b'{"asset": ')


def test_empty_stream_is_not_json() -> None:
    with pytest.raises(JsonSyntaxError):
        parse_container(b"")


def test_minimal_glb_with_empty_object_and_no_bin_chunk() -> None:
    json_bytes = b"{}"
    data = struct.pack("<5I", 0x46546C67, 2, 0, len(json_bytes), 0x4E4F534A) + json_bytes

    result = parse_container(data)

    assert result.json == {}
    assert result.binary is None


def test_glb_matches_embedded_json_and_bin_bytes() -> None:
    document = minimal_document(buffers=[{"byteLength": 8}])
    payload = bytes(range(8))

    result = parse_container(build_glb(document, payload))

    assert result.json == document
    assert result.binary == payload


def test_zero_length_bin_chunk_is_present_but_empty() -> None:
    result = parse_container(build_glb(minimal_document(), b""))

    assert result.binary == b""


def test_invalid_magic() -> None:
    data = build_glb(minimal_document(), magic=struct.unpack("<I", b"gLTF")[0])

    with pytest.raises(InvalidMagic):
        parse_container(data)


def test_short_stream_starting_with_g_is_invalid_magic() -> None:
    with pytest.raises(InvalidMagic):
        parse_container(b"go")


def test_invalid_version() -> None:
    with pytest.raises(InvalidVersion):
        parse_container(build_glb(minimal_document(), version=1))


def test_json_chunk_type_is_checked() -> None:
    with pytest.raises(ExpectedJsonChunk):
        parse_container(build_glb(minimal_document(), json_type=0x004E4942))


def test_bin_chunk_type_is_checked() -> None:
    with pytest.raises(ExpectedBinChunk):
        parse_container(build_glb(minimal_document(), b"\x00" * 4, bin_type=0x4E4F534A))


def test_truncated_json_chunk() -> None:
    data = build_glb(minimal_document())

    with pytest.raises(TruncatedChunk):
        parse_container(data[:-3])


def test_truncated_bin_chunk() -> None:
    data = build_glb(minimal_document(), b"\x01" * 16)

    with pytest.raises(TruncatedChunk):
        parse_container(data[:-1])


def test_partial_bin_chunk_header() -> None:
    data = build_glb(minimal_document()) + b"\x04\x00"

    with pytest.raises(TruncatedChunk):
        parse_container(data)


def test_glb_json_chunk_must_be_valid_json() -> None:
    with pytest.raises(JsonSyntaxError):
        parse_container(build_glb(b"{nope"))


def test_glb_json_chunk_must_be_utf8() -> None:
    with pytest.raises(JsonSyntaxError):
        parse_container(build_glb(b'{"a": "\xff"}'))


def test_container_errors_share_a_base_class() -> None:
    for exc in (InvalidMagic, InvalidVersion, ExpectedJsonChunk, ExpectedBinChunk, TruncatedChunk, LengthMismatch):
        assert issubclass(exc, ContainerError)
        assert issubclass(exc, ValueError)


def test_total_length_mismatch_is_tolerated_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    data = build_glb(minimal_document(), total_length=7)

    with caplog.at_level(logging.WARNING, logger="gltfscene.glb_format"):
        result = parse_container(data)

    assert result.json == minimal_document()
    assert "declares 7 bytes" in caplog.text


def test_total_length_mismatch_rejected_in_strict_mode() -> None:
    data = build_glb(minimal_document(), total_length=7)

    with pytest.raises(LengthMismatch):
        parse_container(data, FormatOptions(strict_length=True))


def test_correct_total_length_passes_strict_mode() -> None:
    data = build_glb(minimal_document(), b"\x00" * 4)

    result = parse_container(data, FormatOptions(strict_length=True))

    assert result.binary == b"\x00" * 4


def test_max_bytes_limits_json_text() -> None:
    data = json.dumps(minimal_document()).encode("utf-8")

    with pytest.raises(ContainerError):
        parse_container(data, FormatOptions(max_bytes=len(data) - 1))
    assert parse_container(data, FormatOptions(max_bytes=len(data))).json == minimal_document()


def test_max_bytes_limits_bin_chunk() -> None:
    data = build_glb(minimal_document(), b"\x00" * 64)

    with pytest.raises(ContainerError):
        parse_container(data, FormatOptions(max_bytes=48))


def test_load_format_reads_file(tmp_path) -> None:
    path = tmp_path / "scene.glb"
    path.write_bytes(build_glb(minimal_document(), b"abcd"))

    result = load_format(path)

    assert result.binary == b"abcd"


def test_load_format_missing_file(tmp_path) -> None:
    with pytest.raises(IoError):
        load_format(tmp_path / "missing.glb")
