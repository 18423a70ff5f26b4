"""Access to the bytes behind buffers, buffer views, images and accessors."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image as PILImage

from .errors import IoError, MissingBinaryChunk, OutOfRange, SchemaError
from .glb_format import GltfFormat
from .types import (
    AccessorIndex,
    Buffer,
    BufferIndex,
    BufferViewIndex,
    Image,
    ImageBufferViewSource,
    ImageIndex,
    ImageUriSource,
    Model,
)
from .uri import DataUri, ExternalUri, Uri

logger = logging.getLogger(__name__)


def read_range(path: str | Path, offset: int = 0, length: int | None = None) -> bytes:
    """Read ``length`` bytes at ``offset`` from ``path``, or the rest of the file."""

    path = Path(path)
    try:
        with path.open("rb") as f:
            f.seek(offset)
            data = f.read() if length is None else f.read(length)
    except OSError as exc:
        raise IoError(f"cannot read {path}: {exc}") from exc
    if length is not None and len(data) != length:
        raise IoError(f"short read from {path}: wanted {length} bytes at {offset}, got {len(data)}")
    return data


def _slice(data: bytes, offset: int, length: int | None, what: str) -> memoryview:
    size = len(data)
    end = size if length is None else offset + length
    if offset < 0 or offset > size:
        raise OutOfRange(offset, size, what)
    if end > size:
        raise OutOfRange(end, size, what)
    return memoryview(data)[offset:end]


class ResourceOpener:
    """Resolve resources of ``model`` relative to ``working_dir``.

    Inline data (the GLB binary chunk or a ``data:`` URI) is returned as a
    ``memoryview`` over the already decoded bytes. External files are read on
    every call and returned as ``bytes``.
    """

    def __init__(self, model: Model, fmt: GltfFormat, working_dir: str | Path = ".") -> None:
        self.model = model
        self.format = fmt
        self.working_dir = Path(working_dir)

    def open_uri(self, uri: Uri, offset: int = 0, length: int | None = None) -> bytes | memoryview:
        if isinstance(uri, DataUri):
            return _slice(uri.data, offset, length, "data uri")
        if isinstance(uri, ExternalUri):
            path = self.working_dir / uri.path
            logger.debug("reading %s (offset=%d, length=%s)", path, offset, length)
            return read_range(path, offset, length)
        raise TypeError(f"not a uri: {uri!r}")

    def open_buffer(
        self,
        buffer: Buffer | BufferIndex | int,
        offset: int = 0,
        length: int | None = None,
    ) -> bytes | memoryview:
        if not isinstance(buffer, Buffer):
            buffer = self.model.buffers[buffer]
        if buffer.uri is not None:
            return self.open_uri(buffer.uri, offset, length)
        if self.format.binary is None:
            raise MissingBinaryChunk("buffer has no uri and the container has no binary chunk")
        return _slice(self.format.binary, offset, length, "binary chunk")

    def open_buffer_view(self, index: BufferViewIndex | int) -> bytes | memoryview:
        view = self.model.buffer_views[index]
        return self.open_buffer(view.buffer, view.byte_offset, view.byte_length)

    def open_image(self, image: Image | ImageIndex | int) -> bytes | memoryview:
        if not isinstance(image, Image):
            image = self.model.images[image]
        source = image.source
        if isinstance(source, ImageUriSource):
            return self.open_uri(source.uri)
        if isinstance(source, ImageBufferViewSource):
            return self.open_buffer_view(source.buffer_view)
        raise TypeError(f"not an image source: {source!r}")

    def decode_image(self, image: Image | ImageIndex | int) -> PILImage.Image:
        data = self.open_image(image)
        decoded = PILImage.open(io.BytesIO(bytes(data)))
        decoded.load()
        return decoded

    def read_accessor(self, index: AccessorIndex | int) -> np.ndarray:
        """Return accessor ``index`` as ``(count, components)`` (``(count, n, n)`` for matrices).

        Values are raw components; ``normalized`` is not applied. An accessor
        without a buffer view reads as zeros. Sparse substitution is not
        applied.
        """

        accessor = self.model.accessors[index]
        dtype = accessor.component_type.dtype
        width = accessor.type.component_count
        count = accessor.count

        if accessor.buffer_view is None or count == 0:
            data = np.zeros((count, width), dtype=dtype)
        else:
            view = self.model.buffer_views[accessor.buffer_view]
            raw = self.open_buffer_view(accessor.buffer_view)
            stride = view.byte_stride or accessor.element_size
            needed = accessor.byte_offset + stride * (count - 1) + accessor.element_size
            if needed > len(raw):
                raise SchemaError(
                    f"accessor needs {needed} bytes but its buffer view holds {len(raw)}",
                    f"accessors[{index}]",
                )
            data = np.ndarray(
                shape=(count, width),
                dtype=dtype,
                buffer=raw,
                offset=accessor.byte_offset,
                strides=(stride, dtype.itemsize),
            ).copy()

        if accessor.type.is_matrix:
            n = int(round(width**0.5))
            # column-major in the buffer
            return data.reshape(count, n, n).transpose(0, 2, 1).copy()
        return data
