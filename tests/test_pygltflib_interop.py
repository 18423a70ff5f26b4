"""Load GLB files written by pygltflib."""

from __future__ import annotations

import math

import numpy as np
import pygltflib

from gltfscene import load
from gltfscene.types import AccessorType, Attribute, ComponentType, TRSTransform

ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963


def _align4(n: int) -> int:
    return int(math.ceil(n / 4.0) * 4)


def _write_triangle(path) -> tuple[np.ndarray, np.ndarray]:
    positions = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=np.float32)
    indices = np.array([0, 1, 2], dtype=np.uint32)

    blob = bytearray()
    views = []
    for data, target in ((positions.tobytes(), ARRAY_BUFFER), (indices.tobytes(), ELEMENT_ARRAY_BUFFER)):
        offset = len(blob)
        blob.extend(data)
        blob.extend(b"\x00" * (_align4(len(blob)) - len(blob)))
        views.append(pygltflib.BufferView(buffer=0, byteOffset=offset, byteLength=len(data), target=target))

    gltf = pygltflib.GLTF2(
        asset=pygltflib.Asset(version="2.0", generator="pygltflib"),
        buffers=[pygltflib.Buffer(byteLength=len(blob))],
        bufferViews=views,
        accessors=[
            pygltflib.Accessor(
                bufferView=0,
                componentType=5126,
                count=3,
                type="VEC3",
                min=positions.min(axis=0).tolist(),
                max=positions.max(axis=0).tolist(),
            ),
            pygltflib.Accessor(bufferView=1, componentType=5125, count=3, type="SCALAR"),
        ],
        meshes=[
            pygltflib.Mesh(
                primitives=[pygltflib.Primitive(attributes=pygltflib.Attributes(POSITION=0), indices=1)],
                name="triangle",
            )
        ],
        nodes=[pygltflib.Node(mesh=0, name="tri", translation=[0.0, 0.0, -2.0])],
        scenes=[pygltflib.Scene(nodes=[0])],
        scene=0,
    )
    gltf.set_binary_blob(bytes(blob))
    gltf.save_binary(str(path))
    return positions, indices


def test_load_pygltflib_glb(tmp_path) -> None:
    path = tmp_path / "triangle.glb"
    positions, indices = _write_triangle(path)

    document = load(path)
    model = document.model

    assert model.asset.version == "2.0"
    assert model.asset.generator == "pygltflib"
    assert len(model.buffers) == 1
    assert model.buffers[0].uri is None
    assert len(model.buffer_views) == 2
    assert model.accessors[0].component_type is ComponentType.FLOAT
    assert model.accessors[0].type is AccessorType.VEC3
    assert model.accessors[1].component_type is ComponentType.UNSIGNED_INT
    assert model.meshes[0].name == "triangle"
    assert model.meshes[0].primitives[0].attributes[Attribute.POSITION] == 0
    assert model.meshes[0].primitives[0].indices == 1
    assert model.nodes[0].mesh == 0
    assert isinstance(model.nodes[0].transform, TRSTransform)
    assert model.nodes[0].transform.translation == (0.0, 0.0, -2.0)
    assert model.root_nodes() == (0,)

    opener = document.opener()
    np.testing.assert_array_equal(opener.read_accessor(0), positions)
    assert opener.read_accessor(1)[:, 0].tolist() == indices.tolist()
