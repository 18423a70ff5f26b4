"""Immutable glTF 2.0 scene model.

Cross-references between arrays are plain integer positions into the owning
:class:`Model` sequence. They are bounds checked once by the parser and stay
valid because the sequences are tuples that are never rebuilt afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import PurePosixPath
from typing import Any, Iterator, Mapping, NewType, Union

import numpy as np

from .uri import DataUri, ExternalUri, Uri

BufferIndex = NewType("BufferIndex", int)
BufferViewIndex = NewType("BufferViewIndex", int)
AccessorIndex = NewType("AccessorIndex", int)
CameraIndex = NewType("CameraIndex", int)
ImageIndex = NewType("ImageIndex", int)
MaterialIndex = NewType("MaterialIndex", int)
MeshIndex = NewType("MeshIndex", int)
NodeIndex = NewType("NodeIndex", int)
SamplerIndex = NewType("SamplerIndex", int)
SceneIndex = NewType("SceneIndex", int)
SkinIndex = NewType("SkinIndex", int)
TextureIndex = NewType("TextureIndex", int)
AnimationSamplerIndex = NewType("AnimationSamplerIndex", int)

Extensions = dict[str, Any]

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
UINT32_MAX = 2**32 - 1


class NumberKind(Enum):
    SIGNED = "signed"
    UNSIGNED = "unsigned"
    DECIMAL = "decimal"


@dataclass(frozen=True, slots=True)
class Number:
    """A JSON number that remembers whether it was written as an integer.

    Non-negative integer literals are unsigned, negative ones signed and
    anything with a fraction or exponent is decimal. Conversions return None
    when the value does not fit the requested representation.
    """

    kind: NumberKind
    value: int | float

    @classmethod
    def signed(cls, value: int) -> "Number":
        return cls(NumberKind.SIGNED, int(value))

    @classmethod
    def unsigned(cls, value: int) -> "Number":
        return cls(NumberKind.UNSIGNED, int(value))

    @classmethod
    def decimal(cls, value: float) -> "Number":
        return cls(NumberKind.DECIMAL, float(value))

    def as_integer(self) -> int | None:
        if self.kind is NumberKind.DECIMAL:
            return None
        if INT32_MIN <= self.value <= INT32_MAX:
            return int(self.value)
        return None

    def as_unsigned_integer(self) -> int | None:
        if self.kind is NumberKind.DECIMAL:
            return None
        if 0 <= self.value <= UINT32_MAX:
            return int(self.value)
        return None

    def as_decimal(self) -> float:
        return float(self.value)

    def __float__(self) -> float:
        return float(self.value)


class ComponentType(IntEnum):
    BYTE = 5120
    UNSIGNED_BYTE = 5121
    SHORT = 5122
    UNSIGNED_SHORT = 5123
    UNSIGNED_INT = 5125
    FLOAT = 5126

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(_COMPONENT_DTYPES[self])

    @property
    def byte_size(self) -> int:
        return self.dtype.itemsize


_COMPONENT_DTYPES = {
    ComponentType.BYTE: "<i1",
    ComponentType.UNSIGNED_BYTE: "<u1",
    ComponentType.SHORT: "<i2",
    ComponentType.UNSIGNED_SHORT: "<u2",
    ComponentType.UNSIGNED_INT: "<u4",
    ComponentType.FLOAT: "<f4",
}


class AccessorType(str, Enum):
    SCALAR = "SCALAR"
    VEC2 = "VEC2"
    VEC3 = "VEC3"
    VEC4 = "VEC4"
    MAT2 = "MAT2"
    MAT3 = "MAT3"
    MAT4 = "MAT4"

    @property
    def component_count(self) -> int:
        return _TYPE_WIDTH[self]

    @property
    def is_matrix(self) -> bool:
        return self in (AccessorType.MAT2, AccessorType.MAT3, AccessorType.MAT4)


_TYPE_WIDTH = {
    AccessorType.SCALAR: 1,
    AccessorType.VEC2: 2,
    AccessorType.VEC3: 3,
    AccessorType.VEC4: 4,
    AccessorType.MAT2: 4,
    AccessorType.MAT3: 9,
    AccessorType.MAT4: 16,
}


class BufferViewTarget(IntEnum):
    ARRAY_BUFFER = 34962
    ELEMENT_ARRAY_BUFFER = 34963


class MagFilter(IntEnum):
    NEAREST = 9728
    LINEAR = 9729


class MinFilter(IntEnum):
    NEAREST = 9728
    LINEAR = 9729
    NEAREST_MIPMAP_NEAREST = 9984
    LINEAR_MIPMAP_NEAREST = 9985
    NEAREST_MIPMAP_LINEAR = 9986
    LINEAR_MIPMAP_LINEAR = 9987


class WrapMode(IntEnum):
    CLAMP_TO_EDGE = 33071
    MIRRORED_REPEAT = 33648
    REPEAT = 10497


class AlphaMode(str, Enum):
    OPAQUE = "OPAQUE"
    MASK = "MASK"
    BLEND = "BLEND"


class Attribute(str, Enum):
    POSITION = "POSITION"
    NORMAL = "NORMAL"
    TANGENT = "TANGENT"
    TEXCOORD_0 = "TEXCOORD_0"
    TEXCOORD_1 = "TEXCOORD_1"
    COLOR_0 = "COLOR_0"
    JOINTS_0 = "JOINTS_0"
    WEIGHTS_0 = "WEIGHTS_0"


class MorphTargetAttribute(str, Enum):
    POSITION = "POSITION"
    NORMAL = "NORMAL"
    TANGENT = "TANGENT"


class PrimitiveMode(IntEnum):
    POINTS = 0
    LINES = 1
    LINE_LOOP = 2
    LINE_STRIP = 3
    TRIANGLES = 4
    TRIANGLE_STRIP = 5
    TRIANGLE_FAN = 6


class Interpolation(str, Enum):
    LINEAR = "LINEAR"
    STEP = "STEP"
    CATMULLROMSPLINE = "CATMULLROMSPLINE"
    CUBICSPLINE = "CUBICSPLINE"


class ChannelPath(str, Enum):
    TRANSLATION = "translation"
    ROTATION = "rotation"
    SCALE = "scale"
    WEIGHTS = "weights"


class ImageMimeType(str, Enum):
    IMAGE_JPEG = "image/jpeg"
    IMAGE_PNG = "image/png"


@dataclass(frozen=True, slots=True)
class Asset:
    version: str
    copyright: str | None = None
    generator: str | None = None
    min_version: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Buffer:
    byte_length: int
    uri: Uri | None = None  # None only for the GLB binary chunk
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class BufferView:
    buffer: BufferIndex
    byte_length: int
    byte_offset: int = 0
    byte_stride: int | None = None
    target: BufferViewTarget | None = None
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Accessor:
    component_type: ComponentType
    count: int
    type: AccessorType
    buffer_view: BufferViewIndex | None = None
    byte_offset: int = 0
    normalized: bool = False
    min: tuple[Number, ...] | None = None
    max: tuple[Number, ...] | None = None
    sparse: dict[str, Any] = field(default_factory=dict)
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None

    @property
    def element_size(self) -> int:
        """Packed size of one element in bytes."""

        return self.component_type.byte_size * self.type.component_count


@dataclass(frozen=True, slots=True)
class Orthographic:
    xmag: Number
    ymag: Number
    zfar: Number
    znear: Number
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Perspective:
    yfov: Number
    znear: Number
    aspect_ratio: Number | None = None
    zfar: Number | None = None  # None means an infinite projection
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


Projection = Union[Orthographic, Perspective]


@dataclass(frozen=True, slots=True)
class Camera:
    projection: Projection
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class ImageUriSource:
    uri: Uri


@dataclass(frozen=True, slots=True)
class ImageBufferViewSource:
    buffer_view: BufferViewIndex


ImageSource = Union[ImageUriSource, ImageBufferViewSource]

_EXTENSION_MIME = {
    ".png": ImageMimeType.IMAGE_PNG,
    ".jpg": ImageMimeType.IMAGE_JPEG,
    ".jpeg": ImageMimeType.IMAGE_JPEG,
}


@dataclass(frozen=True, slots=True)
class Image:
    source: ImageSource
    mime_type: ImageMimeType | None = None  # always set for buffer view sources
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None

    def inferred_mime_type(self) -> ImageMimeType | None:
        if self.mime_type is not None:
            return self.mime_type
        if isinstance(self.source, ImageUriSource):
            uri = self.source.uri
            if isinstance(uri, DataUri):
                try:
                    return ImageMimeType(uri.mime_type.value)
                except ValueError:
                    return None
            if isinstance(uri, ExternalUri):
                return _EXTENSION_MIME.get(PurePosixPath(uri.path).suffix.lower())
        return None


@dataclass(frozen=True, slots=True)
class Sampler:
    mag_filter: MagFilter | None = None
    min_filter: MinFilter | None = None
    wrap_s: WrapMode = WrapMode.REPEAT
    wrap_t: WrapMode = WrapMode.REPEAT
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Texture:
    # no sampler: repeat wrapping and automatic filtering
    sampler: SamplerIndex | None = None
    source: ImageIndex | None = None
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class TextureInfo:
    index: TextureIndex
    texcoord: int = 0
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class NormalTextureInfo:
    index: TextureIndex
    texcoord: int = 0
    scale: float = 1.0
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class OcclusionTextureInfo:
    index: TextureIndex
    texcoord: int = 0
    strength: float = 1.0
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class PbrMetallicRoughness:
    base_color_factor: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    base_color_texture: TextureInfo | None = None
    metallic_factor: float = 1.0
    roughness_factor: float = 1.0
    metallic_roughness_texture: TextureInfo | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Material:
    pbr_metallic_roughness: PbrMetallicRoughness = field(default_factory=PbrMetallicRoughness)
    normal_texture: NormalTextureInfo | None = None
    occlusion_texture: OcclusionTextureInfo | None = None
    emissive_texture: TextureInfo | None = None
    emissive_factor: tuple[float, float, float] = (0.0, 0.0, 0.0)
    alpha_mode: AlphaMode = AlphaMode.OPAQUE
    alpha_cutoff: float | None = None
    double_sided: bool = False
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


MorphTarget = Mapping[MorphTargetAttribute, AccessorIndex]  # read-only view


@dataclass(frozen=True, slots=True)
class Primitive:
    attributes: Mapping[Attribute, AccessorIndex]  # read-only view
    indices: AccessorIndex | None = None
    material: MaterialIndex | None = None
    mode: PrimitiveMode = PrimitiveMode.TRIANGLES
    targets: tuple[MorphTarget, ...] = ()
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Mesh:
    primitives: tuple[Primitive, ...]
    weights: tuple[float, ...] | None = None
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


def _quat_to_mat3(q: tuple[float, float, float, float]) -> np.ndarray:
    x, y, z, w = (float(q[0]), float(q[1]), float(q[2]), float(q[3]))
    return np.array(
        [
            [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - z * w), 2.0 * (x * z + y * w)],
            [2.0 * (x * y + z * w), 1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - x * w)],
            [2.0 * (x * z - y * w), 2.0 * (y * z + x * w), 1.0 - 2.0 * (x * x + y * y)],
        ],
        dtype=np.float64,
    )


@dataclass(frozen=True, slots=True)
class MatrixTransform:
    # column-major, exactly as stored in JSON
    matrix: tuple[float, ...]

    def to_matrix(self) -> np.ndarray:
        return np.asarray(self.matrix, dtype=np.float64).reshape(4, 4).T


@dataclass(frozen=True, slots=True)
class TRSTransform:
    translation: tuple[float, float, float] | None = None
    rotation: tuple[float, float, float, float] | None = None  # x, y, z, w
    scale: tuple[float, float, float] | None = None

    @property
    def translation_or_default(self) -> tuple[float, float, float]:
        return self.translation if self.translation is not None else (0.0, 0.0, 0.0)

    @property
    def rotation_or_default(self) -> tuple[float, float, float, float]:
        return self.rotation if self.rotation is not None else (0.0, 0.0, 0.0, 1.0)

    @property
    def scale_or_default(self) -> tuple[float, float, float]:
        return self.scale if self.scale is not None else (1.0, 1.0, 1.0)

    def to_matrix(self) -> np.ndarray:
        """Compose T * R * S into a row-major 4x4 matrix."""

        m = np.eye(4, dtype=np.float64)
        m[:3, :3] = _quat_to_mat3(self.rotation_or_default) * np.asarray(self.scale_or_default, dtype=np.float64)
        m[:3, 3] = self.translation_or_default
        return m


Transform = Union[MatrixTransform, TRSTransform]


@dataclass(frozen=True, slots=True)
class Node:
    camera: CameraIndex | None = None
    children: tuple[NodeIndex, ...] = ()
    skin: SkinIndex | None = None
    transform: Transform = field(default_factory=TRSTransform)
    mesh: MeshIndex | None = None
    weights: tuple[float, ...] | None = None
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Skin:
    inverse_bind_matrices: AccessorIndex | None = None
    skeleton: NodeIndex | None = None
    joints: tuple[NodeIndex, ...] = ()
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class AnimationSampler:
    input: AccessorIndex
    output: AccessorIndex
    interpolation: Interpolation = Interpolation.LINEAR
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class ChannelTarget:
    path: ChannelPath
    node: NodeIndex | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Channel:
    sampler: AnimationSamplerIndex  # into the owning Animation.samplers
    target: ChannelTarget
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Animation:
    channels: tuple[Channel, ...]
    samplers: tuple[AnimationSampler, ...]
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Scene:
    nodes: tuple[NodeIndex, ...] | None = None
    name: str | None = None
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True, slots=True)
class Model:
    asset: Asset
    buffers: tuple[Buffer, ...] = ()
    buffer_views: tuple[BufferView, ...] = ()
    accessors: tuple[Accessor, ...] = ()
    cameras: tuple[Camera, ...] = ()
    images: tuple[Image, ...] = ()
    materials: tuple[Material, ...] = ()
    meshes: tuple[Mesh, ...] = ()
    nodes: tuple[Node, ...] = ()
    samplers: tuple[Sampler, ...] = ()
    scenes: tuple[Scene, ...] = ()
    skins: tuple[Skin, ...] = ()
    textures: tuple[Texture, ...] = ()
    animations: tuple[Animation, ...] = ()
    scene: SceneIndex | None = None
    extensions_used: tuple[str, ...] = ()
    extensions_required: tuple[str, ...] = ()
    extensions: Extensions = field(default_factory=dict)
    extras: Any = None

    def default_scene(self) -> Scene | None:
        return None if self.scene is None else self.scenes[self.scene]

    def root_nodes(self) -> tuple[NodeIndex, ...]:
        """Roots of the default scene, or every node that is nobody's child."""

        scene = self.default_scene()
        if scene is not None:
            return scene.nodes or ()
        children = {c for node in self.nodes for c in node.children}
        return tuple(NodeIndex(i) for i in range(len(self.nodes)) if i not in children)

    def iter_node_tree(self, root: NodeIndex) -> Iterator[NodeIndex]:
        """Depth-first walk from ``root``; a node reached twice is yielded once."""

        seen: set[int] = set()
        stack = [root]
        while stack:
            index = stack.pop()
            if index in seen:
                continue
            seen.add(index)
            yield index
            stack.extend(reversed(self.nodes[index].children))
