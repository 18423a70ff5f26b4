"""Build a resolved :class:`~gltfscene.types.Model` from a decoded container.

Arrays are parsed strictly after every array they may reference:

    buffers -> bufferViews -> accessors, cameras, samplers -> images
    -> textures -> materials -> meshes, skins -> nodes
    -> node children, skin joints -> animations -> scenes -> asset/scene

Node children and skin joints can point at any node, so nodes and skins are
first built without them and patched once the node array exists.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, TypeVar

from . import conversions
from .errors import InvalidEnumValue, OutOfRange, SchemaError
from .glb_format import FormatOptions, GltfFormat, load_format
from .opener import ResourceOpener
from .types import (
    Accessor,
    AlphaMode,
    Animation,
    AnimationSampler,
    Asset,
    Buffer,
    BufferView,
    Camera,
    Channel,
    ChannelTarget,
    Image,
    ImageBufferViewSource,
    ImageUriSource,
    Interpolation,
    Material,
    MatrixTransform,
    Mesh,
    Model,
    MorphTarget,
    Node,
    NormalTextureInfo,
    OcclusionTextureInfo,
    Orthographic,
    PbrMetallicRoughness,
    Perspective,
    Primitive,
    PrimitiveMode,
    Sampler,
    Scene,
    Skin,
    Texture,
    TextureInfo,
    TRSTransform,
    WrapMode,
)
from .uri import parse_uri

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


def _join(path: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else key


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "boolean": lambda v: isinstance(v, bool),
    "integer": _is_int,
    "unsigned": lambda v: _is_int(v) and v >= 0,
    "number": _is_number,
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
}


def _check(value: Any, kind: str, path: str) -> Any:
    if not _CHECKS[kind](value):
        raise SchemaError(f"expected {kind}, got {type(value).__name__}", path)
    return value


def _object(value: Any, path: str) -> dict[str, Any]:
    return _check(value, "object", path)


def _required(obj: dict[str, Any], key: str, kind: str, path: str) -> Any:
    value = obj.get(key, _MISSING)
    if value is _MISSING:
        raise SchemaError("missing mandatory field", _join(path, key))
    return _check(value, kind, _join(path, key))


def _optional(obj: dict[str, Any], key: str, kind: str, path: str, default: Any = None) -> Any:
    value = obj.get(key, _MISSING)
    if value is _MISSING:
        return default
    return _check(value, kind, _join(path, key))


def _float(obj: dict[str, Any], key: str, path: str, default: float | None = None) -> float | None:
    value = _optional(obj, key, "number", path)
    return default if value is None else float(value)


def _floats(value: Any, path: str, size: int | None = None) -> tuple[float, ...]:
    _check(value, "array", path)
    if size is not None and len(value) != size:
        raise SchemaError(f"expected {size} numbers, got {len(value)}", path)
    return tuple(float(_check(v, "number", _join(path, i))) for i, v in enumerate(value))


def _vec(obj: dict[str, Any], key: str, size: int, path: str) -> tuple[float, ...] | None:
    value = obj.get(key, _MISSING)
    if value is _MISSING:
        return None
    return _floats(value, _join(path, key), size)


def _resolve(index: Any, size: int, path: str) -> int:
    _check(index, "integer", path)
    if not 0 <= index < size:
        raise OutOfRange(index, size, path)
    return index


def _index(obj: dict[str, Any], key: str, size: int, path: str) -> int | None:
    value = obj.get(key, _MISSING)
    if value is _MISSING:
        return None
    return _resolve(value, size, _join(path, key))


def _required_index(obj: dict[str, Any], key: str, size: int, path: str) -> int:
    if key not in obj:
        raise SchemaError("missing mandatory field", _join(path, key))
    return _resolve(obj[key], size, _join(path, key))


def _indices(value: Any, size: int, path: str) -> tuple[int, ...]:
    _check(value, "array", path)
    return tuple(_resolve(v, size, _join(path, i)) for i, v in enumerate(value))


def _extensions(obj: dict[str, Any], path: str) -> dict[str, Any]:
    # copied: the model shares no objects with the input document
    return copy.deepcopy(_optional(obj, "extensions", "object", path, default={}))


def _extras(obj: dict[str, Any]) -> Any:
    return copy.deepcopy(obj.get("extras"))


def _array(root: dict[str, Any], key: str, parse_one: Callable[[dict[str, Any], str], T]) -> tuple[T, ...]:
    items = _optional(root, key, "array", "", default=[])
    return tuple(parse_one(_object(item, _join(key, i)), _join(key, i)) for i, item in enumerate(items))


def _parse_buffer(obj: dict[str, Any], path: str) -> Buffer:
    uri = _optional(obj, "uri", "string", path)
    return Buffer(
        byte_length=_required(obj, "byteLength", "unsigned", path),
        uri=None if uri is None else parse_uri(uri),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_buffer_view(obj: dict[str, Any], path: str, *, buffers: int) -> BufferView:
    target = obj.get("target")
    return BufferView(
        buffer=_required_index(obj, "buffer", buffers, path),
        byte_offset=_optional(obj, "byteOffset", "unsigned", path, default=0),
        byte_length=_required(obj, "byteLength", "unsigned", path),
        byte_stride=_optional(obj, "byteStride", "unsigned", path),
        target=None if target is None else conversions.buffer_view_target_from_json(target, _join(path, "target")),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_accessor(obj: dict[str, Any], path: str, *, buffer_views: int) -> Accessor:
    if "componentType" not in obj:
        raise SchemaError("missing mandatory field", _join(path, "componentType"))
    if "type" not in obj:
        raise SchemaError("missing mandatory field", _join(path, "type"))
    bounds = {
        key: conversions.number_container_from_json(obj[key], _join(path, key))
        for key in ("min", "max")
        if key in obj
    }
    return Accessor(
        buffer_view=_index(obj, "bufferView", buffer_views, path),
        byte_offset=_optional(obj, "byteOffset", "unsigned", path, default=0),
        component_type=conversions.component_type_from_json(obj["componentType"], _join(path, "componentType")),
        normalized=_optional(obj, "normalized", "boolean", path, default=False),
        count=_required(obj, "count", "unsigned", path),
        type=conversions.accessor_type_from_json(obj["type"], _join(path, "type")),
        min=bounds.get("min"),
        max=bounds.get("max"),
        sparse=copy.deepcopy(_optional(obj, "sparse", "object", path, default={})),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _number(obj: dict[str, Any], key: str, path: str, *, required: bool):
    if key not in obj:
        if required:
            raise SchemaError("missing mandatory field", _join(path, key))
        return None
    return conversions.number_from_json(obj[key], _join(path, key))


def _parse_camera(obj: dict[str, Any], path: str) -> Camera:
    kind = _required(obj, "type", "string", path)
    if kind == "perspective":
        ppath = _join(path, "perspective")
        p = _object(_required(obj, "perspective", "object", path), ppath)
        projection = Perspective(
            aspect_ratio=_number(p, "aspectRatio", ppath, required=False),
            yfov=_number(p, "yfov", ppath, required=True),
            zfar=_number(p, "zfar", ppath, required=False),
            znear=_number(p, "znear", ppath, required=True),
            extensions=_extensions(p, ppath),
            extras=_extras(p),
        )
    elif kind == "orthographic":
        opath = _join(path, "orthographic")
        o = _object(_required(obj, "orthographic", "object", path), opath)
        projection = Orthographic(
            xmag=_number(o, "xmag", opath, required=True),
            ymag=_number(o, "ymag", opath, required=True),
            zfar=_number(o, "zfar", opath, required=True),
            znear=_number(o, "znear", opath, required=True),
            extensions=_extensions(o, opath),
            extras=_extras(o),
        )
    else:
        raise InvalidEnumValue(kind, _join(path, "type"))
    return Camera(
        projection=projection,
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_sampler(obj: dict[str, Any], path: str) -> Sampler:
    mag = obj.get("magFilter")
    min_ = obj.get("minFilter")
    wrap_s = obj.get("wrapS")
    wrap_t = obj.get("wrapT")
    return Sampler(
        mag_filter=None if mag is None else conversions.sampler_mag_filter_from_json(mag, _join(path, "magFilter")),
        min_filter=None if min_ is None else conversions.sampler_min_filter_from_json(min_, _join(path, "minFilter")),
        wrap_s=WrapMode.REPEAT if wrap_s is None else conversions.sampler_wrap_from_json(wrap_s, _join(path, "wrapS")),
        wrap_t=WrapMode.REPEAT if wrap_t is None else conversions.sampler_wrap_from_json(wrap_t, _join(path, "wrapT")),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_image(obj: dict[str, Any], path: str, *, buffer_views: int) -> Image:
    uri = _optional(obj, "uri", "string", path)
    mime = obj.get("mimeType")
    mime_type = None if mime is None else conversions.image_mime_type_from_json(mime, _join(path, "mimeType"))
    if uri is not None:
        source = ImageUriSource(uri=parse_uri(uri))
    elif "bufferView" in obj:
        if mime_type is None:
            raise SchemaError("mimeType is required with bufferView", _join(path, "mimeType"))
        source = ImageBufferViewSource(buffer_view=_required_index(obj, "bufferView", buffer_views, path))
    else:
        raise SchemaError("image needs either uri or bufferView", path)
    return Image(
        source=source,
        mime_type=mime_type,
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_texture(obj: dict[str, Any], path: str, *, samplers: int, images: int) -> Texture:
    return Texture(
        sampler=_index(obj, "sampler", samplers, path),
        source=_index(obj, "source", images, path),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _texture_info(obj: dict[str, Any], key: str, path: str, textures: int, cls: type[T] = TextureInfo, **factors: float) -> T | None:
    raw = obj.get(key)
    if raw is None:
        return None
    ipath = _join(path, key)
    info = _object(raw, ipath)
    kwargs = {name: _float(info, name, ipath, default) for name, default in factors.items()}
    return cls(
        index=_required_index(info, "index", textures, ipath),
        texcoord=_optional(info, "texCoord", "unsigned", ipath, default=0),
        extensions=_extensions(info, ipath),
        extras=_extras(info),
        **kwargs,
    )


def _parse_material(obj: dict[str, Any], path: str, *, textures: int) -> Material:
    pbr = PbrMetallicRoughness()
    if "pbrMetallicRoughness" in obj:
        ppath = _join(path, "pbrMetallicRoughness")
        p = _object(obj["pbrMetallicRoughness"], ppath)
        pbr = PbrMetallicRoughness(
            base_color_factor=_vec(p, "baseColorFactor", 4, ppath) or (1.0, 1.0, 1.0, 1.0),
            base_color_texture=_texture_info(p, "baseColorTexture", ppath, textures),
            metallic_factor=_float(p, "metallicFactor", ppath, 1.0),
            roughness_factor=_float(p, "roughnessFactor", ppath, 1.0),
            metallic_roughness_texture=_texture_info(p, "metallicRoughnessTexture", ppath, textures),
            extensions=_extensions(p, ppath),
            extras=_extras(p),
        )
    alpha_mode = obj.get("alphaMode")
    return Material(
        pbr_metallic_roughness=pbr,
        normal_texture=_texture_info(obj, "normalTexture", path, textures, NormalTextureInfo, scale=1.0),
        occlusion_texture=_texture_info(obj, "occlusionTexture", path, textures, OcclusionTextureInfo, strength=1.0),
        emissive_texture=_texture_info(obj, "emissiveTexture", path, textures),
        emissive_factor=_vec(obj, "emissiveFactor", 3, path) or (0.0, 0.0, 0.0),
        alpha_mode=(
            AlphaMode.OPAQUE if alpha_mode is None
            else conversions.material_alpha_mode_from_json(alpha_mode, _join(path, "alphaMode"))
        ),
        alpha_cutoff=_float(obj, "alphaCutoff", path),
        double_sided=_optional(obj, "doubleSided", "boolean", path, default=False),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _morph_target(obj: dict[str, Any], path: str, accessors: int) -> MorphTarget:
    return MappingProxyType(
        {
            conversions.morph_target_attribute_from_json(key, _join(path, key)): _resolve(value, accessors, _join(path, key))
            for key, value in obj.items()
        }
    )


def _parse_primitive(obj: dict[str, Any], path: str, *, accessors: int, materials: int) -> Primitive:
    apath = _join(path, "attributes")
    attributes = _required(obj, "attributes", "object", path)
    targets: tuple[MorphTarget, ...] = ()
    raw_targets = obj.get("targets")
    if isinstance(raw_targets, list):
        tpath = _join(path, "targets")
        targets = tuple(
            _morph_target(_object(t, _join(tpath, i)), _join(tpath, i), accessors) for i, t in enumerate(raw_targets)
        )
    elif raw_targets is not None:
        # a single flattened target object
        targets = (_morph_target(_object(raw_targets, _join(path, "targets")), _join(path, "targets"), accessors),)
    mode = obj.get("mode")
    return Primitive(
        attributes=MappingProxyType(
            {
                conversions.attribute_from_json(key, _join(apath, key)): _resolve(value, accessors, _join(apath, key))
                for key, value in attributes.items()
            }
        ),
        indices=_index(obj, "indices", accessors, path),
        material=_index(obj, "material", materials, path),
        mode=PrimitiveMode.TRIANGLES if mode is None else conversions.primitive_mode_from_json(mode, _join(path, "mode")),
        targets=targets,
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_mesh(obj: dict[str, Any], path: str, *, accessors: int, materials: int) -> Mesh:
    ppath = _join(path, "primitives")
    primitives = _required(obj, "primitives", "array", path)
    if not primitives:
        raise SchemaError("mesh needs at least one primitive", ppath)
    weights = obj.get("weights")
    return Mesh(
        primitives=tuple(
            _parse_primitive(_object(p, _join(ppath, i)), _join(ppath, i), accessors=accessors, materials=materials)
            for i, p in enumerate(primitives)
        ),
        weights=None if weights is None else _floats(weights, _join(path, "weights")),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_skin(obj: dict[str, Any], path: str, *, accessors: int) -> Skin:
    # skeleton and joints are filled in by _patch_skins
    return Skin(
        inverse_bind_matrices=_index(obj, "inverseBindMatrices", accessors, path),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_node(obj: dict[str, Any], path: str, *, cameras: int, skins: int, meshes: int) -> Node:
    if "matrix" in obj:
        transform = MatrixTransform(matrix=_floats(obj["matrix"], _join(path, "matrix"), 16))
    else:
        transform = TRSTransform(
            translation=_vec(obj, "translation", 3, path),
            rotation=_vec(obj, "rotation", 4, path),
            scale=_vec(obj, "scale", 3, path),
        )
    weights = obj.get("weights")
    # children are filled in by _patch_node_children
    return Node(
        camera=_index(obj, "camera", cameras, path),
        skin=_index(obj, "skin", skins, path),
        transform=transform,
        mesh=_index(obj, "mesh", meshes, path),
        weights=None if weights is None else _floats(weights, _join(path, "weights")),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _patch_node_children(nodes_json: list[Any], nodes: tuple[Node, ...]) -> tuple[Node, ...]:
    patched = []
    for i, (node_json, node) in enumerate(zip(nodes_json, nodes)):
        children = node_json.get("children")
        if children is None:
            patched.append(node)
            continue
        path = _join(_join("nodes", i), "children")
        patched.append(replace(node, children=_indices(children, len(nodes), path)))
    return tuple(patched)


def _patch_skins(skins_json: list[Any], skins: tuple[Skin, ...], nodes: int) -> tuple[Skin, ...]:
    patched = []
    for i, (skin_json, skin) in enumerate(zip(skins_json, skins)):
        path = _join("skins", i)
        patched.append(
            replace(
                skin,
                skeleton=_index(skin_json, "skeleton", nodes, path),
                joints=_indices(_required(skin_json, "joints", "array", path), nodes, _join(path, "joints")),
            )
        )
    return tuple(patched)


def _parse_animation(obj: dict[str, Any], path: str, *, accessors: int, nodes: int) -> Animation:
    spath = _join(path, "samplers")
    samplers = []
    for i, raw in enumerate(_required(obj, "samplers", "array", path)):
        sp = _join(spath, i)
        s = _object(raw, sp)
        interpolation = _optional(s, "interpolation", "string", sp)
        samplers.append(
            AnimationSampler(
                input=_required_index(s, "input", accessors, sp),
                interpolation=(
                    Interpolation.LINEAR if interpolation is None
                    else conversions.animation_sampler_interpolation_from_json(interpolation, _join(sp, "interpolation"))
                ),
                output=_required_index(s, "output", accessors, sp),
                extensions=_extensions(s, sp),
                extras=_extras(s),
            )
        )

    cpath = _join(path, "channels")
    channels = []
    for i, raw in enumerate(_required(obj, "channels", "array", path)):
        cp = _join(cpath, i)
        c = _object(raw, cp)
        tp = _join(cp, "target")
        target = _required(c, "target", "object", cp)
        if "path" not in target:
            raise SchemaError("missing mandatory field", _join(tp, "path"))
        channels.append(
            Channel(
                sampler=_required_index(c, "sampler", len(samplers), cp),
                target=ChannelTarget(
                    node=_index(target, "node", nodes, tp),
                    path=conversions.channel_target_path_from_json(target["path"], _join(tp, "path")),
                    extensions=_extensions(target, tp),
                    extras=_extras(target),
                ),
                extensions=_extensions(c, cp),
                extras=_extras(c),
            )
        )

    return Animation(
        channels=tuple(channels),
        samplers=tuple(samplers),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_scene(obj: dict[str, Any], path: str, *, nodes: int) -> Scene:
    roots = obj.get("nodes")
    return Scene(
        nodes=None if roots is None else _indices(roots, nodes, _join(path, "nodes")),
        name=_optional(obj, "name", "string", path),
        extensions=_extensions(obj, path),
        extras=_extras(obj),
    )


def _parse_asset(root: dict[str, Any]) -> Asset:
    asset = _required(root, "asset", "object", "")
    return Asset(
        copyright=_optional(asset, "copyright", "string", "asset"),
        generator=_optional(asset, "generator", "string", "asset"),
        version=_required(asset, "version", "string", "asset"),
        min_version=_optional(asset, "minVersion", "string", "asset"),
        extensions=_extensions(asset, "asset"),
        extras=_extras(asset),
    )


def _strings(root: dict[str, Any], key: str) -> tuple[str, ...]:
    values = _optional(root, key, "array", "", default=[])
    return tuple(_check(v, "string", _join(key, i)) for i, v in enumerate(values))


def parse(fmt: GltfFormat) -> Model:
    """Resolve the JSON document of ``fmt`` into a :class:`Model`."""

    root = _object(fmt.json, "")
    extensions_used = _strings(root, "extensionsUsed")
    extensions_required = _strings(root, "extensionsRequired")

    buffers = _array(root, "buffers", _parse_buffer)
    buffer_views = _array(root, "bufferViews", lambda o, p: _parse_buffer_view(o, p, buffers=len(buffers)))
    accessors = _array(root, "accessors", lambda o, p: _parse_accessor(o, p, buffer_views=len(buffer_views)))
    cameras = _array(root, "cameras", _parse_camera)
    samplers = _array(root, "samplers", _parse_sampler)
    images = _array(root, "images", lambda o, p: _parse_image(o, p, buffer_views=len(buffer_views)))
    textures = _array(
        root, "textures", lambda o, p: _parse_texture(o, p, samplers=len(samplers), images=len(images))
    )
    materials = _array(root, "materials", lambda o, p: _parse_material(o, p, textures=len(textures)))
    meshes = _array(
        root, "meshes", lambda o, p: _parse_mesh(o, p, accessors=len(accessors), materials=len(materials))
    )
    skins = _array(root, "skins", lambda o, p: _parse_skin(o, p, accessors=len(accessors)))
    nodes = _array(
        root,
        "nodes",
        lambda o, p: _parse_node(o, p, cameras=len(cameras), skins=len(skins), meshes=len(meshes)),
    )

    nodes = _patch_node_children(root.get("nodes", []), nodes)
    skins = _patch_skins(root.get("skins", []), skins, len(nodes))

    animations = _array(
        root, "animations", lambda o, p: _parse_animation(o, p, accessors=len(accessors), nodes=len(nodes))
    )
    scenes = _array(root, "scenes", lambda o, p: _parse_scene(o, p, nodes=len(nodes)))

    asset = _parse_asset(root)
    scene = _index(root, "scene", len(scenes), "")

    logger.debug(
        "parsed glTF %s: %d buffers, %d accessors, %d meshes, %d nodes, %d animations",
        asset.version,
        len(buffers),
        len(accessors),
        len(meshes),
        len(nodes),
        len(animations),
    )
    return Model(
        asset=asset,
        buffers=buffers,
        buffer_views=buffer_views,
        accessors=accessors,
        cameras=cameras,
        images=images,
        materials=materials,
        meshes=meshes,
        nodes=nodes,
        samplers=samplers,
        scenes=scenes,
        skins=skins,
        textures=textures,
        animations=animations,
        scene=scene,
        extensions_used=extensions_used,
        extensions_required=extensions_required,
        extensions=_extensions(root, ""),
        extras=_extras(root),
    )


@dataclass(frozen=True, slots=True)
class Document:
    model: Model
    format: GltfFormat
    working_dir: Path

    def opener(self) -> ResourceOpener:
        return ResourceOpener(self.model, self.format, self.working_dir)


def load(path: str | Path, options: FormatOptions | None = None) -> Document:
    """Decode and parse a ``.gltf`` or ``.glb`` file."""

    path = Path(path)
    fmt = load_format(path, options)
    return Document(model=parse(fmt), format=fmt, working_dir=path.parent)
