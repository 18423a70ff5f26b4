"""Mapping of raw JSON values onto the closed glTF enumerations."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, TypeVar

from .errors import InvalidEnumValue, SchemaError
from .types import (
    AccessorType,
    AlphaMode,
    Attribute,
    BufferViewTarget,
    ChannelPath,
    ComponentType,
    ImageMimeType,
    Interpolation,
    MagFilter,
    MinFilter,
    MorphTargetAttribute,
    Number,
    PrimitiveMode,
    WrapMode,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _lookup(enum_type: type[E], value: Any, path: str, *, numeric: bool) -> E:
    if numeric and not _is_int(value):
        raise InvalidEnumValue(value, path)
    if not numeric and not isinstance(value, str):
        raise InvalidEnumValue(value, path)
    try:
        return enum_type(value)
    except ValueError:
        raise InvalidEnumValue(value, path) from None


def component_type_from_json(value: Any, path: str = "componentType") -> ComponentType:
    return _lookup(ComponentType, value, path, numeric=True)


def accessor_type_from_json(value: Any, path: str = "type") -> AccessorType:
    return _lookup(AccessorType, value, path, numeric=False)


def buffer_view_target_from_json(value: Any, path: str = "target") -> BufferViewTarget:
    return _lookup(BufferViewTarget, value, path, numeric=True)


def sampler_mag_filter_from_json(value: Any, path: str = "magFilter") -> MagFilter:
    return _lookup(MagFilter, value, path, numeric=True)


def sampler_min_filter_from_json(value: Any, path: str = "minFilter") -> MinFilter:
    return _lookup(MinFilter, value, path, numeric=True)


def sampler_wrap_from_json(value: Any, path: str = "wrap") -> WrapMode:
    return _lookup(WrapMode, value, path, numeric=True)


def material_alpha_mode_from_json(value: Any, path: str = "alphaMode") -> AlphaMode:
    return _lookup(AlphaMode, value, path, numeric=False)


def attribute_from_json(value: Any, path: str = "attributes") -> Attribute:
    return _lookup(Attribute, value, path, numeric=False)


def morph_target_attribute_from_json(value: Any, path: str = "targets") -> MorphTargetAttribute:
    return _lookup(MorphTargetAttribute, value, path, numeric=False)


def primitive_mode_from_json(value: Any, path: str = "mode") -> PrimitiveMode:
    return _lookup(PrimitiveMode, value, path, numeric=True)


def channel_target_path_from_json(value: Any, path: str = "path") -> ChannelPath:
    return _lookup(ChannelPath, value, path, numeric=False)


def image_mime_type_from_json(value: Any, path: str = "mimeType") -> ImageMimeType:
    return _lookup(ImageMimeType, value, path, numeric=False)


def animation_sampler_interpolation_from_json(value: Any, path: str = "interpolation") -> Interpolation:
    """Map an interpolation name.

    STEP and CATMULLROMSPLINE are reported as LINEAR, which is what existing
    consumers of this model have always been given. Only CUBICSPLINE stays
    distinct.
    """

    mode = _lookup(Interpolation, value, path, numeric=False)
    if mode in (Interpolation.STEP, Interpolation.CATMULLROMSPLINE):
        logger.warning("%s: interpolation %s is treated as LINEAR", path, mode.value)
        return Interpolation.LINEAR
    return mode


def number_from_json(value: Any, path: str = "") -> Number:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError("expected a number", path)
    if isinstance(value, float):
        return Number.decimal(value)
    if value < 0:
        return Number.signed(value)
    return Number.unsigned(value)


def number_container_from_json(value: Any, path: str = "") -> tuple[Number, ...]:
    if not isinstance(value, list):
        raise SchemaError("expected an array", path)
    return tuple(number_from_json(v, f"{path}[{i}]") for i, v in enumerate(value))
