"""Tests for enum mapping and numeric conversions."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from gltfscene import conversions
from gltfscene.errors import InvalidEnumValue, SchemaError
from gltfscene.types import (
    AccessorType,
    Attribute,
    ComponentType,
    Interpolation,
    MinFilter,
    Number,
    NumberKind,
    WrapMode,
)


def test_component_type_codes() -> None:
    assert conversions.component_type_from_json(5126) is ComponentType.FLOAT
    assert conversions.component_type_from_json(5120) is ComponentType.BYTE


@pytest.mark.parametrize("value", [5127, 5124, 0, "5126", True, 5126.0])
def test_component_type_rejects_unknown_codes(value) -> None:
    with pytest.raises(InvalidEnumValue):
        conversions.component_type_from_json(value, "accessors[0].componentType")


def test_invalid_enum_reports_path_and_value() -> None:
    with pytest.raises(InvalidEnumValue) as info:
        conversions.material_alpha_mode_from_json("CLIP", "materials[2].alphaMode")

    assert info.value.path == "materials[2].alphaMode"
    assert info.value.value == "CLIP"
    assert "materials[2].alphaMode" in str(info.value)


def test_accessor_type_is_case_sensitive() -> None:
    assert conversions.accessor_type_from_json("MAT4") is AccessorType.MAT4
    with pytest.raises(InvalidEnumValue):
        conversions.accessor_type_from_json("vec3")


def test_attribute_names() -> None:
    assert conversions.attribute_from_json("TEXCOORD_1") is Attribute.TEXCOORD_1
    with pytest.raises(InvalidEnumValue):
        conversions.attribute_from_json("TEXCOORD_2")


def test_morph_target_attributes_are_a_subset() -> None:
    with pytest.raises(InvalidEnumValue):
        conversions.morph_target_attribute_from_json("COLOR_0")


def test_sampler_codes() -> None:
    assert conversions.sampler_wrap_from_json(33648) is WrapMode.MIRRORED_REPEAT
    assert conversions.sampler_min_filter_from_json(9987) is MinFilter.LINEAR_MIPMAP_LINEAR
    with pytest.raises(InvalidEnumValue):
        conversions.sampler_mag_filter_from_json(9984)


def test_interpolation_step_and_catmull_rom_collapse_to_linear(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="gltfscene.conversions"):
        assert conversions.animation_sampler_interpolation_from_json("STEP") is Interpolation.LINEAR
        assert conversions.animation_sampler_interpolation_from_json("CATMULLROMSPLINE") is Interpolation.LINEAR

    assert conversions.animation_sampler_interpolation_from_json("CUBICSPLINE") is Interpolation.CUBICSPLINE
    assert "STEP" in caplog.text


def test_number_kinds_follow_the_json_literal() -> None:
    assert conversions.number_from_json(3) == Number(NumberKind.UNSIGNED, 3)
    assert conversions.number_from_json(-3) == Number(NumberKind.SIGNED, -3)
    assert conversions.number_from_json(3.0) == Number(NumberKind.DECIMAL, 3.0)


@pytest.mark.parametrize("value", [True, "1", None, [1]])
def test_number_rejects_non_numbers(value) -> None:
    with pytest.raises(SchemaError):
        conversions.number_from_json(value, "cameras[0].perspective.yfov")


def test_number_container_requires_array() -> None:
    assert conversions.number_container_from_json([1, -1, 0.5]) == (
        Number.unsigned(1),
        Number.signed(-1),
        Number.decimal(0.5),
    )
    with pytest.raises(SchemaError):
        conversions.number_container_from_json({"x": 1}, "accessors[0].min")


def test_number_as_integer_range_checks() -> None:
    assert Number.unsigned(2**31 - 1).as_integer() == 2**31 - 1
    assert Number.unsigned(2**31).as_integer() is None
    assert Number.signed(-5).as_integer() == -5
    assert Number.decimal(1.0).as_integer() is None


def test_number_as_unsigned_integer_range_checks() -> None:
    assert Number.signed(-1).as_unsigned_integer() is None
    assert Number.unsigned(2**32 - 1).as_unsigned_integer() == 2**32 - 1
    assert Number.unsigned(2**32).as_unsigned_integer() is None
    assert Number.decimal(2.5).as_unsigned_integer() is None


def test_number_as_decimal_widens_integers() -> None:
    assert Number.signed(-2).as_decimal() == -2.0
    assert Number.unsigned(7).as_decimal() == 7.0
    assert Number.decimal(0.25).as_decimal() == 0.25


def test_component_type_sizes_and_dtypes() -> None:
    assert ComponentType.UNSIGNED_SHORT.byte_size == 2
    assert ComponentType.FLOAT.dtype == np.dtype("<f4")
    assert AccessorType.MAT3.component_count == 9
