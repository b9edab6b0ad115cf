"""tjson 基础类型与结构分类测试.

覆盖 tjson.types 模块的核心特性:
1. 宽度标记的值验证 (validate)
2. 类型注解解析 (resolve_category)
3. 运行时值推断 (category_of_value)
4. 单精度舍入 (to_float32)
"""

import enum
from collections.abc import Mapping, Sequence
from typing import AbstractSet, Annotated, Optional

import pytest

from tjson import JsonCodec, JsonStruct, types
from tjson.exceptions import TypeMismatch
from tjson.types import (
    CustomCategory,
    EnumCategory,
    ListCategory,
    MapCategory,
    NullableCategory,
    PrimitiveCategory,
    PrimitiveKind,
    RecordCategory,
    SetCategory,
    category_of_value,
    resolve_category,
    to_float32,
)


class Shape(enum.Enum):
    CIRCLE = 0
    SQUARE = 1


class Box(JsonStruct):
    size: int = 0


class Blob(JsonCodec):
    def save(self, serializer):
        serializer.write_members()

    def load(self, deserializer):
        deserializer.read_members()


def prim(kind: PrimitiveKind) -> PrimitiveCategory:
    return PrimitiveCategory(kind)


# --- 测试数据: 类型验证 ---

VALIDATE_CASES = [
    # (TypeClass, value, should_pass)
    (types.INT8, 127, True),
    (types.INT8, 128, False),
    (types.INT8, -129, False),
    (types.UINT8, 255, True),
    (types.UINT8, -1, False),
    (types.INT64, True, False),  # bool 不是整数
    (types.INT32, "1", False),
    (types.UINT64, 2**64 - 1, True),
    (types.BOOL, True, True),
    (types.BOOL, 1, False),
    (types.STRING, "x", True),
    (types.STRING, b"x", False),
    (types.DOUBLE, 1.5, True),
    (types.DOUBLE, 3, True),
    (types.DOUBLE, float("nan"), False),
    (types.FLOAT, float("inf"), False),
]


@pytest.mark.parametrize(("cls", "value", "should_pass"), VALIDATE_CASES)
def test_types_validate(cls, value, should_pass):
    """JsonType.validate() 应正确接受有效输入并拒绝无效输入."""
    if should_pass:
        assert cls.validate(value) == value
    else:
        with pytest.raises(TypeMismatch):
            cls.validate(value)


def test_type_mismatch_is_type_error() -> None:
    """TypeMismatch 同时是 TypeError."""
    with pytest.raises(TypeError):
        types.INT8.validate(1000)


def test_primitive_kind_properties() -> None:
    """PrimitiveKind 的范围和分类属性."""
    assert PrimitiveKind.UINT8.bounds == (0, 255)
    assert PrimitiveKind.INT16.bounds == (-32768, 32767)
    assert PrimitiveKind.UINT32.is_unsigned
    assert not PrimitiveKind.INT32.is_unsigned
    assert PrimitiveKind.FLOAT.is_float
    assert not PrimitiveKind.FLOAT.is_integer
    assert not PrimitiveKind.STRING.is_unsigned
    with pytest.raises(TypeError):
        _ = PrimitiveKind.STRING.bounds


# --- 测试数据: 类型注解解析 ---

RESOLVE_CASES = [
    (int, prim(PrimitiveKind.INT64)),
    (float, prim(PrimitiveKind.DOUBLE)),
    (bool, prim(PrimitiveKind.BOOL)),
    (str, prim(PrimitiveKind.STRING)),
    (types.UINT16, prim(PrimitiveKind.UINT16)),
    (Annotated[int, types.INT8], prim(PrimitiveKind.INT8)),
    (Annotated[float, types.FLOAT], prim(PrimitiveKind.FLOAT)),
    (list[Annotated[float, types.FLOAT]], ListCategory(prim(PrimitiveKind.FLOAT))),
    (int | None, NullableCategory(prim(PrimitiveKind.INT64))),
    (Optional[str], NullableCategory(prim(PrimitiveKind.STRING))),
    (list[str], ListCategory(prim(PrimitiveKind.STRING))),
    (Sequence[int], ListCategory(prim(PrimitiveKind.INT64))),
    (tuple[int, ...], ListCategory(prim(PrimitiveKind.INT64), tuple)),
    (set[str], SetCategory(prim(PrimitiveKind.STRING))),
    (frozenset[int], SetCategory(prim(PrimitiveKind.INT64), frozenset)),
    (AbstractSet[int], SetCategory(prim(PrimitiveKind.INT64), frozenset)),
    (
        dict[str, float],
        MapCategory(prim(PrimitiveKind.STRING), prim(PrimitiveKind.DOUBLE)),
    ),
    (
        Mapping[Shape, list[int]],
        MapCategory(EnumCategory(Shape), ListCategory(prim(PrimitiveKind.INT64))),
    ),
    (Shape, EnumCategory(Shape)),
    (Box, RecordCategory(Box)),
    (list[Box | None], ListCategory(NullableCategory(RecordCategory(Box)))),
    (Blob, CustomCategory(Blob)),
]


@pytest.mark.parametrize(("annotation", "expected"), RESOLVE_CASES)
def test_resolve_category(annotation, expected):
    """resolve_category() 应把类型注解解析为对应的结构分类."""
    assert resolve_category(annotation) == expected


@pytest.mark.parametrize(
    ("annotation", "json_type", "expected"),
    [
        (float, types.FLOAT, prim(PrimitiveKind.FLOAT)),
        (int, types.UINT8, prim(PrimitiveKind.UINT8)),
        (int, types.DOUBLE, prim(PrimitiveKind.DOUBLE)),
        (list[float], types.FLOAT, ListCategory(prim(PrimitiveKind.FLOAT))),
        (
            dict[str, int],
            types.INT16,
            MapCategory(prim(PrimitiveKind.STRING), prim(PrimitiveKind.INT16)),
        ),
        (int | None, types.INT8, NullableCategory(prim(PrimitiveKind.INT8))),
    ],
)
def test_resolve_category_with_json_type(annotation, json_type, expected):
    """json_type 应作用于最内层的基础类型, 映射键除外."""
    assert resolve_category(annotation, json_type) == expected


@pytest.mark.parametrize(
    ("annotation", "json_type"),
    [
        (int | str, None),
        (list, None),
        (dict, None),
        (tuple[int, str], None),
        (dict[list[int], int], None),
        (dict[Box, int], None),
        (object, None),
        (bytes, None),
        (str, types.INT8),
        (float, types.INT32),
        (Shape, types.INT8),
    ],
)
def test_resolve_category_errors(annotation, json_type):
    """无法序列化的注解应在解析时抛出 TypeError."""
    with pytest.raises(TypeError):
        resolve_category(annotation, json_type)


def test_categories_are_hashable() -> None:
    """结构分类按值比较且可哈希."""
    a = ListCategory(NullableCategory(prim(PrimitiveKind.INT32)))
    b = ListCategory(NullableCategory(prim(PrimitiveKind.INT32)))
    assert a == b
    assert len({a, b}) == 1


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (5, prim(PrimitiveKind.INT64)),
        (1.5, prim(PrimitiveKind.DOUBLE)),
        (True, prim(PrimitiveKind.BOOL)),
        ("s", prim(PrimitiveKind.STRING)),
        (Shape.SQUARE, EnumCategory(Shape)),
        (Box(), RecordCategory(Box)),
        (Blob(), CustomCategory(Blob)),
    ],
)
def test_category_of_value(value, expected):
    """category_of_value() 应根据运行时类型推断分类."""
    assert category_of_value(value) == expected


@pytest.mark.parametrize("value", [None, [1], {"a": 1}, {1}, (1,)])
def test_category_of_value_needs_type(value):
    """None 和容器无法推断元素类型."""
    with pytest.raises(TypeError):
        category_of_value(value)


def test_to_float32() -> None:
    """to_float32() 应舍入到单精度, 溢出时报错."""
    assert to_float32(0.5) == 0.5
    assert to_float32(42.1) != 42.1
    assert abs(to_float32(42.1) - 42.1) < 1e-5
    with pytest.raises(TypeMismatch):
        to_float32(1e39)
