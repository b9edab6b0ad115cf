"""tjson 数据类型模块.

本模块定义了:
    - `PrimitiveKind`: 所有基础类型 (布尔、字符串、定宽整数、浮点数).
    - 宽度标记类 (`INT8`、`FLOAT` 等): 用于覆盖默认的类型推断.
    - 结构分类 (`Category`): 描述一个类型应当如何被序列化的封闭联合类型.
    - `resolve_category()`: 将类型注解解析为结构分类.
"""

import abc
import collections.abc
import enum
import math
import struct
import types as stdlib_types
from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    ClassVar,
    Union,
    get_args,
    get_origin,
)

from .exceptions import TypeMismatch


class PrimitiveKind(enum.Enum):
    """基础类型种类."""

    BOOL = "bool"
    STRING = "string"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT = "float"
    DOUBLE = "double"

    @property
    def is_integer(self) -> bool:
        """是否为定宽整数类型."""
        return self in _INT_BOUNDS

    @property
    def is_float(self) -> bool:
        """是否为浮点类型."""
        return self is PrimitiveKind.FLOAT or self is PrimitiveKind.DOUBLE

    @property
    def is_unsigned(self) -> bool:
        """是否为无符号整数类型."""
        return self.is_integer and _INT_BOUNDS[self][0] == 0

    @property
    def bounds(self) -> tuple[int, int]:
        """整数类型的闭区间取值范围.

        Raises:
            TypeError: 如果不是整数类型.
        """
        try:
            return _INT_BOUNDS[self]
        except KeyError:
            raise TypeError(f"{self.name} has no integer bounds") from None


_INT_BOUNDS: dict[PrimitiveKind, tuple[int, int]] = {
    PrimitiveKind.INT8: (-(2**7), 2**7 - 1),
    PrimitiveKind.INT16: (-(2**15), 2**15 - 1),
    PrimitiveKind.INT32: (-(2**31), 2**31 - 1),
    PrimitiveKind.INT64: (-(2**63), 2**63 - 1),
    PrimitiveKind.UINT8: (0, 2**8 - 1),
    PrimitiveKind.UINT16: (0, 2**16 - 1),
    PrimitiveKind.UINT32: (0, 2**32 - 1),
    PrimitiveKind.UINT64: (0, 2**64 - 1),
}

_FLOAT32 = struct.Struct("<f")


def to_float32(value: float) -> float:
    """将浮点数舍入到 IEEE 单精度.

    Raises:
        TypeMismatch: 如果数值超出单精度范围.
    """
    try:
        return float(_FLOAT32.unpack(_FLOAT32.pack(value))[0])
    except OverflowError:
        raise TypeMismatch(f"Value {value!r} is out of range for FLOAT") from None


def check_value(kind: PrimitiveKind, value: Any) -> Any:
    """检查值是否可以按指定基础类型写出.

    Args:
        kind: 目标基础类型.
        value: 待检查的值.

    Returns:
        Any: 原值.

    Raises:
        TypeMismatch: 类型不匹配或超出范围时.
    """
    if kind is PrimitiveKind.BOOL:
        if not isinstance(value, bool):
            raise TypeMismatch(f"Expected bool, got {type(value).__name__}")
    elif kind is PrimitiveKind.STRING:
        if not isinstance(value, str):
            raise TypeMismatch(f"Expected str, got {type(value).__name__}")
    elif kind.is_integer:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeMismatch(f"Expected int, got {type(value).__name__}")
        low, high = kind.bounds
        if not low <= value <= high:
            raise TypeMismatch(f"Value {value} is out of range for {kind.name}")
    else:
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise TypeMismatch(f"Expected float, got {type(value).__name__}")
        try:
            finite = math.isfinite(value)
        except OverflowError:
            raise TypeMismatch(f"Value {value!r} is out of range for {kind.name}") from None
        if not finite:
            raise TypeMismatch(f"Non-finite value {value!r} cannot be written")
    return value


class JsonType(abc.ABC):
    """宽度标记的基类.

    用于在 `JsonField(json_type=...)` 或 `Annotated[int, INT8]` 中显式指定
    基础类型, 覆盖默认推断 (`int` -> `INT64`, `float` -> `DOUBLE`).
    """

    kind: ClassVar[PrimitiveKind]

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> Any:
        from pydantic_core import core_schema

        return core_schema.any_schema()

    @classmethod
    def validate(cls, value: Any) -> Any:
        """验证值是否符合类型要求.

        Args:
            value: 待验证的值.

        Returns:
            Any: 验证后的值.

        Raises:
            TypeMismatch: 值无效或类型不匹配时 (同时是 `TypeError`).
        """
        return check_value(cls.kind, value)


class BOOL(JsonType):
    """布尔值, 输出为 `true` / `false`."""

    kind = PrimitiveKind.BOOL


class STRING(JsonType):
    """双引号字符串."""

    kind = PrimitiveKind.STRING


class INT8(JsonType):
    """有符号 8 位整数. 范围: -128 到 127."""

    kind = PrimitiveKind.INT8


class INT16(JsonType):
    """有符号 16 位整数. 范围: -32768 到 32767."""

    kind = PrimitiveKind.INT16


class INT32(JsonType):
    """有符号 32 位整数."""

    kind = PrimitiveKind.INT32


class INT64(JsonType):
    """有符号 64 位整数 (`int` 的默认类型)."""

    kind = PrimitiveKind.INT64


class UINT8(JsonType):
    """无符号 8 位整数. 范围: 0 到 255."""

    kind = PrimitiveKind.UINT8


class UINT16(JsonType):
    """无符号 16 位整数."""

    kind = PrimitiveKind.UINT16


class UINT32(JsonType):
    """无符号 32 位整数."""

    kind = PrimitiveKind.UINT32


class UINT64(JsonType):
    """无符号 64 位整数."""

    kind = PrimitiveKind.UINT64


class FLOAT(JsonType):
    """单精度浮点数.

    写出时使用能在单精度下无损往返的最短表示 (如 `42.1`),
    读取时舍入到单精度.
    """

    kind = PrimitiveKind.FLOAT


class DOUBLE(JsonType):
    """双精度浮点数 (`float` 的默认类型)."""

    kind = PrimitiveKind.DOUBLE


# --- 结构分类 ---


@dataclass(frozen=True)
class PrimitiveCategory:
    """基础类型, 直接交给读写器."""

    kind: PrimitiveKind


@dataclass(frozen=True)
class RecordCategory:
    """记录 (结构体), 按描述符中的字段顺序读写.

    只保存类型本身, 描述符在使用时从注册表获取, 以支持自引用类型.
    """

    type_: type

    @property
    def descriptor(self) -> Any:
        """该记录类型的 `RecordDescriptor`."""
        from .descriptors import get_record_descriptor

        return get_record_descriptor(self.type_)


@dataclass(frozen=True)
class EnumCategory:
    """枚举, 按名称读写."""

    type_: type

    @property
    def descriptor(self) -> Any:
        """该枚举类型的 `EnumDescriptor`."""
        from .descriptors import get_enum_descriptor

        return get_enum_descriptor(self.type_)


@dataclass(frozen=True)
class MapCategory:
    """映射, 输出为对象; 键必须是基础类型或枚举."""

    key: "PrimitiveCategory | EnumCategory"
    value: "Category"


@dataclass(frozen=True)
class SetCategory:
    """集合, 输出为数组."""

    elem: "Category"
    container: type = set


@dataclass(frozen=True)
class ListCategory:
    """列表 (或同构元组), 输出为数组."""

    elem: "Category"
    container: type = list


@dataclass(frozen=True)
class NullableCategory:
    """可空值: `null` 或内部值本身 (没有包装对象)."""

    inner: "Category"


@dataclass(frozen=True)
class CustomCategory:
    """自定义编解码器 (`JsonCodec` 子类), 由类型自己的 save/load 完成读写."""

    type_: type


Category = (
    PrimitiveCategory
    | RecordCategory
    | EnumCategory
    | MapCategory
    | SetCategory
    | ListCategory
    | NullableCategory
    | CustomCategory
)

_DEFAULT_KINDS: dict[Any, PrimitiveKind] = {
    bool: PrimitiveKind.BOOL,
    str: PrimitiveKind.STRING,
    int: PrimitiveKind.INT64,
    float: PrimitiveKind.DOUBLE,
}

_LIST_ORIGINS = {
    list: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
}
_SET_ORIGINS = {
    set: set,
    frozenset: frozenset,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
}
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def _is_marker(obj: Any) -> bool:
    return isinstance(obj, type) and issubclass(obj, JsonType) and obj is not JsonType


def _override_kind(annotation: Any, json_type: type[JsonType]) -> PrimitiveKind:
    """检查宽度标记能否作用于给定的 Python 类型."""
    kind = json_type.kind
    compatible = (
        (kind is PrimitiveKind.BOOL and annotation is bool)
        or (kind is PrimitiveKind.STRING and annotation is str)
        or (kind.is_integer and annotation is int)
        or (kind.is_float and annotation in (float, int))
    )
    if not compatible:
        raise TypeError(f"json_type {json_type.__name__} cannot apply to {annotation!r}")
    return kind


def resolve_category(annotation: Any, json_type: type[JsonType] | None = None) -> Category:
    """将类型注解解析为结构分类.

    Args:
        annotation: 类型注解 (如 `int`, `list[Player]`, `Color | None`).
        json_type: [可选] 宽度标记, 作用于注解中最内层的基础类型
            (例如 `list[float]` 配合 `FLOAT` 表示单精度元素).

    Returns:
        Category: 对应的结构分类.

    Raises:
        TypeError: 注解无法被序列化 (非 Optional 的 Union、缺少类型参数的容器、
            未注册的类等).
    """
    origin = get_origin(annotation)

    # Annotated[X, INT8, ...]
    if origin is Annotated:
        base, *metadata = get_args(annotation)
        markers = [m for m in metadata if _is_marker(m)]
        if json_type is None and markers:
            json_type = markers[0]
        return resolve_category(base, json_type)

    # 处理 Optional
    if origin is Union or origin is stdlib_types.UnionType:
        args = get_args(annotation)
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1 and len(args) == 2:
            return NullableCategory(resolve_category(non_none[0], json_type))
        raise TypeError(f"Union type not supported: {annotation}")

    if origin is not None:
        args = get_args(annotation)
        if not args:
            raise TypeError(f"{annotation!r} requires type parameters, e.g. list[int]")
        if origin in _LIST_ORIGINS:
            (elem,) = args
            return ListCategory(resolve_category(elem, json_type), _LIST_ORIGINS[origin])
        if origin is tuple:
            if len(args) != 2 or args[1] is not Ellipsis:
                raise TypeError(f"Only homogeneous tuple[X, ...] is supported: {annotation}")
            return ListCategory(resolve_category(args[0], json_type), tuple)
        if origin in _SET_ORIGINS:
            (elem,) = args
            return SetCategory(resolve_category(elem, json_type), _SET_ORIGINS[origin])
        if origin in _MAP_ORIGINS:
            key_ann, value_ann = args
            key = resolve_category(key_ann)
            if not isinstance(key, PrimitiveCategory | EnumCategory):
                raise TypeError(f"Map key must be a primitive or enum type, got {key_ann!r}")
            return MapCategory(key, resolve_category(value_ann, json_type))
        raise TypeError(f"Unsupported type: {annotation}")

    if annotation in (list, tuple, set, frozenset, dict):
        raise TypeError(f"{annotation.__name__} requires type parameters, e.g. list[int]")

    if _is_marker(annotation):
        return PrimitiveCategory(annotation.kind)

    if annotation in _DEFAULT_KINDS:
        if json_type is not None:
            return PrimitiveCategory(_override_kind(annotation, json_type))
        return PrimitiveCategory(_DEFAULT_KINDS[annotation])

    if isinstance(annotation, type):
        category = _resolve_class(annotation)
        if category is not None:
            if json_type is not None:
                raise TypeError(
                    f"json_type {json_type.__name__} cannot apply to {annotation.__name__}"
                )
            return category

    raise TypeError(f"Unsupported type for {annotation!r}")


def _resolve_class(cls: type) -> Category | None:
    from .descriptors import is_record_type
    from .struct import JsonCodec

    if issubclass(cls, enum.Enum):
        return EnumCategory(cls)
    if issubclass(cls, JsonCodec):
        return CustomCategory(cls)
    if is_record_type(cls):
        return RecordCategory(cls)
    return None


def category_of_value(value: Any) -> Category:
    """根据运行时值推断结构分类.

    仅适用于基础类型、枚举、记录和自定义编解码器;
    容器和 `None` 无法推断元素类型, 必须显式给出注解.

    Raises:
        TypeError: 无法推断时.
    """
    if value is None:
        raise TypeError("Cannot infer a type from None; pass an explicit Optional type")
    if isinstance(value, list | tuple | set | frozenset | dict):
        raise TypeError(
            f"Cannot infer element types of {type(value).__name__}; pass an explicit type"
        )
    return resolve_category(type(value))
