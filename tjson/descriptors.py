"""类型描述符与注册表.

描述符是进程级、只读的元数据:
    - `RecordDescriptor`: 记录类型的有序字段表 (键名, 属性名, 结构分类).
    - `EnumDescriptor`: 枚举成员与名称之间的双向映射.

记录类型在导入时注册 (`JsonStruct` 子类自动注册, 其他类通过
`register_record`); 字段的结构分类在首次使用时解析并缓存,
之后注册表只会被读取, 可以被多个独立的序列化调用并发共享.

使用自定义名称的枚举必须在首次使用前通过 `register_enum` 注册;
其他枚举在首次使用时按成员名自动描述. 惰性缓存通过 `setdefault` 写入,
并发的首次访问得到同一个描述符.
"""

import dataclasses
import enum
import typing
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .exceptions import UnknownEnumName, UnknownEnumValue
from .types import Category, resolve_category

T = TypeVar("T")


@dataclass(frozen=True)
class FieldDescriptor:
    """记录中的一个字段.

    Attributes:
        name: 文本中的键名.
        attr: Python 对象上的属性名.
        category: 字段类型的结构分类.
    """

    name: str
    attr: str
    category: Category

    def get(self, obj: Any) -> Any:
        """读取字段值."""
        return getattr(obj, self.attr)


@dataclass(frozen=True)
class RecordDescriptor:
    """记录类型的描述符.

    字段顺序即声明顺序, 决定输出顺序.

    Attributes:
        name: 记录名称 (默认为类名).
        type_: 记录的 Python 类型.
        fields: 有序字段表.
        factory: 根据 `{属性名: 值}` 创建新实例的函数.
    """

    name: str
    type_: type
    fields: tuple[FieldDescriptor, ...]
    factory: Callable[[dict[str, Any]], Any] = field(compare=False)
    _by_key: dict[str, FieldDescriptor] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        by_key: dict[str, FieldDescriptor] = {}
        attrs: set[str] = set()
        for f in self.fields:
            if f.name in by_key:
                raise ValueError(f"Duplicate key {f.name!r} in record {self.name}")
            if f.attr in attrs:
                raise ValueError(f"Duplicate attribute {f.attr!r} in record {self.name}")
            by_key[f.name] = f
            attrs.add(f.attr)
        object.__setattr__(self, "_by_key", by_key)

    def field_for_key(self, key: str) -> FieldDescriptor | None:
        """按键名查找字段, 未知键返回 None."""
        return self._by_key.get(key)


@dataclass(frozen=True)
class EnumDescriptor:
    """枚举类型的描述符: 值与名称之间的双射.

    Attributes:
        name: 枚举名称.
        type_: 枚举的 Python 类型.
        entries: 有序的 `(值, 名称)` 对.
    """

    name: str
    type_: type
    entries: tuple[tuple[Any, str], ...]
    _names: dict[Any, str] = field(init=False, repr=False, compare=False, hash=False)
    _values: dict[str, Any] = field(init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        names: dict[Any, str] = {}
        values: dict[str, Any] = {}
        for value, name in self.entries:
            if value in names:
                raise ValueError(f"Duplicate value {value!r} in enum {self.name}")
            if name in values:
                raise ValueError(f"Duplicate name {name!r} in enum {self.name}")
            names[value] = name
            values[name] = value
        object.__setattr__(self, "_names", names)
        object.__setattr__(self, "_values", values)

    @classmethod
    def from_enum(
        cls, enum_cls: type[enum.Enum], names: dict[Any, str] | None = None
    ) -> "EnumDescriptor":
        """从 Python `enum.Enum` 创建描述符.

        Args:
            enum_cls: 枚举类.
            names: [可选] 自定义名称 `{成员: 名称}`, 未给出的成员使用成员名.

        Raises:
            ValueError: 枚举含有别名 (同一个值对应多个名称), 或名称重复.
        """
        names = names or {}
        aliases = [n for n, m in enum_cls.__members__.items() if m.name != n]
        if aliases:
            raise ValueError(f"Enum {enum_cls.__name__} has aliases: {aliases}")
        entries = tuple((member, names.get(member, member.name)) for member in enum_cls)
        return cls(enum_cls.__name__, enum_cls, entries)

    def name_of(self, value: Any) -> str:
        """返回值对应的名称.

        Raises:
            UnknownEnumValue: 值未注册.
        """
        try:
            return self._names[value]
        except (KeyError, TypeError):
            raise UnknownEnumValue(
                f"Value {value!r} is not registered in enum {self.name}"
            ) from None

    def value_of(self, name: str) -> Any:
        """返回名称对应的值.

        Raises:
            UnknownEnumName: 名称未注册.
        """
        try:
            return self._values[name]
        except KeyError:
            raise UnknownEnumName(
                f"Name {name!r} is not registered in enum {self.name}"
            ) from None


# --- 注册表 ---

_records: dict[type, RecordDescriptor] = {}
_record_builders: dict[type, Callable[[], RecordDescriptor]] = {}
_enums: dict[type, EnumDescriptor] = {}
# 首次使用时按成员名自动描述的枚举
_auto_enums: set[type] = set()


def _register_record_builder(cls: type, builder: Callable[[], RecordDescriptor]) -> None:
    """注册记录类型; 描述符在首次使用时由 builder 构建."""
    if cls in _record_builders:
        raise ValueError(f"Record type {cls.__name__} is already registered")
    _record_builders[cls] = builder


def register_record(
    cls: type[T] | None = None,
    fields: Iterable[str | tuple[str, str]] | None = None,
    *,
    name: str | None = None,
    factory: Callable[[dict[str, Any]], Any] | None = None,
) -> Any:
    """将普通类注册为记录类型.

    可以直接调用, 也可以作为装饰器使用 (带或不带参数).

    Args:
        cls: 要注册的类.
        fields: 字段列表, 元素为属性名或 `(键名, 属性名)`.
            为 None 时使用 dataclass 字段.
        name: 记录名称, 默认为类名.
        factory: 根据 `{属性名: 值}` 创建实例的函数, 默认为 `cls(**values)`.

    Returns:
        注册后的类 (原样返回).

    Raises:
        ValueError: 类型重复注册.
        TypeError: 未给出 fields 且不是 dataclass.

    Examples:
        >>> @register_record
        ... @dataclasses.dataclass
        ... class Position:
        ...     x: float
        ...     y: float
    """
    if cls is None:
        return lambda c: register_record(c, fields, name=name, factory=factory)

    if fields is None:
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls.__name__} is not a dataclass; pass fields explicitly")
        pairs = [(f.name, f.name) for f in dataclasses.fields(cls)]
    else:
        pairs = [(f, f) if isinstance(f, str) else (f[0], f[1]) for f in fields]

    record_name = name or cls.__name__
    record_factory = factory or (lambda values: cls(**values))

    def build() -> RecordDescriptor:
        hints = typing.get_type_hints(cls, include_extras=True)
        field_descriptors = []
        for key, attr in pairs:
            if attr not in hints:
                raise TypeError(f"Field {attr!r} of {cls.__name__} has no type annotation")
            field_descriptors.append(FieldDescriptor(key, attr, resolve_category(hints[attr])))
        return RecordDescriptor(record_name, cls, tuple(field_descriptors), record_factory)

    _register_record_builder(cls, build)
    return cls


def register_enum(
    enum_cls: type[enum.Enum], names: dict[Any, str] | None = None
) -> type[enum.Enum]:
    """注册枚举类型, 可选地使用自定义名称.

    未注册的 `enum.Enum` 子类在首次使用时自动以成员名作为名称,
    所以 `register_enum` 必须在枚举第一次被序列化或解析之前调用 (通常紧跟在类定义之后).

    Raises:
        ValueError: 类型重复注册, 已在首次使用时自动描述, 或名称/值不唯一.
    """
    if enum_cls in _auto_enums:
        raise ValueError(
            f"Enum type {enum_cls.__name__} was already described with its member names "
            "on first use; call register_enum before the enum is used"
        )
    if enum_cls in _enums:
        raise ValueError(f"Enum type {enum_cls.__name__} is already registered")
    _enums[enum_cls] = EnumDescriptor.from_enum(enum_cls, names)
    return enum_cls


def is_record_type(cls: type) -> bool:
    """判断类型是否已注册为记录."""
    return cls in _record_builders


def get_record_descriptor(cls: type) -> RecordDescriptor:
    """获取记录类型的描述符 (首次访问时构建并缓存).

    Raises:
        TypeError: 类型未注册为记录.
    """
    descriptor = _records.get(cls)
    if descriptor is None:
        builder = _record_builders.get(cls)
        if builder is None:
            raise TypeError(f"{cls.__name__} is not a registered record type")
        descriptor = _records.setdefault(cls, builder())
    return descriptor


def get_enum_descriptor(cls: type[enum.Enum]) -> EnumDescriptor:
    """获取枚举类型的描述符; 未注册的枚举在此时以成员名自动描述并缓存."""
    descriptor = _enums.get(cls)
    if descriptor is None:
        descriptor = _enums.setdefault(cls, EnumDescriptor.from_enum(cls))
        _auto_enums.add(cls)
    return descriptor
