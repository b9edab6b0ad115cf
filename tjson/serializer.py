"""序列化引擎.

`Serializer` 和 `Deserializer` 按结构分类遍历值, 调用文本写入器/读取器完成读写.
分类在类型层面解析 (而不是按实例探测), 分派是一个封闭的 isinstance 链.
"""

from collections.abc import Iterator, Mapping, MutableMapping, MutableSet
from dataclasses import dataclass
from typing import Any, get_origin

from .config import JsonConfig
from .exceptions import (
    TJsonDecodeError,
    TJsonTypeError,
    TJsonValueError,
    TypeMismatch,
    UnknownEnumName,
    UnknownKeyError,
)
from .log import logger
from .reader import TextReader, split_number, to_float, to_int
from .types import (
    Category,
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
    check_value,
    resolve_category,
)
from .writer import TextWriter, format_float, format_int

_ROOT_CATEGORIES = (RecordCategory, MapCategory, CustomCategory)


@dataclass(frozen=True)
class Member:
    """命名成员: 一个 (名称, 值, 类型) 三元组.

    Attributes:
        name: 文本中的键名.
        value: 写出时的值; 读取时作为容器/记录的当前值.
        type_: [可选] 类型注解或宽度标记, 默认按 value 的运行时类型推断.
    """

    name: str
    value: Any = None
    type_: Any = None

    @property
    def category(self) -> Category:
        """成员的结构分类."""
        if self.type_ is not None:
            return resolve_category(self.type_)
        return category_of_value(self.value)


def vmember(name: str, value: Any = None, type_: Any = None) -> Member:
    """创建命名成员.

    Examples:
        >>> from tjson.types import FLOAT
        >>> vmember("a", 42.1, FLOAT)
        Member(name='a', value=42.1, type_=<class 'tjson.types.FLOAT'>)
    """
    return Member(name, value, type_)


def _index_members(members: tuple[Member, ...]) -> dict[str, Member]:
    by_name: dict[str, Member] = {}
    for member in members:
        if member.name in by_name:
            raise ValueError(f"Duplicate member name {member.name!r}")
        by_name[member.name] = member
    return by_name


class Serializer:
    """具有循环引用检测的递归序列化器."""

    __slots__ = ("_config", "_encoding_stack", "_writer")

    _writer: TextWriter
    _config: JsonConfig
    _encoding_stack: set[int]

    def __init__(self, writer: TextWriter, config: JsonConfig):
        self._writer = writer
        self._config = config
        # 跟踪正在编码的对象以检测循环引用
        self._encoding_stack = set()

    @property
    def config(self) -> JsonConfig:
        return self._config

    @property
    def context(self) -> dict[str, Any]:
        """用户提供的上下文, 供自定义编解码器使用."""
        return self._config.context

    def write(self, value: Any, type_: Any = None) -> None:
        """写出根值.

        Args:
            value: 要写出的值.
            type_: [可选] 类型注解, 默认为 `type(value)`.

        Raises:
            TJsonTypeError: 根值不是记录、映射或自定义编解码器.
        """
        try:
            category = resolve_category(type_ if type_ is not None else type(value))
        except TypeError as e:
            raise TJsonTypeError(str(e)) from e
        self.write_document(value, category)

    def write_document(self, value: Any, category: Category) -> None:
        """按已解析的分类写出根值."""
        if not isinstance(category, _ROOT_CATEGORIES):
            raise TJsonTypeError(
                f"The document root must be a record, map or custom codec, got {category}"
            )
        self.write_value(value, category)

    def write_members(self, *members: Member) -> None:
        """以命名成员模式写出一个对象, 键的顺序即参数顺序.

        Raises:
            ValueError: 成员名称重复.
        """
        _index_members(members)
        resolved = []
        for member in members:
            try:
                resolved.append((member, member.category))
            except TypeError as e:
                raise TJsonTypeError(f"Member {member.name!r}: {e}") from e

        self._writer.begin_object()
        for member, category in resolved:
            self._writer.write_key(member.name)
            self.write_value(member.value, category)
        self._writer.end_current()

    def _enter(self, value: Any) -> int:
        obj_id = id(value)
        if obj_id in self._encoding_stack:
            raise TJsonValueError(f"Circular reference in {type(value).__name__}")
        self._encoding_stack.add(obj_id)
        return obj_id

    def write_value(self, value: Any, category: Category) -> None:
        """按结构分类写出一个值.

        Raises:
            TJsonTypeError: 值与分类不符.
            TJsonValueError: 检测到循环引用.
            TypeMismatch: 基础类型的值超出范围.
            UnknownEnumValue: 枚举值未注册.
        """
        if isinstance(category, PrimitiveCategory):
            self._writer.write(value, category.kind)
        elif isinstance(category, NullableCategory):
            if value is None:
                self._writer.write_null()
            else:
                self.write_value(value, category.inner)
        elif isinstance(category, EnumCategory):
            self._writer.write_string(category.descriptor.name_of(value))
        else:
            obj_id = self._enter(value)
            try:
                self._write_composite(value, category)
            finally:
                self._encoding_stack.discard(obj_id)

    def _write_composite(self, value: Any, category: Category) -> None:
        if isinstance(category, RecordCategory):
            if not isinstance(value, category.type_):
                raise TJsonTypeError(
                    f"Expected {category.type_.__name__}, got {type(value).__name__}"
                )
            self._writer.begin_object()
            for field in category.descriptor.fields:
                self._writer.write_key(field.name)
                self.write_value(field.get(value), field.category)
            self._writer.end_current()

        elif isinstance(category, MapCategory):
            if not isinstance(value, Mapping):
                raise TJsonTypeError(f"Expected a mapping, got {type(value).__name__}")
            items: list[tuple[Any, Any]] = list(value.items())
            if self._config.sort_collections:
                sort_key = self._sort_key(category.key)
                items = self._sorted(items, lambda kv: sort_key(kv[0]), value)
            self._writer.begin_object()
            for key, item in items:
                self._writer.write_key(self._key_text(key, category.key))
                self.write_value(item, category.value)
            self._writer.end_current()

        elif isinstance(category, ListCategory | SetCategory):
            if isinstance(value, str | bytes) or not hasattr(value, "__iter__"):
                raise TJsonTypeError(f"Expected a collection, got {type(value).__name__}")
            elements: Any = value
            if isinstance(category, SetCategory) and self._config.sort_collections:
                elements = self._sorted(value, self._sort_key(category.elem), value)
            self._writer.begin_array()
            for element in elements:
                self.write_value(element, category.elem)
            self._writer.end_current()

        elif isinstance(category, CustomCategory):
            if not isinstance(value, category.type_):
                raise TJsonTypeError(
                    f"Expected {category.type_.__name__}, got {type(value).__name__}"
                )
            value.save(self)

        else:
            raise TJsonTypeError(f"Cannot encode category {category!r}")

    @staticmethod
    def _sort_key(category: Category) -> Any:
        """集合元素/映射键的排序键: 枚举按名称, 其他按值本身."""
        if isinstance(category, EnumCategory):
            return category.descriptor.name_of
        return lambda v: v

    @staticmethod
    def _sorted(items: Any, key: Any, container: Any) -> list[Any]:
        try:
            return sorted(items, key=key)
        except TypeError as e:
            raise TJsonTypeError(
                f"Cannot sort elements of {type(container).__name__}: {e}"
            ) from e

    @staticmethod
    def _key_text(key: Any, category: Category) -> str:
        """映射键的文本形式."""
        if isinstance(category, EnumCategory):
            return category.descriptor.name_of(key)
        kind = category.kind
        if kind is PrimitiveKind.STRING:
            return check_value(kind, key)
        if kind is PrimitiveKind.BOOL:
            check_value(kind, key)
            return "true" if key else "false"
        if kind.is_integer:
            return format_int(key, kind)
        return format_float(key, kind)


class Deserializer:
    """递归反序列化器.

    新值通过记录描述符的 factory 构建; 传入已有实例时原地更新.
    出错时沿调用链在异常的 `loc` 前面插入键名/下标.
    """

    __slots__ = ("_config", "_reader")

    _reader: TextReader
    _config: JsonConfig

    def __init__(self, reader: TextReader, config: JsonConfig):
        self._reader = reader
        self._config = config

    @property
    def config(self) -> JsonConfig:
        return self._config

    @property
    def context(self) -> dict[str, Any]:
        """用户提供的上下文, 供自定义编解码器使用."""
        return self._config.context

    def read(self, target: Any) -> Any:
        """读取根值.

        Args:
            target: 类型 (创建新值), 或记录/自定义编解码器的实例 (原地更新并返回).

        Returns:
            Any: 读取到的值.
        """
        if isinstance(target, type) or get_origin(target) is not None:
            return self.read_document(resolve_category(target))
        return self.read_document(resolve_category(type(target)), target)

    def read_document(self, category: Category, current: Any = None) -> Any:
        """按已解析的分类读取根值.

        Raises:
            TypeError: 根分类不是记录、映射或自定义编解码器.
        """
        if not isinstance(category, _ROOT_CATEGORIES):
            raise TypeError(
                f"The document root must be a record, map or custom codec, got {category}"
            )
        return self.read_value(category, current)

    def _iter_keys(self) -> Iterator[str]:
        """逐个产生当前对象的键; 调用方必须在继续迭代之前读取对应的值."""
        reader = self._reader
        root = reader.depth == 0
        more = reader.enter_document() if root else reader.has_next_key_in_object()
        while more:
            yield reader.read_key()
            more = reader.has_next_key_in_object()
        if root and not self._config.allow_trailing_data:
            reader.finish_document()

    def _unknown_key(self, key: str, owner: str) -> None:
        if self._config.strict_keys:
            row, column = self._reader.location
            raise UnknownKeyError(f"Unknown key {key!r} in {owner}", row, column)
        logger.debug("[Deserializer] 跳过未知键 %r (%s)", key, owner)
        self._reader.skip_value()

    def _read_field(self, loc: str | int, category: Category, current: Any) -> Any:
        try:
            return self.read_value(category, current)
        except TJsonDecodeError as e:
            e.loc.insert(0, loc)
            raise

    def read_members(self, *members: Member) -> dict[str, Any]:
        """以命名成员模式读取一个对象.

        Returns:
            dict[str, Any]: 输入中出现的成员, 键为成员名称.

        Raises:
            ValueError: 成员名称重复.
            UnknownKeyError: 严格模式下遇到未知键.
        """
        by_name = _index_members(members)
        categories = {name: member.category for name, member in by_name.items()}

        result: dict[str, Any] = {}
        for key in self._iter_keys():
            member = by_name.get(key)
            if member is None:
                self._unknown_key(key, "members")
                continue
            result[key] = self._read_field(key, categories[key], member.value)
        return result

    def read_value(self, category: Category, current: Any = None) -> Any:
        """按结构分类读取一个值.

        Args:
            category: 结构分类.
            current: [可选] 当前值; 记录、容器和自定义编解码器会被原地更新.

        Returns:
            Any: 读取到的值.
        """
        reader = self._reader

        if isinstance(category, PrimitiveCategory):
            return reader.read(category.kind)

        if isinstance(category, NullableCategory):
            if reader.peek_is_null():
                return None
            return self.read_value(category.inner, current)

        if isinstance(category, EnumCategory):
            name = reader.read_string()
            try:
                return category.descriptor.value_of(name)
            except UnknownEnumName as e:
                e.row, e.column = reader.location
                raise

        if isinstance(category, RecordCategory):
            return self._read_record(category, current)

        if isinstance(category, MapCategory):
            result: Any = current if isinstance(current, MutableMapping) else {}
            result.clear()
            for key_text in self._iter_keys():
                key = self._parse_key(key_text, category.key)
                result[key] = self._read_field(key_text, category.value, None)
            return result

        if isinstance(category, ListCategory):
            elements = []
            while reader.has_next_element_in_array():
                elements.append(self._read_field(len(elements), category.elem, None))
            if isinstance(current, list):
                current[:] = elements
                return current
            return category.container(elements)

        if isinstance(category, SetCategory):
            elements = []
            while reader.has_next_element_in_array():
                elements.append(self._read_field(len(elements), category.elem, None))
            if isinstance(current, MutableSet):
                current.clear()
                current |= set(elements)
                return current
            return category.container(elements)

        if isinstance(category, CustomCategory):
            obj = current if isinstance(current, category.type_) else category.type_()
            obj.load(self)
            return obj

        raise TypeError(f"Cannot decode category {category!r}")

    def _read_record(self, category: RecordCategory, current: Any) -> Any:
        descriptor = category.descriptor
        if current is not None and not isinstance(current, descriptor.type_):
            current = None

        values: dict[str, Any] = {}
        for key in self._iter_keys():
            field = descriptor.field_for_key(key)
            if field is None:
                self._unknown_key(key, descriptor.name)
                continue
            existing = field.get(current) if current is not None else None
            value = self._read_field(key, field.category, existing)
            if current is not None:
                setattr(current, field.attr, value)
            else:
                values[field.attr] = value

        if current is not None:
            return current
        return descriptor.factory(values)

    def _parse_key(self, text: str, category: Category) -> Any:
        """把映射键的文本解析回键类型的值.

        Raises:
            TypeMismatch: 文本无法解析为键类型.
        """
        try:
            if isinstance(category, EnumCategory):
                return category.descriptor.value_of(text)
            kind = category.kind
            if kind is PrimitiveKind.STRING:
                return text
            if kind is PrimitiveKind.BOOL:
                if text not in ("true", "false"):
                    raise ValueError(text)
                return text == "true"
            parts = split_number(text)
            if parts is None:
                raise ValueError(text)
            sign, int_part, frac, exp = parts
            if kind.is_integer:
                # 整数键只接受写出时的规范形式
                canonical = sign != "+" and (text == "0" or not int_part.startswith("0"))
                if frac is not None or exp is not None or not canonical:
                    raise ValueError(text)
                return to_int(sign, int_part, kind)
            return to_float(sign, int_part, frac, exp, kind)
        except (TypeError, ValueError):
            row, column = self._reader.location
            if isinstance(category, EnumCategory):
                name = category.descriptor.name
            else:
                name = category.kind.name
            raise TypeMismatch(
                f"Cannot parse map key {text!r} as {name}", row, column
            ) from None
