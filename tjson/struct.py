"""tjson 结构体定义模块."""

import abc
from typing import (
    TYPE_CHECKING,
    Any,
    TypeVar,
    cast,
)

from pydantic import BaseModel, Field
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined, core_schema
from typing_extensions import dataclass_transform

from .descriptors import (
    FieldDescriptor,
    RecordDescriptor,
    _register_record_builder,
    get_record_descriptor,
)
from .options import JsonOption
from .types import JsonType, resolve_category

if TYPE_CHECKING:
    from .serializer import Deserializer, Serializer

S = TypeVar("S", bound="JsonStruct")


def JsonField(
    default: Any = PydanticUndefined,
    *,
    name: str | None = None,
    json_type: type[JsonType] | None = None,
    default_factory: Any | None = None,
    exclude: bool = False,
) -> Any:
    """创建 tjson 结构体字段配置.

    这是一个 Pydantic `Field` 的包装函数, 用于注入序列化所需的元数据.
    普通的类型注解字段不需要使用它; 只有需要改名、覆盖类型宽度或排除字段时才需要.

    Args:
        default: 字段的静态默认值.
            如果未提供此参数且未提供 `default_factory`, 则该字段在初始化时为**必填**.
        name: [可选] 文本中使用的键名, 默认与属性名相同.
        json_type: [可选] 显式指定基础类型宽度, 用于覆盖默认的类型推断.
            例如: Python `float` 默认推断为 `DOUBLE`, 指定 `types.FLOAT` 可按单精度读写.
            对容器字段, 它作用于最内层的元素类型.
        default_factory: 用于生成默认值的无参可调用对象.
            对于可变类型 (如 `list`, `dict`), **必须**使用此参数而不是 `default`.
        exclude: 为 True 时该字段不参与序列化.

    Returns:
        Any: 包含 tjson 元数据的 Pydantic FieldInfo 对象.

    Examples:
        >>> from tjson import JsonStruct, JsonField, types
        >>> class Position(JsonStruct):
        ...     x: float = JsonField(0.0, json_type=types.FLOAT)
        ...     y: float = JsonField(0.0, json_type=types.FLOAT)
        ...
        >>> class Player(JsonStruct):
        ...     position: Position
        ...     display_name: str = JsonField("", name="name")
        ...     cache: dict[str, int] = JsonField(default_factory=dict, exclude=True)
    """
    json_schema_extra = {
        "json_name": name,
        "json_type": json_type,
    }

    kwargs: dict[str, Any] = {
        "json_schema_extra": json_schema_extra,
    }

    if default is not PydanticUndefined:
        kwargs["default"] = default

    if default_factory is not None:
        kwargs["default_factory"] = default_factory

    if exclude:
        kwargs["exclude"] = True

    # cast call to Any to avoid type checking issues with Field return type
    return cast(Any, Field)(**kwargs)


def _field_descriptor(attr: str, field_info: FieldInfo) -> FieldDescriptor:
    """从 Pydantic FieldInfo 创建字段描述符."""
    extra = field_info.json_schema_extra
    if not isinstance(extra, dict):
        extra = {}

    key = cast(str | None, extra.get("json_name")) or attr
    json_type = cast(type[JsonType] | None, extra.get("json_type"))

    # Pydantic 会把顶层 Annotated 的元数据移到 metadata 中
    if json_type is None:
        for meta in field_info.metadata:
            if isinstance(meta, type) and issubclass(meta, JsonType):
                json_type = meta
                break

    try:
        category = resolve_category(field_info.annotation, json_type)
    except TypeError as e:
        raise TypeError(f"Field {attr!r}: {e}") from e

    return FieldDescriptor(key, attr, category)


def prepare_fields(fields: dict[str, FieldInfo]) -> tuple[FieldDescriptor, ...]:
    """准备字段描述符.

    遍历 Pydantic 的 fields (声明顺序), 跳过显式排除的字段.
    """
    return tuple(
        _field_descriptor(name, field)
        for name, field in fields.items()
        if field.exclude is not True
    )


@dataclass_transform(kw_only_default=True, field_specifiers=(JsonField,))
class JsonStructMeta(type(BaseModel)):
    """JsonStruct 的元类, 用于把每个子类注册为记录类型."""

    def __new__(  # noqa: D102
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ):
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)
        if name != "JsonStruct":

            def build() -> RecordDescriptor:
                # 含前向引用的模型在首次使用时才能完成构建
                if not cls.__pydantic_complete__:
                    cls.model_rebuild()
                return RecordDescriptor(
                    name,
                    cls,
                    prepare_fields(cls.model_fields),
                    cls.model_validate,
                )

            _register_record_builder(cls, build)

        return cls


class JsonStruct(BaseModel, metaclass=JsonStructMeta):
    """tjson 结构体基类.

    继承自 `pydantic.BaseModel`, 提供了声明式的记录定义方式.
    字段按声明顺序输出; 读取时未知键会被忽略, 缺失的必填字段由 Pydantic 报错.

    核心特性:
        1. **声明式定义**: 使用 Python 类型注解定义字段类型.
        2. **自动注册**: 每个子类在定义时注册为记录类型, 描述符只构建一次.
        3. **数据验证**: 利用 Pydantic 进行运行时数据校验.
        4. **序列化/反序列化**: 提供 `model_dump_tjson()` 和 `model_validate_tjson()` 方法.

    Examples:
        **基础用法:**
        >>> from enum import Enum
        >>> class Color(Enum):
        ...     RED = 0
        ...     GREEN = 1
        >>> class Player(JsonStruct):
        ...     color: Color
        ...     name: str

        **序列化:**
        >>> text = Player(color=Color.GREEN, name="p1").model_dump_tjson()

        **反序列化:**
        >>> player = Player.model_validate_tjson(text)
        >>> assert player.name == "p1"
    """

    @classmethod
    def json_descriptor(cls) -> RecordDescriptor:
        """返回该结构体的记录描述符."""
        return get_record_descriptor(cls)

    def model_dump_tjson(
        self,
        option: JsonOption = JsonOption.NONE,
        context: dict[str, Any] | None = None,
    ) -> str:
        """序列化为格式化文本.

        Args:
            option: 序列化选项 (如 `JsonOption.SORT_COLLECTIONS`).
            context: 序列化上下文, 可被自定义编解码器读取.

        Returns:
            str: 以单个换行结尾的文本.
        """
        from .api import dumps

        return dumps(self, option=option, context=context)

    @classmethod
    def model_validate_tjson(
        cls: type[S],
        text: str | bytes | bytearray,
        option: JsonOption = JsonOption.NONE,
        context: dict[str, Any] | None = None,
    ) -> S:
        """解析文本并创建实例.

        Args:
            text: 输入文本.
            option: 反序列化选项 (如 `JsonOption.STRICT_KEYS`).
            context: 反序列化上下文.

        Returns:
            S: 结构体实例.

        Raises:
            TJsonDecodeError: 文本解析失败.
            ValidationError: 数据不符合模型定义 (如缺失必填字段).
        """
        from .api import loads

        return loads(text, target=cls, option=option, context=context)


class JsonCodec(abc.ABC):
    """自定义编解码器的基类.

    不使用描述符、而是手写布局的类型继承此类, 并实现 `save` / `load`.
    作为新值反序列化时, 子类必须可以无参构造.

    Examples:
        >>> class Data(JsonCodec):
        ...     def __init__(self, a: float = 0.0, b: bool = False):
        ...         self.a = a
        ...         self.b = b
        ...
        ...     def save(self, serializer):
        ...         serializer.write_members(
        ...             vmember("a", self.a, FLOAT), vmember("b", self.b)
        ...         )
        ...
        ...     def load(self, deserializer):
        ...         values = deserializer.read_members(
        ...             vmember("a", self.a, FLOAT), vmember("b", self.b)
        ...         )
        ...         for key, value in values.items():
        ...             setattr(self, key, value)
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> Any:
        return core_schema.is_instance_schema(cls)

    @abc.abstractmethod
    def save(self, serializer: "Serializer") -> None:
        """通过 serializer 写出自身."""
        raise NotImplementedError

    @abc.abstractmethod
    def load(self, deserializer: "Deserializer") -> None:
        """通过 deserializer 读取并更新自身."""
        raise NotImplementedError
