"""tjson 类型适配器.

提供类似于 Pydantic TypeAdapter 的接口,
用于处理不是类的根类型 (如 `dict[str, int]`) 的序列化/反序列化.
"""

from typing import Any, Generic, TypeVar

from .api import dumps, loads
from .options import JsonOption
from .types import CustomCategory, MapCategory, RecordCategory, resolve_category

T = TypeVar("T")


class JsonTypeAdapter(Generic[T]):
    """tjson 类型适配器.

    在构造时解析并检查根类型, 之后每次读写都复用同一个类型注解.

    支持的根类型:
        - `JsonStruct` 子类或已注册的记录类
        - `JsonCodec` 子类
        - 映射类型 (`dict[str, int]`, `Mapping[Color, list[float]]` 等)

    Examples:
        >>> adapter = JsonTypeAdapter(dict[str, int])
        >>> text = adapter.dump_json({"a": 1})
        >>> assert adapter.validate_json(text) == {"a": 1}
    """

    def __init__(self, type_: type[T] | Any):
        """初始化类型适配器.

        Args:
            type_: 目标类型.

        Raises:
            TypeError: 类型无法解析, 或不能作为文档根 (如 `list[int]`, `int`).
        """
        self._type = type_
        self._category = resolve_category(type_)
        if not isinstance(self._category, RecordCategory | MapCategory | CustomCategory):
            raise TypeError(
                f"{type_!r} cannot be a document root; use a record, mapping or JsonCodec"
            )

    @property
    def type(self) -> Any:
        """目标类型注解."""
        return self._type

    def validate_json(
        self,
        data: str | bytes,
        *,
        option: JsonOption = JsonOption.NONE,
        context: dict[str, Any] | None = None,
    ) -> T:
        """解析文本为目标类型的值.

        Args:
            data: 输入文本.
            option: 反序列化选项.
            context: 反序列化上下文.

        Returns:
            反序列化后的对象.
        """
        return loads(data, self._type, option=JsonOption(option), context=context)

    def dump_json(
        self,
        obj: T,
        *,
        option: JsonOption = JsonOption.NONE,
        context: dict[str, Any] | None = None,
    ) -> str:
        """序列化为文本."""
        return dumps(obj, type_=self._type, option=JsonOption(option), context=context)
