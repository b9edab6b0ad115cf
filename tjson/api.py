"""tjson API模块.

提供用于序列化和反序列化的高级接口 `dumps`, `loads`, `dump`, `load`,
以及命名成员模式的 `dumps_members`, `loads_members`.
"""

import io
from collections.abc import Callable
from typing import IO, Any, TypeVar, overload

from .config import DEFAULT_MAX_DEPTH, JsonConfig
from .exceptions import JsonSyntaxError, TJsonDecodeError
from .log import get_excerpt, logger
from .options import JsonOption
from .reader import TextReader
from .serializer import Deserializer, Member, Serializer
from .writer import TextWriter

T = TypeVar("T")


def _encode(config: JsonConfig, write: Callable[[Serializer], None], what: str) -> str:
    """创建写入器和序列化器, 执行 write 并返回文本."""
    fp = io.StringIO()
    serializer = Serializer(TextWriter(fp, config.max_depth), config)
    try:
        write(serializer)
    except Exception as e:
        logger.error("[%s] 序列化失败: %s", what, e)
        raise
    return fp.getvalue()


def _decode_utf8(data: bytes) -> str:
    """按 UTF-8 解码输入.

    Raises:
        JsonSyntaxError: 输入不是合法的 UTF-8, 行列号指向第一个无效字节.
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        prefix = data[: e.start].decode("utf-8")
        row = prefix.count("\n") + 1
        column = len(prefix) - (prefix.rfind("\n") + 1) + 1
        raise JsonSyntaxError(
            f"Invalid UTF-8 input: {e.reason} at byte {e.start}", row, column
        ) from e


def _decode(
    data: str | bytes | bytearray,
    config: JsonConfig,
    read: Callable[[Deserializer], Any],
    what: str,
) -> Any:
    """创建读取器和反序列化器, 执行 read 并返回结果."""
    if isinstance(data, bytes | bytearray):
        try:
            text = _decode_utf8(bytes(data))
        except TJsonDecodeError as e:
            logger.error("[%s] 解析错误: %s", what, e)
            raise
    else:
        text = data

    logger.debug("[%s] 开始解析 %d 个字符", what, len(text))
    deserializer = Deserializer(TextReader(text, config.max_depth), config)
    try:
        result = read(deserializer)
    except Exception as e:
        if isinstance(e, TJsonDecodeError) and e.row is not None:
            logger.error(
                "[%s] 解析错误: %s\n%s",
                what,
                e,
                get_excerpt(text, e.row, e.column or 1),
            )
        else:
            logger.error("[%s] 解析错误: %s", what, e)
        raise
    logger.debug("[%s] 解析完成", what)
    return result


def dumps(
    obj: Any,
    *,
    type_: Any = None,
    option: JsonOption = JsonOption.NONE,
    context: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """序列化对象为格式化文本.

    Args:
        obj: 要序列化的对象. 根值必须是记录 (`JsonStruct` 或已注册的类)、
            映射或 `JsonCodec` 实例.
        type_: [可选] 根值的类型注解, 对映射根值是必需的 (如 `dict[str, int]`).
        option: 序列化选项 (如 `JsonOption.SORT_COLLECTIONS`).
        context: 序列化上下文字典, 自定义编解码器可以通过 `serializer.context` 读取.
        max_depth: 最大嵌套深度.

    Returns:
        str: 以单个换行结尾的文本.

    Raises:
        TJsonEncodeError: 对象无法序列化.
        TypeMismatch: 数值超出其类型的范围, 或为 NaN/无穷大.

    Examples:
        >>> from tjson import dumps, JsonStruct
        >>> class User(JsonStruct):
        ...     uid: int
        >>> dumps(User(uid=123))
        '{\\n    "uid": 123\\n}\\n'
    """
    config = JsonConfig.from_params(option=option, context=context, max_depth=max_depth)
    return _encode(config, lambda s: s.write(obj, type_), "dumps")


def dump(
    obj: Any,
    fp: IO[str],
    *,
    type_: Any = None,
    option: JsonOption = JsonOption.NONE,
    context: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> None:
    """序列化对象并写入文件.

    Args:
        obj: 要序列化的对象.
        fp: 文本文件类对象, 必须实现 `write(str)` 方法.
        type_: 根值的类型注解.
        option: 序列化选项.
        context: 序列化上下文.
        max_depth: 最大嵌套深度.
    """
    fp.write(
        dumps(obj, type_=type_, option=option, context=context, max_depth=max_depth)
    )


@overload
def loads(
    data: str | bytes | bytearray,
    target: type[T],
    *,
    option: JsonOption = JsonOption.NONE,
    context: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> T: ...


@overload
def loads(
    data: str | bytes | bytearray,
    target: Any,
    *,
    option: JsonOption = JsonOption.NONE,
    context: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any: ...


def loads(
    data: str | bytes | bytearray,
    target: Any,
    *,
    option: JsonOption = JsonOption.NONE,
    context: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """解析文本为 Python 对象.

    Args:
        data: 输入文本; bytes 按 UTF-8 解码.
        target: 目标.
            - 类型 (`JsonStruct` 子类、已注册的类、`JsonCodec` 子类或 `dict[K, V]`):
              创建新值.
            - 记录或 `JsonCodec` 的实例: 原地更新并返回该实例.
        option: 反序列化选项 (如 `JsonOption.STRICT_KEYS`).
        context: 反序列化上下文.
        max_depth: 最大嵌套深度.

    Returns:
        Any: 读取到的值.

    Raises:
        TJsonDecodeError: 文本格式错误 (携带行列号和键路径).
        ValidationError: `JsonStruct` 的 Pydantic 校验失败 (如缺失必填字段).
    """
    config = JsonConfig.from_params(option=option, context=context, max_depth=max_depth)
    return _decode(data, config, lambda d: d.read(target), "loads")


def load(
    fp: IO[str] | IO[bytes],
    target: Any,
    *,
    option: JsonOption = JsonOption.NONE,
    context: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """从文件读取并解析.

    封装了 `read()` 和 `loads()`.

    Args:
        fp: 打开的文件对象 (文本或二进制).
        target: 目标类型或实例.
        option: 反序列化选项.
        context: 上下文.
        max_depth: 最大嵌套深度.

    Returns:
        解析后的对象.
    """
    data = fp.read()
    return loads(data, target, option=option, context=context, max_depth=max_depth)


def dumps_members(
    *members: Member,
    option: JsonOption = JsonOption.NONE,
    context: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """以命名成员模式序列化: 根对象的键为成员名称, 顺序即参数顺序.

    Examples:
        >>> from tjson import dumps_members, vmember
        >>> dumps_members(vmember("id", "test"))
        '{\\n    "id": "test"\\n}\\n'
    """
    config = JsonConfig.from_params(option=option, context=context, max_depth=max_depth)
    return _encode(config, lambda s: s.write_members(*members), "dumps_members")


def loads_members(
    data: str | bytes | bytearray,
    *members: Member,
    option: JsonOption = JsonOption.NONE,
    context: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, Any]:
    """以命名成员模式解析.

    每个成员的 `value` 作为当前值: 记录和容器会被原地更新.

    Returns:
        dict[str, Any]: 输入中出现的成员的值, 键为成员名称.
    """
    config = JsonConfig.from_params(option=option, context=context, max_depth=max_depth)
    return _decode(data, config, lambda d: d.read_members(*members), "loads_members")
