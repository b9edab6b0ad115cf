"""文本写入器实现.

该模块提供标量格式化函数和用于按固定布局输出文本的 `TextWriter`.
布局规则: 每层缩进 4 个空格, 每行一个成员或元素, 闭合括号单独一行,
空容器输出为 `{}` / `[]`, 文档以一个换行结尾.
"""

from typing import IO, Any

from .config import DEFAULT_MAX_DEPTH
from .exceptions import TJsonEncodeError, TJsonValueError
from .reader import Frame
from .types import PrimitiveKind, check_value, to_float32

INDENT = "    "

# 在各自宽度下可以无损往返的最大有效位数
_FLOAT_DIGITS = {PrimitiveKind.FLOAT: 9, PrimitiveKind.DOUBLE: 17}


def quote_string(value: str) -> str:
    """加引号并转义 (只转义 `"` 和 `\\`)."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def format_int(value: int, kind: PrimitiveKind = PrimitiveKind.INT64) -> str:
    """格式化整数.

    Raises:
        TypeMismatch: 值不是整数或超出 kind 的范围.
    """
    check_value(kind, value)
    return str(value)


def format_float(value: float, kind: PrimitiveKind = PrimitiveKind.DOUBLE) -> str:
    """以 `%g` 风格格式化浮点数, 使用能在 kind 宽度下往返的最短表示.

    Examples:
        >>> format_float(5.0)
        '5'
        >>> format_float(42.1, PrimitiveKind.FLOAT)
        '42.1'
        >>> format_float(1e20)
        '1e+20'

    Raises:
        TypeMismatch: NaN, 无穷大, 或超出 kind 的范围.
    """
    value = float(check_value(kind, value))

    if kind is PrimitiveKind.FLOAT:
        value = to_float32(value)

        def same(text: str) -> bool:
            return to_float32(float(text)) == value
    else:

        def same(text: str) -> bool:
            return float(text) == value

    for precision in range(1, _FLOAT_DIGITS[kind]):
        text = f"{value:.{precision}g}"
        if same(text):
            return text
    return f"{value:.{_FLOAT_DIGITS[kind]}g}"


def format_scalar(value: Any, kind: PrimitiveKind) -> str:
    """按基础类型格式化标量."""
    if kind is PrimitiveKind.BOOL:
        check_value(kind, value)
        return "true" if value else "false"
    if kind is PrimitiveKind.STRING:
        check_value(kind, value)
        return quote_string(value)
    if kind.is_integer:
        return format_int(value, kind)
    return format_float(value, kind)


class TextWriter:
    """推送式文本写入器.

    直接写入文件类对象, 写入失败原样向上传播.

    Examples:
        >>> import io
        >>> fp = io.StringIO()
        >>> w = TextWriter(fp)
        >>> w.begin_document()
        >>> w.write_key("a")
        >>> w.write(1, PrimitiveKind.INT32)
        >>> w.end_current()
        >>> fp.getvalue()
        '{\\n    "a": 1\\n}\\n'
    """

    __slots__ = ("_closed", "_counts", "_fp", "_max_depth", "_stack")

    _fp: IO[str]
    _stack: list[Frame]
    _counts: list[int]
    _max_depth: int
    _closed: bool

    def __init__(self, fp: IO[str], max_depth: int = DEFAULT_MAX_DEPTH):
        self._fp = fp
        self._stack = []
        # 每一层已经写出的成员/元素数量
        self._counts = []
        self._max_depth = max_depth
        self._closed = False

    @property
    def depth(self) -> int:
        """当前嵌套深度."""
        return len(self._stack)

    def _newline(self, level: int) -> None:
        self._fp.write("\n" + INDENT * level)

    def _before_value(self) -> None:
        """写值之前: 检查状态, 在数组中输出分隔符和缩进."""
        if not self._stack:
            raise TJsonEncodeError("A value can only be written inside the document")
        top = self._stack[-1]
        if top is Frame.OBJECT_KEY:
            raise TJsonEncodeError("Expected a key, not a value")
        if top is Frame.ARRAY:
            if self._counts[-1]:
                self._fp.write(",")
            self._newline(len(self._stack))

    def _after_value(self) -> None:
        if not self._stack:
            return
        if self._stack[-1] is Frame.OBJECT_VALUE:
            self._stack[-1] = Frame.OBJECT_KEY
        self._counts[-1] += 1

    def _push(self, frame: Frame, opener: str) -> None:
        if len(self._stack) >= self._max_depth:
            raise TJsonValueError(f"Nesting depth exceeds limit {self._max_depth}")
        self._fp.write(opener)
        self._stack.append(frame)
        self._counts.append(0)

    def begin_document(self) -> None:
        """开始根对象.

        Raises:
            TJsonEncodeError: 文档已经开始或已经结束.
        """
        if self._stack or self._closed:
            raise TJsonEncodeError("Document already started")
        self._push(Frame.OBJECT_KEY, "{")

    def begin_object(self) -> None:
        """开始一个对象; 在深度 0 时等同于 `begin_document`."""
        if not self._stack:
            self.begin_document()
            return
        self._before_value()
        self._push(Frame.OBJECT_KEY, "{")

    def begin_array(self) -> None:
        """开始一个数组."""
        if not self._stack:
            raise TJsonEncodeError("The document root must be an object")
        self._before_value()
        self._push(Frame.ARRAY, "[")

    def write_key(self, name: str) -> None:
        """写出对象键和 `: `.

        Raises:
            TJsonEncodeError: 当前位置不应出现键 (数组中, 或上一个键还没有值).
        """
        if not self._stack or self._stack[-1] is not Frame.OBJECT_KEY:
            raise TJsonEncodeError(f"Unexpected key {name!r}")
        if self._counts[-1]:
            self._fp.write(",")
        self._newline(len(self._stack))
        self._fp.write(quote_string(name) + ": ")
        self._stack[-1] = Frame.OBJECT_VALUE

    def write(self, value: Any, kind: PrimitiveKind) -> None:
        """按基础类型写出一个标量.

        Raises:
            TypeMismatch: 值与 kind 不符或超出范围.
            TJsonEncodeError: 当前位置不应出现值.
        """
        text = format_scalar(value, kind)
        self._before_value()
        self._fp.write(text)
        self._after_value()

    def write_string(self, value: str) -> None:
        self.write(value, PrimitiveKind.STRING)

    def write_bool(self, value: bool) -> None:
        self.write(value, PrimitiveKind.BOOL)

    def write_null(self) -> None:
        """写出 `null`."""
        self._before_value()
        self._fp.write("null")
        self._after_value()

    def end_current(self) -> None:
        """关闭当前容器; 关闭根对象时写出结尾换行.

        Raises:
            TJsonEncodeError: 没有打开的容器, 或最后一个键还没有值.
        """
        if not self._stack:
            raise TJsonEncodeError("No open container to end")
        frame = self._stack.pop()
        count = self._counts.pop()
        if frame is Frame.OBJECT_VALUE:
            raise TJsonEncodeError("Missing value for the last key")

        if count:
            self._newline(len(self._stack))
        self._fp.write("]" if frame is Frame.ARRAY else "}")

        if self._stack:
            self._after_value()
        else:
            self._fp.write("\n")
            self._closed = True
