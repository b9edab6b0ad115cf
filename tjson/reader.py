"""文本读取器 (解析器).

`TextReader` 构建在 `Cursor` 之上, 提供拉取式协议:
调用方通过 `enter_document` / `has_next_key_in_object` /
`has_next_element_in_array` 驱动容器边界, 通过 `read_*` 读取标量.
读取器维护一个容器帧栈, 栈深度即当前嵌套深度.
"""

import enum
import math
import re

from .config import DEFAULT_MAX_DEPTH
from .cursor import Cursor
from .exceptions import (
    JsonSyntaxError,
    NestingDepthError,
    TJsonDecodeError,
    TypeMismatch,
    UnexpectedEndOfInput,
)
from .types import PrimitiveKind, to_float32

_NUMBER = re.compile(r"([+-]?)([0-9]*)(?:\.([0-9]+))?(?:[eE]([+-]?[0-9]+))?")


def split_number(text: str) -> tuple[str, str, str | None, str | None] | None:
    """按数值文法拆分完整的文本.

    Returns:
        与 `TextReader` 扫描结果相同的 (符号, 整数部分, 小数部分, 指数),
        文本不符合文法时返回 None.
    """
    match = _NUMBER.fullmatch(text)
    if match is None:
        return None
    sign, int_part, frac, exp = match.groups()
    if not int_part and frac is None:
        return None
    return sign, int_part, frac, exp


def to_int(sign: str, int_part: str, kind: PrimitiveKind) -> int:
    """把数字串转换为 kind 范围内的整数.

    Raises:
        TypeMismatch: 无符号类型带负号, 或超出范围.
    """
    if sign == "-" and kind.is_unsigned:
        raise TypeMismatch(f"Negative value for {kind.name}")
    low, high = kind.bounds
    digits = int_part.lstrip("0") or "0"
    # 位数超过上限必然越界, 不交给 int()
    if len(digits) > len(str(max(high, -low))):
        raise TypeMismatch(f"Value with {len(digits)} digits is out of range for {kind.name}")
    value = int(sign + digits)
    if not low <= value <= high:
        raise TypeMismatch(f"Value {value} is out of range for {kind.name}")
    return value


def to_float(
    sign: str, int_part: str, frac: str | None, exp: str | None, kind: PrimitiveKind
) -> float:
    """把数值的各部分转换为浮点数, `FLOAT` 舍入到单精度.

    Raises:
        TypeMismatch: 超出 kind 的范围.
    """
    lexeme = sign + int_part
    if frac is not None:
        lexeme += "." + frac
    if exp is not None:
        lexeme += "e" + exp

    value = float(lexeme)
    if math.isinf(value):
        raise TypeMismatch(f"Value {lexeme} is out of range for {kind.name}")
    if kind is PrimitiveKind.FLOAT:
        try:
            value = to_float32(value)
        except TypeMismatch:
            raise TypeMismatch(f"Value {lexeme} is out of range for {kind.name}") from None
    return value


class Frame(enum.Enum):
    """容器帧状态."""

    OBJECT_KEY = "object_key"
    OBJECT_VALUE = "object_value"
    ARRAY = "array"


class TextReader:
    """拉取式文本读取器.

    Examples:
        >>> reader = TextReader('{"a": [1, 2]}')
        >>> reader.enter_document()
        True
        >>> reader.read_key()
        'a'
        >>> reader.has_next_element_in_array()
        True
    """

    __slots__ = ("_cursor", "_expect_value", "_max_depth", "_stack")

    _cursor: Cursor
    _stack: list[Frame]
    _max_depth: int
    _expect_value: bool

    def __init__(self, text: str, max_depth: int = DEFAULT_MAX_DEPTH):
        self._cursor = Cursor(text)
        self._stack = []
        self._max_depth = max_depth
        # 当前位置是否应当出现一个值 (冒号之后, 或数组的 `[` / `,` 之后)
        self._expect_value = False

    @property
    def depth(self) -> int:
        """当前嵌套深度."""
        return len(self._stack)

    @property
    def top(self) -> Frame | None:
        """栈顶帧, 文档之外为 None."""
        return self._stack[-1] if self._stack else None

    @property
    def location(self) -> tuple[int, int]:
        """最近读出的字符所在的 (行, 列)."""
        return self._cursor.last_location

    def _error(
        self,
        msg: str,
        char: str | None = None,
        cls: type[TJsonDecodeError] = JsonSyntaxError,
    ) -> TJsonDecodeError:
        row, column = self._cursor.last_location
        return cls(msg, row, column, char)

    # --- 容器 ---

    def _push(self, frame: Frame) -> None:
        if len(self._stack) >= self._max_depth:
            raise self._error(
                f"Nesting depth exceeds limit {self._max_depth}", cls=NestingDepthError
            )
        self._stack.append(frame)

    def _open(self, frame: Frame, closer: str) -> bool:
        """压入新帧; 如果容器为空则立即弹出并返回 False."""
        self._push(frame)
        self._cursor.mark()
        if self._cursor.next_char() == closer:
            self._stack.pop()
            self._expect_value = False
            return False
        self._cursor.rewind()
        self._expect_value = frame is Frame.ARRAY
        return True

    def _close(self) -> None:
        self._stack.pop()
        self._expect_value = False

    def enter_document(self) -> bool:
        """进入根对象.

        Returns:
            bool: 对象非空时为 True (接下来应读取键).

        Raises:
            JsonSyntaxError: 第一个有意义的字符不是 `{`, 或文档已经开始.
        """
        if self._stack:
            raise self._error("Document already entered")
        char = self._cursor.next_char()
        if char != "{":
            raise self._error(f"Expected '{{' at start of document, got {char!r}", char)
        return self._open(Frame.OBJECT_KEY, "}")

    def has_next_key_in_object(self) -> bool:
        """推进到对象中的下一个键.

        - `{`: 开始嵌套对象, 非空时返回 True.
        - `,`: 另一个键随后, 返回 True.
        - `}`: 对象结束, 返回 False.

        Raises:
            JsonSyntaxError: 其他字符, 或与当前帧状态不匹配.
        """
        char = self._cursor.next_char()
        if char == "{":
            if not self._expect_value:
                raise self._error("Unexpected '{'", char)
            return self._open(Frame.OBJECT_KEY, "}")
        if char == "," or char == "}":
            if self.top is not Frame.OBJECT_VALUE or self._expect_value:
                raise self._error(f"Unexpected {char!r} in object", char)
            if char == ",":
                self._stack[-1] = Frame.OBJECT_KEY
                return True
            self._close()
            return False
        raise self._error(f"Unexpected character {char!r} in object", char)

    def has_next_element_in_array(self) -> bool:
        """推进到数组中的下一个元素.

        - `[`: 开始数组, 非空时返回 True.
        - `,`: 另一个元素随后, 返回 True.
        - `]`: 数组结束, 返回 False.

        Raises:
            JsonSyntaxError: 其他字符, 或与当前帧状态不匹配.
        """
        char = self._cursor.next_char()
        if char == "[":
            if not self._expect_value:
                raise self._error("Unexpected '['", char)
            return self._open(Frame.ARRAY, "]")
        if char == "," or char == "]":
            if self.top is not Frame.ARRAY or self._expect_value:
                raise self._error(f"Unexpected {char!r} in array", char)
            if char == ",":
                self._expect_value = True
                return True
            self._close()
            return False
        raise self._error(f"Unexpected character {char!r} in array", char)

    def finish_document(self) -> None:
        """确认根对象之后只剩空白和注释.

        Raises:
            JsonSyntaxError: 文档未结束, 或存在多余内容.
        """
        if self._stack:
            raise self._error("Document is not closed")
        if not self._cursor.at_end():
            char = self._cursor.next_char()
            raise self._error(f"Unexpected data after end of document: {char!r}", char)

    # --- 标量 ---

    def _require_value(self) -> None:
        if not self._expect_value:
            raise self._error("Unexpected value")

    def _post_read(self) -> None:
        """读完一个标量之后的状态转换: 键之后必须是 `:`."""
        if self.top is Frame.OBJECT_KEY:
            self._stack[-1] = Frame.OBJECT_VALUE
            char = self._cursor.next_char()
            if char != ":":
                raise self._error("Missing ':' after object key", char)
            self._expect_value = True
        else:
            self._expect_value = False

    def peek_is_null(self) -> bool:
        """尝试读取 `null`.

        Returns:
            bool: 匹配时为 True; 否则回退, 不消费任何输入.
        """
        self._require_value()
        cursor = self._cursor
        cursor.mark()
        try:
            matched = cursor.next_char() == "n" and all(
                cursor.next_char(in_string=True) == ch for ch in "ull"
            )
        except UnexpectedEndOfInput:
            matched = False
        if not matched:
            cursor.rewind()
            return False
        self._post_read()
        return True

    def _read_quoted(self) -> str:
        char = self._cursor.next_char()
        if char != '"':
            raise self._error(f"Missing '\"' at the start of string, got {char!r}", char)

        row, column = self._cursor.last_location
        chars: list[str] = []
        try:
            while True:
                char = self._cursor.next_char(in_string=True)
                if char == '"':
                    break
                if char == "\\":
                    # 反斜杠之后的字符按字面取
                    char = self._cursor.next_char(in_string=True)
                chars.append(char)
        except UnexpectedEndOfInput:
            raise UnexpectedEndOfInput("Unterminated string", row, column) from None
        return "".join(chars)

    def read_key(self) -> str:
        """读取对象键并消费随后的 `:`.

        Raises:
            JsonSyntaxError: 当前位置不应出现键, 或缺失 `:`.
        """
        if self.top is not Frame.OBJECT_KEY:
            raise self._error("Expected an object key")
        key = self._read_quoted()
        self._post_read()
        return key

    def read_string(self) -> str:
        """读取字符串值."""
        self._require_value()
        value = self._read_quoted()
        self._post_read()
        return value

    def read_bool(self) -> bool:
        """读取 `true` / `false`.

        Raises:
            JsonSyntaxError: 不是布尔字面量.
        """
        self._require_value()
        cursor = self._cursor
        first = cursor.next_char()
        if first == "t":
            literal, value = "true", True
        elif first == "f":
            literal, value = "false", False
        else:
            raise self._error(f"Unknown boolean constant starting with {first!r}", first)

        text = first
        for expected in literal[1:]:
            char = cursor.next_char(in_string=True)
            text += char
            if char != expected:
                raise self._error(f"Unknown boolean constant {text!r}", char)

        self._post_read()
        return value

    def _digits(self, char: str) -> tuple[str, str]:
        """从 char 开始读取一串数字, 返回 (数字串, 之后的第一个字符)."""
        digits: list[str] = []
        while "0" <= char <= "9":
            digits.append(char)
            char = self._cursor.next_char(in_string=True)
        return "".join(digits), char

    def _scan_number(self) -> tuple[str, str, str | None, str | None]:
        """扫描数值: 可选符号, 整数部分, 可选小数部分, 可选指数.

        Returns:
            tuple: (符号, 整数部分, 小数部分或 None, 带符号的指数或 None).
        """
        cursor = self._cursor
        char = cursor.next_char()

        sign = ""
        if char in "+-":
            sign = char
            char = cursor.next_char(in_string=True)

        int_part, char = self._digits(char)
        if not int_part and char != ".":
            raise self._error(f"Unexpected character {char!r}, expected a number", char)

        frac: str | None = None
        if char == ".":
            frac, char = self._digits(cursor.next_char(in_string=True))
            if not frac:
                raise self._error("Expected digits after '.'", char)

        exp: str | None = None
        if char in "eE":
            char = cursor.next_char(in_string=True)
            exp_sign = ""
            if char in "+-":
                exp_sign = char
                char = cursor.next_char(in_string=True)
            exp_digits, char = self._digits(char)
            if not exp_digits:
                raise self._error("Expected digits in exponent", char)
            exp = exp_sign + exp_digits

        # 贪婪扫描多读了一个字符
        cursor.unget()
        return sign, int_part, frac, exp

    def read_int(self, kind: PrimitiveKind = PrimitiveKind.INT64) -> int:
        """读取定宽整数.

        Raises:
            TypeMismatch: 带小数或指数, 超出 kind 的范围, 或无符号类型读到负数.
        """
        self._require_value()
        sign, int_part, frac, exp = self._scan_number()
        if frac is not None or exp is not None:
            raise self._error(f"Expected an integer for {kind.name}", cls=TypeMismatch)
        try:
            value = to_int(sign, int_part, kind)
        except TypeMismatch as e:
            raise self._error(e.msg, cls=TypeMismatch) from None

        self._post_read()
        return value

    def read_float(self, kind: PrimitiveKind = PrimitiveKind.DOUBLE) -> float:
        """读取浮点数.

        数值文本由 Python 的 `float()` 正确舍入; `FLOAT` 再舍入到单精度.

        Raises:
            TypeMismatch: 超出 kind 的范围.
        """
        self._require_value()
        sign, int_part, frac, exp = self._scan_number()
        try:
            value = to_float(sign, int_part, frac, exp, kind)
        except TypeMismatch as e:
            raise self._error(e.msg, cls=TypeMismatch) from None

        self._post_read()
        return value

    def read(self, kind: PrimitiveKind) -> bool | str | int | float:
        """按基础类型读取一个标量."""
        if kind is PrimitiveKind.BOOL:
            return self.read_bool()
        if kind is PrimitiveKind.STRING:
            return self.read_string()
        if kind.is_integer:
            return self.read_int(kind)
        return self.read_float(kind)

    def skip_value(self) -> None:
        """跳过一个任意值 (用于未知键)."""
        self._require_value()
        cursor = self._cursor
        cursor.mark()
        char = cursor.next_char()
        cursor.rewind()

        if char == "{":
            more = self.has_next_key_in_object()
            while more:
                self.read_key()
                self.skip_value()
                more = self.has_next_key_in_object()
        elif char == "[":
            more = self.has_next_element_in_array()
            while more:
                self.skip_value()
                more = self.has_next_element_in_array()
        elif char == '"':
            self.read_string()
        elif char in "tf":
            self.read_bool()
        elif char == "n":
            if not self.peek_is_null():
                cursor.next_char()
                raise self._error("Unknown literal", char)
        else:
            self._scan_number()
            self._post_read()
