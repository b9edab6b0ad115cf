"""文本游标.

`Cursor` 逐字符读取输入文本, 维护行列号, 支持单级 mark/rewind 回溯,
并在字符串之外跳过空白和 `/* ... */` 块注释.
"""

from .exceptions import UnexpectedEndOfInput


def _is_blank(char: str) -> bool:
    """空白或不可打印字符 (在字符串之外没有意义)."""
    return char.isspace() or not char.isprintable()


class Cursor:
    """输入文本上的游标.

    `row` / `column` 是下一个待读字符的位置 (均从 1 开始).
    """

    __slots__ = ("_length", "_mark", "_pos", "_text", "column", "row")

    _text: str
    _pos: int
    _length: int
    _mark: tuple[int, int, int] | None
    row: int
    column: int

    def __init__(self, text: str):
        self._text = text
        self._pos = 0
        self._length = len(text)
        self._mark = None
        self.row = 1
        self.column = 1

    @property
    def position(self) -> int:
        """当前偏移量 (已消费的字符数)."""
        return self._pos

    @property
    def last_location(self) -> tuple[int, int]:
        """最近一次读出的字符所在的 (行, 列)."""
        if self._pos == 0:
            return 1, 1
        if self._text[self._pos - 1] == "\n":
            start = self._pos - 1
            return self.row - 1, start - self._text.rfind("\n", 0, start)
        return self.row, self.column - 1

    def peek(self) -> str | None:
        """返回下一个原始字符而不移动位置, 到达末尾时返回 None."""
        return self._text[self._pos] if self._pos < self._length else None

    def _get(self) -> str:
        if self._pos >= self._length:
            raise UnexpectedEndOfInput("Unexpected end of input", self.row, self.column)
        char = self._text[self._pos]
        self._pos += 1
        if char == "\n":
            self.row += 1
            self.column = 1
        else:
            self.column += 1
        return char

    def unget(self) -> None:
        """回退一个字符, 对称地恢复行列号."""
        if self._pos == 0:
            raise ValueError("Cannot unget at the start of input")
        self._pos -= 1
        if self._text[self._pos] == "\n":
            self.row -= 1
            self.column = self._pos - self._text.rfind("\n", 0, self._pos)
        else:
            self.column -= 1

    def mark(self) -> None:
        """记录当前位置; 再次调用会覆盖之前的标记."""
        self._mark = (self._pos, self.row, self.column)

    def rewind(self) -> None:
        """回到最近一次 `mark()` 的位置."""
        if self._mark is None:
            raise ValueError("rewind() called without mark()")
        self._pos, self.row, self.column = self._mark

    def skip_insignificant(self) -> None:
        """跳过空白和块注释, 停在下一个有意义的字符之前.

        Raises:
            UnexpectedEndOfInput: 注释未闭合.
        """
        text = self._text
        while self._pos < self._length:
            char = text[self._pos]
            if _is_blank(char):
                self._get()
            elif char == "/" and text.startswith("*", self._pos + 1):
                self._skip_comment()
            else:
                return

    def _skip_comment(self) -> None:
        row, column = self.row, self.column
        self._get()
        self._get()
        prev = ""
        while self._pos < self._length:
            char = self._get()
            if prev == "*" and char == "/":
                return
            prev = char
        raise UnexpectedEndOfInput("Unterminated comment", row, column)

    def next_char(self, in_string: bool = False) -> str:
        """读取下一个字符.

        Args:
            in_string: 为 True 时按原样返回下一个字符 (字符串内部不识别注释和空白).

        Returns:
            str: 下一个 (有意义的) 字符.

        Raises:
            UnexpectedEndOfInput: 输入已结束.
        """
        if not in_string:
            self.skip_insignificant()
        return self._get()

    def at_end(self) -> bool:
        """剩余内容是否只有空白和注释 (不消费任何输入)."""
        saved = (self._pos, self.row, self.column)
        try:
            self.skip_insignificant()
            return self._pos >= self._length
        finally:
            self._pos, self.row, self.column = saved
