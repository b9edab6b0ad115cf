"""测试文本游标.

覆盖 tjson.cursor 模块:
1. 空白与块注释的跳过
2. 行列号维护 (包括 unget 跨越换行)
3. mark / rewind 单级回溯
4. 输入结束与未闭合注释
"""

import pytest

from tjson.cursor import Cursor
from tjson.exceptions import UnexpectedEndOfInput


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("x", "x"),
        ("   \t\n x", "x"),
        ("/* comment */x", "x"),
        ("/**/ /* a */\n/* b */ x", "x"),
        ("/* nested * star */ x", "x"),
        ("\x00\x01x", "x"),
    ],
)
def test_next_char_skips_insignificant(text: str, expected: str) -> None:
    """next_char() 应跳过空白, 不可打印字符和任意数量的块注释."""
    assert Cursor(text).next_char() == expected


def test_next_char_in_string_returns_raw() -> None:
    """in_string=True 时应按原样返回下一个字符."""
    cursor = Cursor(" /* x */")
    assert cursor.next_char(in_string=True) == " "
    assert cursor.next_char(in_string=True) == "/"


def test_row_and_column_tracking() -> None:
    """换行应递增行号并重置列号."""
    cursor = Cursor("a\n  bc")
    assert (cursor.row, cursor.column) == (1, 1)

    assert cursor.next_char() == "a"
    assert (cursor.row, cursor.column) == (1, 2)
    assert cursor.last_location == (1, 1)

    assert cursor.next_char() == "b"
    assert (cursor.row, cursor.column) == (2, 4)
    assert cursor.last_location == (2, 3)


def test_last_location_of_newline() -> None:
    """刚读出的字符是换行时, last_location 应指向上一行行尾."""
    cursor = Cursor("ab\nc")
    for _ in range(3):
        cursor.next_char(in_string=True)
    assert cursor.last_location == (1, 3)


def test_unget_restores_location() -> None:
    """unget() 应对称地恢复行列号, 包括跨越换行."""
    cursor = Cursor("ab\nc")
    for _ in range(3):
        cursor.next_char(in_string=True)
    assert (cursor.row, cursor.column) == (2, 1)

    cursor.unget()
    assert (cursor.row, cursor.column) == (1, 3)
    assert cursor.peek() == "\n"

    cursor.unget()
    assert (cursor.row, cursor.column) == (1, 2)
    assert cursor.next_char(in_string=True) == "b"


def test_unget_at_start_fails() -> None:
    """在输入开头 unget() 应报错."""
    with pytest.raises(ValueError):
        Cursor("a").unget()


def test_mark_and_rewind() -> None:
    """rewind() 应回到最近一次 mark() 的位置."""
    cursor = Cursor("ab\ncd")
    cursor.next_char()
    cursor.mark()
    assert cursor.next_char() == "b"
    assert cursor.next_char() == "c"

    cursor.rewind()
    assert (cursor.row, cursor.column) == (1, 2)
    assert cursor.next_char() == "b"


def test_second_mark_overwrites_first() -> None:
    """再次 mark() 应覆盖之前的标记."""
    cursor = Cursor("abc")
    cursor.mark()
    cursor.next_char()
    cursor.mark()
    cursor.next_char()
    cursor.rewind()
    assert cursor.position == 1


def test_rewind_without_mark_fails() -> None:
    """没有 mark() 时 rewind() 应报错."""
    with pytest.raises(ValueError):
        Cursor("a").rewind()


def test_end_of_input() -> None:
    """只剩空白时 next_char() 应抛出 UnexpectedEndOfInput."""
    cursor = Cursor("  \n ")
    with pytest.raises(UnexpectedEndOfInput) as exc_info:
        cursor.next_char()
    assert exc_info.value.row == 2
    assert exc_info.value.column == 2


def test_unterminated_comment() -> None:
    """未闭合的注释应报告注释开始的位置."""
    cursor = Cursor("\n  /* never closed *")
    with pytest.raises(UnexpectedEndOfInput, match="Unterminated comment") as exc_info:
        cursor.next_char()
    assert (exc_info.value.row, exc_info.value.column) == (2, 3)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("", True),
        ("  \n\t", True),
        (" /* trailing */ \n", True),
        (" x", False),
        ("/* c */ }", False),
    ],
)
def test_at_end(text: str, expected: bool) -> None:
    """at_end() 应判断剩余内容是否只有空白和注释, 且不消费输入."""
    cursor = Cursor(text)
    assert cursor.at_end() is expected
    assert cursor.position == 0
    assert (cursor.row, cursor.column) == (1, 1)
