"""测试文本写入器.

覆盖 tjson.writer 模块:
1. 输出布局 (缩进, 逗号, 空容器, 结尾换行)
2. 标量格式化 (字符串转义, 整数范围, 最短浮点表示)
3. 状态错误与嵌套深度
"""

import io
import math

import pytest

from tjson.exceptions import TJsonEncodeError, TJsonValueError, TypeMismatch
from tjson.types import PrimitiveKind
from tjson.writer import TextWriter, format_float, format_int, quote_string


def test_empty_document() -> None:
    """空根对象应输出 `{}` 加换行."""
    fp = io.StringIO()
    writer = TextWriter(fp)
    writer.begin_document()
    writer.end_current()
    assert fp.getvalue() == "{}\n"


def test_layout() -> None:
    """每行一个成员, 4 空格缩进, 闭合括号位于父级缩进."""
    fp = io.StringIO()
    w = TextWriter(fp)
    w.begin_object()
    w.write_key("a")
    w.write(1, PrimitiveKind.INT32)
    w.write_key("b")
    w.begin_array()
    w.write_bool(True)
    w.write_string("x")
    w.begin_object()
    w.write_key("k")
    w.write_null()
    w.end_current()
    w.end_current()
    w.write_key("c")
    w.begin_object()
    w.end_current()
    w.write_key("d")
    w.begin_array()
    w.end_current()
    w.write_key("e")
    w.write(0.5, PrimitiveKind.DOUBLE)
    w.end_current()

    assert fp.getvalue() == (
        "{\n"
        '    "a": 1,\n'
        '    "b": [\n'
        "        true,\n"
        '        "x",\n'
        "        {\n"
        '            "k": null\n'
        "        }\n"
        "    ],\n"
        '    "c": {},\n'
        '    "d": [],\n'
        '    "e": 0.5\n'
        "}\n"
    )
    assert w.depth == 0


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("plain", '"plain"'),
        ('say "hi"', '"say \\"hi\\""'),
        ("back\\slash", '"back\\\\slash"'),
        ("/%&ÄÖ", '"/%&ÄÖ"'),
        ("line\nbreak", '"line\nbreak"'),
    ],
)
def test_quote_string(value: str, expected: str) -> None:
    """只转义双引号和反斜杠."""
    assert quote_string(value) == expected


@pytest.mark.parametrize(
    ("value", "kind", "expected"),
    [
        (5.0, PrimitiveKind.DOUBLE, "5"),
        (5, PrimitiveKind.FLOAT, "5"),
        (-0.0, PrimitiveKind.DOUBLE, "-0"),
        (1e20, PrimitiveKind.DOUBLE, "1e+20"),
        (0.1, PrimitiveKind.DOUBLE, "0.1"),
        (0.1, PrimitiveKind.FLOAT, "0.1"),
        (42.1, PrimitiveKind.FLOAT, "42.1"),
        (1 / 3, PrimitiveKind.DOUBLE, "0.3333333333333333"),
        (1.5e-7, PrimitiveKind.DOUBLE, "1.5e-07"),
        (123456789.0, PrimitiveKind.DOUBLE, "123456789"),
        (2.5, PrimitiveKind.DOUBLE, "2.5"),
    ],
)
def test_format_float(value: float, kind: PrimitiveKind, expected: str) -> None:
    """浮点数使用能在 kind 宽度下往返的最短 %g 表示."""
    assert format_float(value, kind) == expected


@pytest.mark.parametrize("value", [0.1, 1 / 3, 1e-300, 2.0**60, 12345.678])
def test_format_float_round_trips(value: float) -> None:
    """DOUBLE 的输出文本应能精确还原原值."""
    assert float(format_float(value)) == value


@pytest.mark.parametrize(
    ("value", "kind"),
    [
        (math.nan, PrimitiveKind.DOUBLE),
        (math.inf, PrimitiveKind.DOUBLE),
        (-math.inf, PrimitiveKind.FLOAT),
        (1e39, PrimitiveKind.FLOAT),
        (10**400, PrimitiveKind.DOUBLE),
        (True, PrimitiveKind.DOUBLE),
        ("1.0", PrimitiveKind.DOUBLE),
    ],
)
def test_format_float_invalid(value: object, kind: PrimitiveKind) -> None:
    """NaN, 无穷大和超出范围的值无法表示."""
    with pytest.raises(TypeMismatch):
        format_float(value, kind)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("value", "kind", "expected"),
    [
        (0, PrimitiveKind.INT8, "0"),
        (-128, PrimitiveKind.INT8, "-128"),
        (2**64 - 1, PrimitiveKind.UINT64, "18446744073709551615"),
    ],
)
def test_format_int(value: int, kind: PrimitiveKind, expected: str) -> None:
    """整数输出为十进制."""
    assert format_int(value, kind) == expected


@pytest.mark.parametrize(
    ("value", "kind"),
    [
        (128, PrimitiveKind.INT8),
        (-1, PrimitiveKind.UINT32),
        (True, PrimitiveKind.INT32),
        (1.0, PrimitiveKind.INT32),
    ],
)
def test_format_int_invalid(value: object, kind: PrimitiveKind) -> None:
    """超出范围或类型错误的整数应抛出 TypeMismatch."""
    with pytest.raises(TypeMismatch):
        format_int(value, kind)  # type: ignore[arg-type]


def test_value_where_key_expected() -> None:
    """在需要键的位置写值应报错."""
    w = TextWriter(io.StringIO())
    w.begin_document()
    with pytest.raises(TJsonEncodeError):
        w.write_string("x")


def test_key_inside_array() -> None:
    """数组中写键应报错."""
    w = TextWriter(io.StringIO())
    w.begin_document()
    w.write_key("a")
    w.begin_array()
    with pytest.raises(TJsonEncodeError):
        w.write_key("b")


def test_two_keys_in_a_row() -> None:
    """上一个键没有值时不能写下一个键."""
    w = TextWriter(io.StringIO())
    w.begin_document()
    w.write_key("a")
    with pytest.raises(TJsonEncodeError):
        w.write_key("b")


def test_end_with_pending_key() -> None:
    """最后一个键没有值时不能关闭对象."""
    w = TextWriter(io.StringIO())
    w.begin_document()
    w.write_key("a")
    with pytest.raises(TJsonEncodeError):
        w.end_current()


def test_root_must_be_object() -> None:
    """根值必须是对象."""
    w = TextWriter(io.StringIO())
    with pytest.raises(TJsonEncodeError):
        w.begin_array()
    with pytest.raises(TJsonEncodeError):
        w.write_null()


def test_write_after_close() -> None:
    """文档关闭后不能再写入."""
    w = TextWriter(io.StringIO())
    w.begin_document()
    w.end_current()
    with pytest.raises(TJsonEncodeError):
        w.begin_document()
    with pytest.raises(TJsonEncodeError):
        w.end_current()


def test_nesting_depth_limit() -> None:
    """超过 max_depth 时应抛出 TJsonValueError."""
    w = TextWriter(io.StringIO(), max_depth=2)
    w.begin_document()
    w.write_key("a")
    w.begin_array()
    with pytest.raises(TJsonValueError):
        w.begin_array()


def test_stream_errors_propagate() -> None:
    """写入失败应原样向上传播."""

    class BrokenStream(io.StringIO):
        def write(self, s: str) -> int:
            raise OSError("disk full")

    w = TextWriter(BrokenStream())
    with pytest.raises(OSError, match="disk full"):
        w.begin_document()
