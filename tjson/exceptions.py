"""tjson 特定的异常类.

该模块为 tjson 库定义了异常层次结构.
"""


class TJsonError(Exception):
    """所有 tjson 异常的基类."""

    pass


class TJsonEncodeError(TJsonError):
    """序列化失败时抛出.

    Case:
        - 对象不匹配已注册的描述符.
        - 写入器状态不允许当前操作 (如在数组中写键).
        - 循环引用.
    """

    pass


class TJsonTypeError(TJsonEncodeError, TypeError):
    """类型不匹配时抛出."""

    pass


class TJsonValueError(TJsonEncodeError, ValueError):
    """值无效时抛出 (如超出范围, 嵌套过深)."""

    pass


class TJsonDecodeError(TJsonError):
    """反序列化失败时抛出.

    Case:
        - 意外字符或缺失的 `:`.
        - 输入数据被截断.
        - 数值超出目标类型范围.
    """

    def __init__(
        self,
        msg: str,
        row: int | None = None,
        column: int | None = None,
        char: str | None = None,
        loc: list[str | int] | None = None,
    ) -> None:
        """初始化解码错误.

        Args:
            msg: 错误描述信息.
            row: 出错位置的行号 (从 1 开始).
            column: 出错位置的列号 (从 1 开始).
            char: 引发错误的字符 (如果有).
            loc: 错误发生的位置路径 (键名或列表索引).
        """
        super().__init__(msg)
        self.msg = msg
        self.row = row
        self.column = column
        self.char = char
        self.loc = loc or []

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.row is not None:
            base_msg = f"{base_msg} (at row {self.row}, column {self.column})"
        if self.loc:
            # 格式化为 dotted path
            loc_str = ".".join(str(x) for x in self.loc)
            return f"{base_msg} (in {loc_str})"
        return base_msg


class JsonSyntaxError(TJsonDecodeError):
    """遇到意外字符, 缺失 `:` 或无法识别的字面量时抛出."""

    pass


class UnexpectedEndOfInput(TJsonDecodeError):
    """在读取一个完整记号之前输入已结束时抛出."""

    pass


class UnknownKeyError(TJsonDecodeError):
    """严格模式下 (`JsonOption.STRICT_KEYS`) 遇到未注册的键时抛出."""

    pass


class NestingDepthError(TJsonDecodeError):
    """输入的嵌套深度超过 `max_depth` 时抛出."""

    pass


class TypeMismatch(TJsonDecodeError, TypeError):
    """值存在, 但无法转换为请求的基础类型时抛出.

    例如整数字段读到了小数, `UINT8` 字段读到了 `300`.
    写入器在遇到超出范围的整数或 NaN/Infinity 时同样抛出此异常.
    """

    pass


class UnknownEnumName(TJsonDecodeError, ValueError):
    """枚举名称没有对应的注册值时抛出."""

    pass


class UnknownEnumValue(TJsonEncodeError, ValueError):
    """枚举值没有对应的注册名称时抛出."""

    pass
