"""tjson 配置对象."""

from dataclasses import dataclass, field
from typing import Any

from .options import JsonOption

# 默认最大嵌套深度
DEFAULT_MAX_DEPTH = 64


@dataclass(frozen=True)
class JsonConfig:
    """tjson 序列化/反序列化配置 (不可变).

    这是所有配置的统一容器, 在 API 入口层创建,
    然后传递给 Serializer/Deserializer 以及读写器.

    Attributes:
        flags: 选项标志 (IntFlag).
        context: 用户提供的上下文数据, 自定义编解码器可以访问.
        max_depth: 允许的最大容器嵌套深度.
    """

    flags: JsonOption = JsonOption.NONE
    context: dict[str, Any] = field(default_factory=dict)
    max_depth: int = DEFAULT_MAX_DEPTH

    @classmethod
    def from_params(
        cls,
        option: JsonOption = JsonOption.NONE,
        context: dict[str, Any] | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> "JsonConfig":
        """从参数构建配置对象.

        Args:
            option: JsonOption 枚举.
            context: 用户提供的上下文数据.
            max_depth: 最大嵌套深度 (必须 >= 1).

        Returns:
            JsonConfig: 配置对象.

        Raises:
            ValueError: 如果 `max_depth` 小于 1.
        """
        if max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {max_depth}")

        # 处理 context None
        ctx = context if context is not None else {}

        return cls(flags=JsonOption(option), context=ctx, max_depth=max_depth)

    @property
    def strict_keys(self) -> bool:
        """未知键是否视为错误."""
        return bool(self.flags & JsonOption.STRICT_KEYS)

    @property
    def sort_collections(self) -> bool:
        """是否对集合元素和映射键排序."""
        return bool(self.flags & JsonOption.SORT_COLLECTIONS)

    @property
    def allow_trailing_data(self) -> bool:
        """是否允许根对象之后的多余内容."""
        return bool(self.flags & JsonOption.ALLOW_TRAILING_DATA)
