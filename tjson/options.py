"""tjson 序列化和反序列化的配置选项.

该模块定义了用于控制 `dumps` 和 `loads` 函数行为的选项标志.
"""

from enum import IntFlag


class JsonOption(IntFlag):
    """tjson 配置选项标志.

    可以使用位运算组合多个选项:
        option = JsonOption.STRICT_KEYS | JsonOption.SORT_COLLECTIONS
    """

    # 默认行为: 忽略未知键, 按迭代顺序输出, 拒绝文档后的多余内容
    NONE = 0x0000

    # 记录中出现未注册的键时报错 (默认静默忽略)
    STRICT_KEYS = 0x0001

    # 序列化时对集合元素和映射键排序, 使输出与哈希顺序无关
    SORT_COLLECTIONS = 0x0002

    # 根对象结束后允许任意多余内容
    ALLOW_TRAILING_DATA = 0x0004
