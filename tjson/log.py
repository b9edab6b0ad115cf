"""tjson 日志记录器."""

import logging

logger = logging.getLogger("tjson")


def get_excerpt(text: str, row: int, column: int, window: int = 40) -> str:
    """获取指定位置所在行的源码片段, 并用 `^` 标出列位置."""
    lines = text.splitlines() or [""]
    index = min(max(row, 1), len(lines)) - 1
    line = lines[index]

    col = max(column, 1) - 1
    start = max(0, col - window)
    end = min(len(line), col + window)
    caret = " " * (col - start) + "^"

    return f"第 {row} 行, 第 {column} 列:\n{line[start:end]}\n{caret}"
