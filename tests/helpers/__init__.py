"""测试辅助工具模块

提供测试专用的辅助函数，避免在核心代码中添加测试专用方法。
"""

from .sequence_helpers import (
    insert,
    update,
    delete,
    titles_in_order,
    orders_in_group,
    is_contiguous,
)

__all__ = [
    # 钩子调用顺序
    'insert',
    'update',
    'delete',
    # 断言辅助
    'titles_in_order',
    'orders_in_group',
    'is_contiguous',
]
