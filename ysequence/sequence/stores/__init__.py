"""序号存储模块

提供不同的存储实现：
- SequenceStore: 存储抽象基类
- MemoryStore: 内存存储（测试、无数据库场景）

SQLAlchemy 存储见 ysequence.orm.SQLAlchemyStore。
"""

from .base import SequenceStore
from .memory import MemoryStore

__all__ = [
    "SequenceStore",
    "MemoryStore",
]
