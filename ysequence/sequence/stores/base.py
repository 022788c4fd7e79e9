"""序号存储抽象基类

定义序号维护对记录存储的最小能力要求：
- 按主键读取单个字段
- 按条件查找一条记录（用于最大序号查询）
- 按条件批量增减一个整数字段
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from ..filters import RecordFilter


class SequenceStore(ABC):
    """序号存储抽象基类

    所有存储实现都应继承此类。存储本身不理解分组、区间的业务含义，
    只负责把 RecordFilter 翻译为自己的查询。

    Attributes:
        collection: 集合（表）名称，用于日志和异常信息
    """

    collection: str = "records"

    @abstractmethod
    def read_field(self, record_id: Any, field_name: str) -> Any:
        """读取记录的单个字段

        Args:
            record_id: 记录主键
            field_name: 字段名

        Returns:
            字段值（可能为 None）

        Raises:
            RecordNotFoundError: 记录不存在
        """
        pass

    @abstractmethod
    def find_one(
        self,
        record_filter: RecordFilter,
        order_by: str,
        descending: bool = True,
    ) -> Optional[Mapping[str, Any]]:
        """按条件查找排序后的第一条记录

        Args:
            record_filter: 过滤条件
            order_by: 排序字段
            descending: 是否降序

        Returns:
            记录字段映射（至少包含 order_by 字段），没有匹配记录时返回 None
        """
        pass

    @abstractmethod
    def bulk_update(self, record_filter: RecordFilter, field_name: str, delta: int) -> int:
        """对匹配的记录执行 field_name = field_name + delta

        Args:
            record_filter: 过滤条件
            field_name: 需要增减的整数字段
            delta: 增量（+1 或 -1）

        Returns:
            受影响的行数

        Raises:
            StoreUpdateFailedError: 更新失败
        """
        pass


__all__ = ["SequenceStore"]
