"""内存序号存储

基于字典的存储实现，适用于：
- 单元测试
- 不依赖数据库的列表排序场景（如内存中的看板、播放列表）

注意：不做任何并发控制，调用方需要保证同一分组的操作串行执行。
"""

import copy
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ysequence.exceptions import RecordNotFoundError

from ..filters import RecordFilter
from .base import SequenceStore


class MemoryStore(SequenceStore):
    """内存序号存储

    记录以 {主键: {字段: 值}} 的形式保存，主键自增从 1 开始。

    使用示例:
        store = MemoryStore("tasks")
        sequencer = Sequencer(SequenceConfig(group_fields=("list_id",)), store)

        payload = {"title": "A", "list_id": 1}
        plan = sequencer.before_write(payload)
        record_id = store.insert(payload)
        sequencer.after_write(plan, record_id)
    """

    def __init__(self, collection: str = "records"):
        self.collection = collection
        self._records: Dict[Any, Dict[str, Any]] = {}
        self._next_id = 1

    # ==================== SequenceStore 接口 ====================

    def read_field(self, record_id: Any, field_name: str) -> Any:
        """读取记录的单个字段"""
        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.collection, record_id)
        return record.get(field_name)

    def find_one(
        self,
        record_filter: RecordFilter,
        order_by: str,
        descending: bool = True,
    ) -> Optional[Mapping[str, Any]]:
        """查找排序后的第一条记录，排序字段为 None 的记录不参与"""
        candidates = [
            record
            for record_id, record in self._records.items()
            if record.get(order_by) is not None and record_filter.matches(record_id, record)
        ]
        if not candidates:
            return None
        pick = max if descending else min
        return dict(pick(candidates, key=lambda r: r[order_by]))

    def bulk_update(self, record_filter: RecordFilter, field_name: str, delta: int) -> int:
        """批量增减整数字段"""
        affected = 0
        for record_id, record in self._records.items():
            if record.get(field_name) is None:
                continue
            if record_filter.matches(record_id, record):
                record[field_name] += delta
                affected += 1
        return affected

    # ==================== 记录维护 ====================

    def insert(self, values: Mapping[str, Any], record_id: Any = None) -> Any:
        """插入记录

        Args:
            values: 字段值
            record_id: 指定主键，不指定时自增分配

        Returns:
            记录主键
        """
        if record_id is None:
            record_id = self._next_id
        if record_id in self._records:
            raise ValueError(f"主键重复: {self.collection}[{record_id!r}]")
        if isinstance(record_id, int):
            self._next_id = max(self._next_id, record_id + 1)
        self._records[record_id] = dict(values)
        return record_id

    def update(self, record_id: Any, values: Mapping[str, Any]) -> None:
        """更新记录的部分字段"""
        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.collection, record_id)
        record.update(values)

    def delete(self, record_id: Any) -> None:
        """删除记录"""
        if self._records.pop(record_id, None) is None:
            raise RecordNotFoundError(self.collection, record_id)

    def get(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """获取记录副本，不存在时返回 None"""
        record = self._records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def records(
        self,
        groups: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[Tuple[Any, Dict[str, Any]]]:
        """列出记录

        Args:
            groups: 分组条件，None 表示全部记录
            order_by: 排序字段，None 值排在最后

        Returns:
            (主键, 记录副本) 列表
        """
        record_filter = RecordFilter(groups=dict(groups or {}))
        result = [
            (record_id, copy.deepcopy(record))
            for record_id, record in self._records.items()
            if record_filter.matches(record_id, record)
        ]
        if order_by:
            result.sort(key=lambda item: (item[1].get(order_by) is None, item[1].get(order_by) or 0))
        return result

    def clear(self) -> None:
        """清空所有记录"""
        self._records.clear()
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["MemoryStore"]
