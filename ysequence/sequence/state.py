"""序号状态采集

每次写入/删除操作开始时采集两份状态：
- 旧状态：记录当前持久化的序号和分组（从存储读取）
- 新状态：待写入数据中给出的序号和分组（从 payload 读取）

payload 中缺失的字段视为"未指定"；序号为 None 同样视为未指定，
分组值为 None 则是明确指定的值（对应 IS NULL 分组）。
"""

import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from ysequence.exceptions import OrderValueError

from .config import SequenceConfig
from .stores.base import SequenceStore


class OperationKind(str, Enum):
    """操作类型"""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class OrderState:
    """单次操作的序号状态

    Attributes:
        old_order: 持久化的序号（插入时为 None）
        new_order: payload 指定的序号，None 表示未指定
        old_groups: 持久化的分组值（包含全部分组字段），未采集时为 None
        new_groups: payload 指定的分组值，只包含 payload 中出现的字段
    """
    old_order: Optional[int] = None
    new_order: Optional[int] = None
    old_groups: Optional[Mapping[str, Any]] = None
    new_groups: Mapping[str, Any] = field(default_factory=dict)

    @property
    def order_specified(self) -> bool:
        return self.new_order is not None

    @property
    def groups_specified(self) -> bool:
        return bool(self.new_groups)

    @property
    def effective_new_groups(self) -> Dict[str, Any]:
        """写入后的分组值：旧分组叠加 payload 中指定的分组字段"""
        groups = dict(self.old_groups or {})
        groups.update(self.new_groups)
        return groups

    @property
    def effective_new_order(self) -> Optional[int]:
        """写入后的序号：未指定时沿用旧序号"""
        return self.new_order if self.order_specified else self.old_order

    @property
    def groups_changed(self) -> bool:
        if not self.groups_specified:
            return False
        return self.effective_new_groups != dict(self.old_groups or {})

    @property
    def order_changed(self) -> bool:
        return self.order_specified and self.new_order != self.old_order


def coerce_order(value: Any) -> int:
    """将序号值转换为整数

    Raises:
        OrderValueError: 值无法无损转换为整数
    """
    if isinstance(value, bool):
        raise OrderValueError(f"序号不能是布尔值: {value!r}", value=value)
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise OrderValueError(f"序号必须是整数: {value!r}", value=value) from None
    if isinstance(value, numbers.Number) and result != value:
        raise OrderValueError(f"序号必须是整数: {value!r}", value=value)
    return result


def capture_new(
    config: SequenceConfig,
    payload: Optional[Mapping[str, Any]],
) -> Tuple[Optional[int], Dict[str, Any]]:
    """从待写入数据中读取新序号和新分组

    Args:
        config: 序号配置
        payload: 待写入的字段映射

    Returns:
        (new_order, new_groups)，new_order 为 None 表示未指定，
        new_groups 只包含 payload 中出现的分组字段
    """
    payload = payload or {}
    new_order = payload.get(config.order_field)
    if new_order is not None:
        new_order = coerce_order(new_order)

    new_groups = {
        name: payload[name]
        for name in config.group_fields
        if name in payload
    }
    return new_order, new_groups


def capture_old(
    config: SequenceConfig,
    store: SequenceStore,
    record_id: Any,
) -> Tuple[Optional[int], Dict[str, Any]]:
    """从存储读取记录当前的序号和分组

    Returns:
        (old_order, old_groups)，old_order 可能为 None（历史数据未编号）

    Raises:
        RecordNotFoundError: 记录不存在
    """
    old_order = store.read_field(record_id, config.order_field)
    if old_order is not None:
        old_order = int(old_order)
    old_groups = {
        name: store.read_field(record_id, name)
        for name in config.group_fields
    }
    return old_order, old_groups


__all__ = [
    "OperationKind",
    "OrderState",
    "coerce_order",
    "capture_new",
    "capture_old",
]
