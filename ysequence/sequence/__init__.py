"""序号维护核心模块

与存储无关的序号维护算法：
- SequenceConfig: 序号配置
- Sequencer: 状态采集、计划生成、移位执行
- SequenceStore / MemoryStore: 存储接口与内存实现

使用示例:
    from ysequence.sequence import Sequencer, SequenceConfig, MemoryStore

    store = MemoryStore("tasks")
    sequencer = Sequencer(SequenceConfig(start_at=1), store)

    plan = sequencer.plan_insert({"title": "A"})
    record_id = store.insert({"title": "A", "order": plan.assigned_order})
    sequencer.commit(plan, record_id)
"""

from .config import (
    SequenceConfig,
    OutOfRangePolicy,
    normalize_group_fields,
    DEFAULT_ORDER_FIELD,
    DEFAULT_START_AT,
)
from .filters import Comparison, RangeCondition, RecordFilter
from .state import OperationKind, OrderState, coerce_order, capture_new, capture_old
from .plan import ShiftInstruction, Plan, PlanBuilder
from .sequencer import Sequencer, CommitResult
from .stores import SequenceStore, MemoryStore

__all__ = [
    # 配置
    "SequenceConfig",
    "OutOfRangePolicy",
    "normalize_group_fields",
    "DEFAULT_ORDER_FIELD",
    "DEFAULT_START_AT",
    # 过滤条件
    "Comparison",
    "RangeCondition",
    "RecordFilter",
    # 状态
    "OperationKind",
    "OrderState",
    "coerce_order",
    "capture_new",
    "capture_old",
    # 计划
    "ShiftInstruction",
    "Plan",
    "PlanBuilder",
    # 执行
    "Sequencer",
    "CommitResult",
    # 存储
    "SequenceStore",
    "MemoryStore",
]
