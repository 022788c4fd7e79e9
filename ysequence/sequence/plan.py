"""序号维护计划

PlanBuilder 根据采集到的状态决定：
1. 记录自身应写入的序号（assigned_order）
2. 为保持序号连续需要对兄弟记录执行的区间移位（ShiftInstruction）

移位规则（以 order 字段为例）:
    插入到 n:             +1  order >= n                  （新分组）
    同组上移 old -> n:     +1  order >= n AND order < old   （旧分组）
    同组下移 old -> n:     -1  order > old AND order <= n   （旧分组）
    跨组移出:             -1  order >= old                （旧分组）
    跨组移入到 n:          +1  order >= n                  （新分组）
    删除:                 -1  order > old                 （旧分组）

所有移位都排除正在写入/删除的记录本身。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ysequence.exceptions import ErrorCode, OrderValueError

from .config import OutOfRangePolicy, SequenceConfig
from .filters import RangeCondition
from .state import OperationKind, OrderState, capture_new, capture_old
from .stores.base import SequenceStore


@dataclass(frozen=True)
class ShiftInstruction:
    """区间移位指令

    Attributes:
        delta: 增量，+1 或 -1
        range_condition: 序号区间条件
        group_filter: 分组条件，为 None 时执行器使用操作的 old_groups
    """
    delta: int
    range_condition: RangeCondition
    group_filter: Optional[Mapping[str, Any]] = None

    def __str__(self) -> str:
        groups = "" if self.group_filter is None else f" {dict(self.group_filter)}"
        return f"{self.delta:+d} WHERE {self.range_condition}{groups}"


@dataclass(frozen=True)
class Plan:
    """单次操作的序号维护计划

    Attributes:
        kind: 操作类型
        record_id: 记录主键（插入时通常在写入后才知道）
        state: 采集到的序号状态
        assigned_order: 记录自身需要写入的序号，None 表示不修改
        shifts: 按执行顺序排列的移位指令（0-2 条）
    """
    kind: OperationKind
    record_id: Any = None
    state: OrderState = field(default_factory=OrderState)
    assigned_order: Optional[int] = None
    shifts: Tuple[ShiftInstruction, ...] = ()

    @property
    def is_noop(self) -> bool:
        """是否无需任何序号维护"""
        if self.kind is OperationKind.INSERT or self.shifts:
            return False
        return self.assigned_order is None or self.assigned_order == self.state.old_order


class PlanBuilder:
    """序号维护计划生成器

    Args:
        config: 序号配置
        store: 记录存储（读取旧状态）
        highest_order: 最大序号查询函数，参数为分组条件
    """

    def __init__(
        self,
        config: SequenceConfig,
        store: SequenceStore,
        highest_order: Callable[[Mapping[str, Any]], int],
    ):
        self.config = config
        self.store = store
        self.highest_order = highest_order

    # ==================== 插入 ====================

    def build_insert(self, payload: Optional[Mapping[str, Any]], record_id: Any = None) -> Plan:
        """生成插入计划

        payload 中缺失的分组字段按 None 处理（记录将写入 NULL 分组）。
        """
        new_order, specified_groups = capture_new(self.config, payload)
        groups = {name: specified_groups.get(name) for name in self.config.group_fields}
        state = OrderState(new_order=new_order, old_groups=groups, new_groups=groups)
        assigned, shifts = self._place(new_order, groups)
        return Plan(OperationKind.INSERT, record_id, state, assigned, shifts)

    # ==================== 更新 ====================

    def build_update(self, payload: Optional[Mapping[str, Any]], record_id: Any) -> Plan:
        """生成更新计划"""
        new_order, new_groups = capture_new(self.config, payload)
        if new_order is None and not new_groups:
            # 序号和分组都未涉及，不读取存储
            return Plan(OperationKind.UPDATE, record_id, OrderState(new_groups=new_groups))

        old_order, old_groups = capture_old(self.config, self.store, record_id)
        state = OrderState(
            old_order=old_order,
            new_order=new_order,
            old_groups=old_groups,
            new_groups=new_groups,
        )
        if state.effective_new_order == old_order and not state.groups_changed:
            return Plan(OperationKind.UPDATE, record_id, state)

        target_groups = state.effective_new_groups

        if state.groups_changed:
            shifts: Tuple[ShiftInstruction, ...] = ()
            if old_order is not None:
                shifts = (self._shift(-1, old_groups, (">=", old_order)),)
            assigned, opening = self._place(new_order, target_groups)
            return Plan(OperationKind.UPDATE, record_id, state, assigned, shifts + opening)

        if old_order is None:
            # 历史数据没有序号，按插入处理
            assigned, shifts = self._place(new_order, target_groups)
            return Plan(OperationKind.UPDATE, record_id, state, assigned, shifts)

        # 同组内移动
        assigned = self._resolve(new_order, old_groups, same_group=True)
        if assigned < old_order:
            shifts = (self._shift(+1, old_groups, (">=", assigned), ("<", old_order)),)
        elif assigned > old_order:
            shifts = (self._shift(-1, old_groups, (">", old_order), ("<=", assigned)),)
        else:
            shifts = ()
        return Plan(OperationKind.UPDATE, record_id, state, assigned, shifts)

    # ==================== 删除 ====================

    def build_delete(self, record_id: Any) -> Plan:
        """生成删除计划，序号为 None 的记录无需收拢"""
        old_order, old_groups = capture_old(self.config, self.store, record_id)
        state = OrderState(old_order=old_order, old_groups=old_groups)
        if old_order is None:
            return Plan(OperationKind.DELETE, record_id, state)
        shifts = (self._shift(-1, old_groups, (">", old_order)),)
        return Plan(OperationKind.DELETE, record_id, state, shifts=shifts)

    # ==================== 内部方法 ====================

    def _place(
        self,
        new_order: Optional[int],
        groups: Dict[str, Any],
    ) -> Tuple[int, Tuple[ShiftInstruction, ...]]:
        """确定记录进入分组时的序号，以及为其腾出位置的移位"""
        if new_order is None:
            return self.highest_order(groups) + 1, ()
        assigned = self._resolve(new_order, groups, same_group=False)
        return assigned, (self._shift(+1, groups, (">=", assigned)),)

    def _resolve(self, value: int, groups: Mapping[str, Any], same_group: bool) -> int:
        """按越界策略处理指定的序号

        合法区间为 [start_at, 最大序号 + 1]，同组移动时为 [start_at, 最大序号]。
        """
        policy = self.config.out_of_range
        if policy is OutOfRangePolicy.ALLOW:
            return value

        lower = self.config.start_at
        highest = self.highest_order(groups)
        upper = max(highest if same_group else highest + 1, lower)
        if lower <= value <= upper:
            return value

        if policy is OutOfRangePolicy.REJECT:
            raise OrderValueError(
                f"序号 {value} 超出范围 [{lower}, {upper}]",
                value=value,
                code=ErrorCode.ORDER_OUT_OF_RANGE,
                lower=lower,
                upper=upper,
            )
        return min(max(value, lower), upper)

    def _shift(self, delta: int, groups: Mapping[str, Any], *pairs: Tuple[str, int]) -> ShiftInstruction:
        return ShiftInstruction(
            delta=delta,
            range_condition=RangeCondition.of(self.config.order_field, *pairs),
            group_filter=dict(groups),
        )


__all__ = [
    "ShiftInstruction",
    "Plan",
    "PlanBuilder",
]
