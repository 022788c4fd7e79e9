"""序号维护器

Sequencer 把状态采集、计划生成、最大序号查询和移位执行组合在一起，
对外提供两种使用方式。

两阶段 API（推荐）:
    plan = sequencer.plan_insert(payload)
    record_id = store.insert({**payload, "order": plan.assigned_order})
    sequencer.commit(plan, record_id)

生命周期钩子（由宿主在写入/删除前后调用）:
    plan = sequencer.before_write(payload, record_id)   # 会把序号写回 payload
    ...  # 宿主写入记录
    sequencer.after_write(plan, record_id)

    plan = sequencer.before_delete(record_id)
    ...  # 宿主删除记录
    sequencer.after_delete(plan)

同一分组的操作需要由调用方串行化（事务或分组锁），本模块不做并发控制。
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, MutableMapping, Optional, Tuple, Union

from ysequence.exceptions import SequenceError, StoreUpdateFailedError
from ysequence.log import get_logger

from .config import SequenceConfig
from .filters import RecordFilter
from .plan import Plan, PlanBuilder, ShiftInstruction
from .state import OperationKind
from .stores.base import SequenceStore

logger = get_logger()


@dataclass
class CommitResult:
    """移位执行结果

    Attributes:
        plan: 执行的计划
        applied: 成功执行的指令数
        affected_rows: 受影响的总行数
        errors: 失败的指令及其异常
    """
    plan: Plan
    applied: int = 0
    affected_rows: int = 0
    errors: List[Tuple[ShiftInstruction, StoreUpdateFailedError]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def raise_for_failure(self) -> None:
        """存在失败的指令时抛出 StoreUpdateFailedError"""
        if self.success:
            return
        details = [f"{instruction}: {error.message}" for instruction, error in self.errors]
        raise StoreUpdateFailedError(
            f"{len(self.errors)}/{len(self.plan.shifts)} 条移位指令执行失败",
            instruction=self.errors[0][0],
            result=self,
            details=details,
        )


class Sequencer:
    """序号维护器

    Args:
        config: 序号配置（SequenceConfig、字段名简写或配置字典）
        store: 记录存储

    使用示例:
        from ysequence.sequence import Sequencer, SequenceConfig, MemoryStore

        store = MemoryStore("tasks")
        sequencer = Sequencer(SequenceConfig(group_fields=("list_id",)), store)

        # 插入到第 2 位，原来 >= 2 的记录后移
        payload = {"title": "F", "list_id": 1, "order": 2}
        plan = sequencer.before_write(payload)
        record_id = store.insert(payload)
        sequencer.after_write(plan, record_id)
    """

    def __init__(
        self,
        config: Union[None, str, Mapping[str, Any], SequenceConfig],
        store: SequenceStore,
    ):
        self.config = SequenceConfig.from_options(config)
        self.store = store
        self.builder = PlanBuilder(self.config, store, self.highest_order)

    @property
    def collection(self) -> str:
        return self.store.collection

    # ==================== 最大序号 ====================

    def highest_order(self, group_filter: Optional[Mapping[str, Any]] = None) -> int:
        """查询分组内的最大序号

        Args:
            group_filter: 分组条件，None 表示整个集合

        Returns:
            最大序号，分组为空时返回 start_at - 1
        """
        order_field = self.config.order_field
        row = self.store.find_one(
            RecordFilter(groups=dict(group_filter or {})),
            order_field,
            descending=True,
        )
        if row is None or row.get(order_field) is None:
            return self.config.start_at - 1
        return int(row[order_field])

    # ==================== 计划 ====================

    def plan_insert(self, payload: Optional[Mapping[str, Any]], record_id: Any = None) -> Plan:
        """生成插入计划"""
        return self._log_plan(self.builder.build_insert(payload, record_id))

    def plan_update(self, payload: Optional[Mapping[str, Any]], record_id: Any) -> Plan:
        """生成更新计划

        Raises:
            RecordNotFoundError: 记录不存在
            OrderValueError: 序号非法或越界（REJECT 策略）
        """
        return self._log_plan(self.builder.build_update(payload, record_id))

    def plan_delete(self, record_id: Any) -> Plan:
        """生成删除计划

        Raises:
            RecordNotFoundError: 记录不存在
        """
        return self._log_plan(self.builder.build_delete(record_id))

    def plan(
        self,
        kind: Union[str, OperationKind],
        payload: Optional[Mapping[str, Any]] = None,
        record_id: Any = None,
    ) -> Plan:
        """按操作类型生成计划"""
        kind = OperationKind(kind)
        if kind is OperationKind.INSERT:
            return self.plan_insert(payload, record_id)
        if kind is OperationKind.UPDATE:
            return self.plan_update(payload, record_id)
        return self.plan_delete(record_id)

    # ==================== 执行 ====================

    def commit(self, plan: Plan, record_id: Any = None) -> CommitResult:
        """执行计划中的全部移位指令

        每条指令独立执行，单条失败不会中断后续指令，失败信息汇总在结果中。
        不做回滚和重试。

        Args:
            plan: 计划
            record_id: 记录主键，插入时为写入后得到的主键

        Returns:
            执行结果
        """
        if record_id is None:
            record_id = plan.record_id
        result = CommitResult(plan)
        if not plan.shifts:
            return result
        if record_id is None:
            raise SequenceError(
                "执行移位需要记录主键（插入操作请在写入后提交）",
                collection=self.collection,
            )

        for instruction in plan.shifts:
            groups = instruction.group_filter
            if groups is None:
                groups = plan.state.old_groups or {}
            record_filter = RecordFilter(
                groups=dict(groups),
                exclude_id=record_id,
                range_condition=instruction.range_condition,
            )
            try:
                rows = self.store.bulk_update(record_filter, self.config.order_field, instruction.delta)
            except StoreUpdateFailedError as e:
                logger.error(
                    "序号移位失败 %s[%r]: %s (%s)",
                    self.collection, record_id, instruction, e.message,
                )
                result.errors.append((instruction, e))
                continue
            result.applied += 1
            result.affected_rows += rows
            logger.debug(
                "序号移位 %s[%r]: %s, 影响 %d 行",
                self.collection, record_id, instruction, rows,
            )
        return result

    # ==================== 生命周期钩子 ====================

    def before_write(self, payload: Optional[MutableMapping[str, Any]], record_id: Any = None) -> Plan:
        """写入前钩子

        record_id 为 None 时视为插入，否则视为更新。
        计划中的 assigned_order 会写回 payload。
        """
        if record_id is None:
            plan = self.plan_insert(payload)
        else:
            plan = self.plan_update(payload, record_id)
        if plan.assigned_order is not None and payload is not None:
            payload[self.config.order_field] = plan.assigned_order
        return plan

    def after_write(self, plan: Plan, record_id: Any = None) -> CommitResult:
        """写入后钩子

        Raises:
            StoreUpdateFailedError: 存在失败的移位指令
        """
        result = self.commit(plan, record_id)
        result.raise_for_failure()
        return result

    def before_delete(self, record_id: Any) -> Plan:
        """删除前钩子"""
        return self.plan_delete(record_id)

    def after_delete(self, plan: Plan) -> CommitResult:
        """删除后钩子

        Raises:
            StoreUpdateFailedError: 存在失败的移位指令
        """
        result = self.commit(plan)
        result.raise_for_failure()
        return result

    # ==================== 内部方法 ====================

    def _log_plan(self, plan: Plan) -> Plan:
        if plan.is_noop:
            logger.debug("序号无变化 %s[%r] (%s)", self.collection, plan.record_id, plan.kind.value)
        else:
            logger.debug(
                "序号计划 %s[%r] (%s): assigned=%s, shifts=[%s]",
                self.collection,
                plan.record_id,
                plan.kind.value,
                plan.assigned_order,
                "; ".join(str(s) for s in plan.shifts),
            )
        return plan


__all__ = [
    "Sequencer",
    "CommitResult",
]
