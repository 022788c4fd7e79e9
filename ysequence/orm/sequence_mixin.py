"""序号维护 Mixin

在 SQLAlchemy flush 过程中自动维护序号字段：插入、修改序号、跨组移动、
删除时对同组其他记录执行区间移位，使每个分组内的序号始终连续。

使用示例:
    from ysequence.orm import SequenceFieldMixin, SequenceMixin

    class Task(SequenceFieldMixin, SequenceMixin, Base):
        __tablename__ = "task"
        __sequence_group_by__ = "list_id"     # 按清单分组

        id: Mapped[int] = mapped_column(primary_key=True)
        list_id: Mapped[int]
        title: Mapped[str]

    # 追加到末尾，同一次 flush 中的多条追加依次顺延
    session.add_all([Task(list_id=1, title="A"), Task(list_id=1, title="B")])
    session.flush()

    # 插入到第 0 位，其余记录后移
    session.add(Task(list_id=1, title="C", order=0))
    session.flush()

    # 移到另一个清单末尾，原清单后面的记录前移
    task.list_id = 2
    session.flush()

注意:
    SQLAlchemy 会先对整批记录触发 before_* 事件再执行语句。同一次 flush 中，
    一个分组要么只有若干条追加到末尾的插入，要么只有一条记录发生其他序号变化
    （指定位置插入、移动、删除），否则抛出 SequenceError，需要逐条 flush。
"""

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from sqlalchemy import event, inspect, select
from sqlalchemy.orm import Session, object_session

from ysequence.exceptions import ErrorCode, SequenceConfigurationError, SequenceError
from ysequence.log import get_logger
from ysequence.sequence import (
    CommitResult,
    OutOfRangePolicy,
    Plan,
    SequenceConfig,
    Sequencer,
    normalize_group_fields,
)

from .store import SQLAlchemyStore

logger = get_logger()

# InstanceState.info 中保存计划的键
_PLAN_KEY = "ysequence.plan"
# Session.info 中记录本次 flush 发生移位的模型类
_SHIFTED_KEY = "ysequence.shifted_classes"
# Session.info 中记录本次 flush 内各分组尚未落库的序号变化
_CLAIMED_KEY = "ysequence.claimed_groups"
# InstanceState.info 中保存实例登记的分组
_CLAIMS_KEY = "ysequence.claims"

# 分组在一次 flush 中的序号变化类型
_APPEND = "append"
_SHIFT = "shift"


class SequenceMixin:
    """序号维护 Mixin

    字段要求（使用者需定义或使用 SequenceFieldMixin）:
        - order: int  序号
        - 单列主键

    可配置属性（子类可覆盖）:
        - __sequence_field__: 序号字段名，默认 "order"
        - __sequence_group_by__: 分组字段，默认 None（不分组）
            - 字符串: 单字段分组，如 "list_id"
            - 列表: 多字段分组，如 ["board_id", "column_id"]
        - __sequence_start_at__: 起始序号，默认 0
        - __sequence_out_of_range__: 越界序号处理策略，默认 CLAMP

    配置在类定义时校验，非法配置抛出 SequenceConfigurationError。
    """

    # ==================== 配置 ====================

    __sequence_field__: str = "order"
    __sequence_group_by__: Union[str, List[str], None] = None
    __sequence_start_at__: int = 0
    __sequence_out_of_range__: Union[str, OutOfRangePolicy] = OutOfRangePolicy.CLAMP

    # 由 __init_subclass__ 生成
    __sequence_config__: SequenceConfig = SequenceConfig()

    def __init_subclass__(cls, **kwargs):
        # 先校验配置，非法配置的类不会进入映射注册表
        cls.__sequence_config__ = SequenceConfig(
            order_field=cls.__sequence_field__,
            group_fields=normalize_group_fields(cls.__sequence_group_by__),
            start_at=cls.__sequence_start_at__,
            out_of_range=cls.__sequence_out_of_range__,
        )
        super().__init_subclass__(**kwargs)

    # ==================== 类方法 ====================

    @classmethod
    def sequencer(cls, bind) -> Sequencer:
        """创建绑定到 Connection 或 Session 的序号维护器"""
        return Sequencer(cls.__sequence_config__, SQLAlchemyStore(cls, bind))

    @classmethod
    def sequence_select(cls, group_values: Optional[Mapping[str, Any]] = None):
        """构造按序号排序的查询

        Args:
            group_values: 分组条件，值为 None 时匹配 IS NULL

        Returns:
            select 语句

        使用示例:
            stmt = Task.sequence_select({"list_id": 1})
            tasks = session.scalars(stmt).all()
        """
        config = cls.__sequence_config__
        stmt = select(cls)
        for key, value in (group_values or {}).items():
            if key not in config.group_fields:
                raise SequenceConfigurationError(
                    f"{cls.__name__} 的分组字段不包含 '{key}'",
                    field=key,
                )
            column = getattr(cls, key)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        return stmt.order_by(getattr(cls, config.order_field))

    @classmethod
    def get_sequence(cls, session: Session, group_values: Optional[Mapping[str, Any]] = None) -> list:
        """按序号顺序获取分组内的记录"""
        return list(session.scalars(cls.sequence_select(group_values)).all())

    @classmethod
    def highest_sequence_order(
        cls,
        session: Session,
        group_values: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """获取分组内的最大序号，分组为空时返回 start_at - 1"""
        return cls.sequencer(session).highest_order(group_values)

    # ==================== 实例方法 ====================

    def sequence_group_values(self) -> Dict[str, Any]:
        """当前实例的分组值"""
        return {name: getattr(self, name) for name in self.__sequence_config__.group_fields}


# ==================== 内部方法 ====================

def _insert_payload(target: SequenceMixin) -> Dict[str, Any]:
    config = target.__sequence_config__
    payload = target.sequence_group_values()
    order = getattr(target, config.order_field)
    if order is not None:
        payload[config.order_field] = order
    return payload


def _update_payload(target: SequenceMixin, sequencer: Sequencer, record_id: Any) -> Dict[str, Any]:
    """只包含本次发生变更的序号/分组字段"""
    config = target.__sequence_config__
    state = inspect(target)
    payload = {}
    for key in (config.order_field,) + config.group_fields:
        history = state.attrs[key].history
        if not history.has_changes():
            continue
        value = getattr(target, key)
        if key == config.order_field and value is None:
            # 序号被置空视为未指定，恢复原值；属性已过期时没有旧值，从数据库读取
            if history.deleted:
                previous = history.deleted[0]
            else:
                previous = sequencer.store.read_field(record_id, key)
            setattr(target, key, previous)
            continue
        payload[key] = value
    return payload


def _record_id(mapper, target) -> Any:
    identity = inspect(target).identity
    if identity is not None:
        return identity[0]
    return mapper.primary_key_from_instance(target)[0]


def _stash_plan(target, plan: Plan) -> None:
    inspect(target).info[_PLAN_KEY] = plan


def _pop_plan(target) -> Optional[Plan]:
    return inspect(target).info.pop(_PLAN_KEY, None)


def _base_class(target) -> type:
    """单表继承时，兄弟子类共享同一张表和同一组序号"""
    return inspect(target).mapper.base_mapper.class_


def _plan_groups(target, plan: Plan) -> Dict[Tuple, str]:
    """计划涉及的分组及其变化类型

    未指定序号的插入（以及按插入处理的更新）只是追加到分组末尾，记为 _APPEND；
    带移位指令的分组记为 _SHIFT。
    """
    fields = target.__sequence_config__.group_fields

    def key(groups: Mapping[str, Any]) -> Tuple:
        return (_base_class(target),) + tuple(groups.get(name) for name in fields)

    touched = {key(instruction.group_filter or {}): _SHIFT for instruction in plan.shifts}
    if plan.assigned_order is not None and not plan.state.order_specified:
        touched.setdefault(key(plan.state.effective_new_groups), _APPEND)
    return touched


def _claim_groups(target, plan: Plan) -> Plan:
    """登记计划涉及的分组，直到对应的 after_* 事件执行完毕

    SQLAlchemy 通常先对整批记录触发 before_* 再执行语句，后生成的计划读不到
    前面尚未落库的变化。同一分组中尚未落库的追加会让本次追加的序号顺延；
    分组中还有其他未落库的变化时抛出 SequenceError。

    Returns:
        顺延后的计划
    """
    session = object_session(target)
    touched = _plan_groups(target, plan)
    if session is None or not touched:
        return plan

    claimed = session.info.setdefault(_CLAIMED_KEY, {})
    offset = 0
    for group_key, kind in touched.items():
        pending = claimed.get(group_key)
        if pending is None:
            continue
        if kind == _APPEND and pending[0] == _APPEND:
            offset = pending[1]
            continue
        raise SequenceError(
            f"同一次 flush 中 {type(target).__name__} 的分组 {group_key[1:]} "
            f"有多条记录的序号发生变化，请逐条 flush",
            code=ErrorCode.GROUP_CHANGED_TWICE_IN_FLUSH,
            model=type(target).__name__,
            groups=group_key[1:],
        )

    for group_key, kind in touched.items():
        count = claimed[group_key][1] if group_key in claimed else 0
        claimed[group_key] = (kind, count + 1)
    inspect(target).info[_CLAIMS_KEY] = tuple(touched)

    if offset:
        plan = replace(plan, assigned_order=plan.assigned_order + offset)
        logger.debug(
            "%s 分组 %s 中有 %d 条追加尚未落库，序号顺延为 %d",
            type(target).__name__, plan.state.effective_new_groups, offset, plan.assigned_order,
        )
    return plan


def _release_groups(target) -> None:
    """实例的语句和移位都已执行，撤销其分组登记"""
    group_keys = inspect(target).info.pop(_CLAIMS_KEY, ())
    session = object_session(target)
    if not group_keys or session is None:
        return
    claimed = session.info.get(_CLAIMED_KEY, {})
    for group_key in group_keys:
        kind, count = claimed.get(group_key, (None, 0))
        if count > 1:
            claimed[group_key] = (kind, count - 1)
        else:
            claimed.pop(group_key, None)


def _mark_shifted(target, result: CommitResult) -> None:
    """记录发生了移位的模型类，flush 结束后使其序号属性过期"""
    if not result.affected_rows:
        return
    session = object_session(target)
    if session is not None:
        session.info.setdefault(_SHIFTED_KEY, set()).add(_base_class(target))


# ==================== 事件监听器 ====================

@event.listens_for(SequenceMixin, 'mapper_configured', propagate=True)
def event_validate_sequence_columns(mapper, cls):
    """映射完成后校验序号字段和分组字段都是模型的列"""
    config = cls.__sequence_config__
    for key in (config.order_field,) + config.group_fields:
        if key not in mapper.columns:
            raise SequenceConfigurationError(
                f"{cls.__name__} 没有列 '{key}'，无法维护序号",
                field=key,
                model=cls.__name__,
            )
    if len(mapper.primary_key) != 1:
        raise SequenceConfigurationError(
            f"{cls.__name__} 必须使用单列主键才能维护序号",
            model=cls.__name__,
        )


@event.listens_for(SequenceMixin, 'before_insert', propagate=True)
def event_before_insert(mapper, connection, target):
    """插入前确定序号

    未指定序号时追加到分组末尾；指定序号时写入该位置（越界按策略处理）。
    """
    plan = target.sequencer(connection).plan_insert(_insert_payload(target))
    plan = _claim_groups(target, plan)
    setattr(target, target.__sequence_config__.order_field, plan.assigned_order)
    _stash_plan(target, plan)


@event.listens_for(SequenceMixin, 'after_insert', propagate=True)
def event_after_insert(mapper, connection, target):
    """插入后为新记录腾出位置"""
    plan = _pop_plan(target)
    if plan is None:
        return
    result = target.sequencer(connection).after_write(plan, _record_id(mapper, target))
    _mark_shifted(target, result)
    _release_groups(target)


@event.listens_for(SequenceMixin, 'before_update', propagate=True)
def event_before_update(mapper, connection, target):
    """更新前根据序号/分组的变化生成计划"""
    record_id = _record_id(mapper, target)
    sequencer = target.sequencer(connection)
    payload = _update_payload(target, sequencer, record_id)
    if not payload:
        return
    plan = _claim_groups(target, sequencer.plan_update(payload, record_id))
    if plan.assigned_order is not None:
        setattr(target, target.__sequence_config__.order_field, plan.assigned_order)
    _stash_plan(target, plan)


@event.listens_for(SequenceMixin, 'after_update', propagate=True)
def event_after_update(mapper, connection, target):
    """更新后移位同组（或新旧两组）的其他记录"""
    plan = _pop_plan(target)
    if plan is None:
        return
    result = target.sequencer(connection).after_write(plan, _record_id(mapper, target))
    _mark_shifted(target, result)
    _release_groups(target)


@event.listens_for(SequenceMixin, 'before_delete', propagate=True)
def event_before_delete(mapper, connection, target):
    """删除前读取记录当前的序号和分组"""
    plan = target.sequencer(connection).before_delete(_record_id(mapper, target))
    _stash_plan(target, _claim_groups(target, plan))


@event.listens_for(SequenceMixin, 'after_delete', propagate=True)
def event_after_delete(mapper, connection, target):
    """删除后收拢同组后面的记录"""
    plan = _pop_plan(target)
    if plan is None:
        return
    result = target.sequencer(connection).after_delete(plan)
    _mark_shifted(target, result)
    _release_groups(target)


@event.listens_for(Session, 'before_flush')
def event_reset_claimed_groups(session, flush_context, instances):
    """每次 flush 开始时清空分组登记"""
    session.info.pop(_CLAIMED_KEY, None)


@event.listens_for(Session, 'after_flush_postexec')
def event_expire_shifted_orders(session, flush_context):
    """flush 后使受移位影响的模型实例的序号属性过期

    移位通过 UPDATE 语句直接修改数据库，会话中已加载的兄弟记录仍持有旧值，
    过期后下次访问时重新加载。
    """
    session.info.pop(_CLAIMED_KEY, None)
    classes = session.info.pop(_SHIFTED_KEY, None)
    if not classes:
        return
    classes = tuple(classes)
    expired = 0
    for obj in list(session.identity_map.values()):
        if isinstance(obj, classes):
            session.expire(obj, [obj.__sequence_config__.order_field])
            expired += 1
    logger.debug("flush 后过期 %d 个实例的序号属性", expired)


__all__ = [
    "SequenceMixin",
]
