"""SQLAlchemy 序号存储

把 RecordFilter 编译为针对模型表的 Core 语句：
- 分组值为 None 时使用 IS NULL
- 区间条件直接作用于 Column（比较运算符生成 SQL 表达式）
- 移位使用单条 UPDATE ... SET col = col + :delta

直接操作表而不是 ORM 查询，单表继承的子类共享同一个序号空间。
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy import Column, inspect, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ysequence.exceptions import (
    RecordNotFoundError,
    SequenceConfigurationError,
    StoreUpdateFailedError,
)
from ysequence.log import get_logger
from ysequence.sequence.filters import RecordFilter
from ysequence.sequence.stores.base import SequenceStore

logger = get_logger()


class SQLAlchemyStore(SequenceStore):
    """SQLAlchemy 序号存储

    Args:
        model_cls: 映射模型类
        bind: Connection（flush 事件中）或 Session

    使用示例:
        store = SQLAlchemyStore(Task, session)
        sequencer = Sequencer(Task.__sequence_config__, store)
        sequencer.highest_order({"list_id": 1})
    """

    def __init__(self, model_cls: type, bind: Union[Connection, Session]):
        self.model_cls = model_cls
        self.bind = bind
        self.mapper = inspect(model_cls)
        self.table = self.mapper.local_table
        self.collection = self.table.name
        self.pk_column = self.mapper.primary_key[0]

    def column(self, key: str) -> Column:
        """按属性名获取表列

        Raises:
            SequenceConfigurationError: 模型没有该列
        """
        try:
            return self.mapper.columns[key]
        except KeyError:
            raise SequenceConfigurationError(
                f"{self.model_cls.__name__} 没有列 '{key}'",
                field=key,
                model=self.model_cls.__name__,
            ) from None

    def where_clauses(self, record_filter: RecordFilter) -> List[Any]:
        """将过滤条件编译为 WHERE 子句列表"""
        clauses = []
        for key, value in record_filter.groups.items():
            col = self.column(key)
            clauses.append(col.is_(None) if value is None else col == value)
        if record_filter.exclude_id is not None:
            clauses.append(self.pk_column != record_filter.exclude_id)
        if record_filter.range_condition is not None:
            col = self.column(record_filter.range_condition.field)
            clauses.extend(record_filter.range_condition.clauses(col))
        return clauses

    # ==================== SequenceStore 接口 ====================

    def read_field(self, record_id: Any, field_name: str) -> Any:
        """读取记录的单个字段"""
        col = self.column(field_name)
        row = self.bind.execute(
            select(col).where(self.pk_column == record_id)
        ).first()
        if row is None:
            raise RecordNotFoundError(self.collection, record_id)
        return row[0]

    def find_one(
        self,
        record_filter: RecordFilter,
        order_by: str,
        descending: bool = True,
    ) -> Optional[Mapping[str, Any]]:
        """查找排序后的第一条记录，排序字段为 NULL 的记录不参与"""
        col = self.column(order_by)
        stmt = (
            select(self.pk_column, col)
            .where(*self.where_clauses(record_filter), col.is_not(None))
            .order_by(col.desc() if descending else col.asc())
            .limit(1)
        )
        row = self.bind.execute(stmt).first()
        if row is None:
            return None
        result: Dict[str, Any] = {self.pk_column.key: row[0], order_by: row[1]}
        return result

    def bulk_update(self, record_filter: RecordFilter, field_name: str, delta: int) -> int:
        """批量增减整数字段

        Raises:
            StoreUpdateFailedError: 数据库执行失败
        """
        col = self.column(field_name)
        stmt = (
            update(col.table)
            .where(*self.where_clauses(record_filter))
            .values({col: col + delta})
        )
        try:
            result = self.bind.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("序号移位 SQL 执行失败 %s: %s", self.collection, record_filter)
            raise StoreUpdateFailedError(
                f"序号移位 SQL 执行失败: {e}",
                collection=self.collection,
                filter=str(record_filter),
            ) from e
        return result.rowcount


__all__ = ["SQLAlchemyStore"]
