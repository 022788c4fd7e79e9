"""记录过滤条件

与存储无关的过滤条件表示，存储实现负责把它翻译为自己的查询：
- MemoryStore 直接对字典求值
- SQLAlchemyStore 编译为 WHERE 子句（比较运算符对 Column 同样适用）
"""

import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple


# 比较运算符，对 int 返回 bool，对 SQLAlchemy Column 返回表达式
OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    ">=": operator.ge,
    ">": operator.gt,
    "<": operator.lt,
    "<=": operator.le,
}


@dataclass(frozen=True)
class Comparison:
    """单个比较条件，如 order >= 3"""
    op: str
    value: int

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"不支持的比较运算符: {self.op!r}")

    def apply(self, lhs: Any) -> Any:
        return OPERATORS[self.op](lhs, self.value)

    def __str__(self) -> str:
        return f"{self.op} {self.value}"


@dataclass(frozen=True)
class RangeCondition:
    """序号字段上的区间条件（多个比较条件取 AND）

    使用示例:
        RangeCondition.of("order", (">=", 2))              # order >= 2
        RangeCondition.of("order", (">", 1), ("<=", 4))    # order > 1 AND order <= 4
    """
    field: str
    comparisons: Tuple[Comparison, ...]

    @classmethod
    def of(cls, field_name: str, *pairs: Tuple[str, int]) -> "RangeCondition":
        return cls(field_name, tuple(Comparison(op, value) for op, value in pairs))

    def matches(self, value: Any) -> bool:
        """判断序号值是否落在区间内，None 永不匹配（同 SQL 的 NULL 比较）"""
        if value is None:
            return False
        return all(c.apply(value) for c in self.comparisons)

    def clauses(self, column: Any) -> list:
        """生成针对给定列的条件列表"""
        return [c.apply(column) for c in self.comparisons]

    def __str__(self) -> str:
        return " AND ".join(f"{self.field} {c}" for c in self.comparisons)


@dataclass(frozen=True)
class RecordFilter:
    """记录过滤条件

    Attributes:
        groups: 分组字段 -> 值，值为 None 表示 IS NULL
        exclude_id: 需要排除的记录主键（正在写入/删除的记录）
        range_condition: 序号区间条件
    """
    groups: Mapping[str, Any] = field(default_factory=dict)
    exclude_id: Any = None
    range_condition: Optional[RangeCondition] = None

    def matches(self, record_id: Any, record: Mapping[str, Any]) -> bool:
        if self.exclude_id is not None and record_id == self.exclude_id:
            return False
        for name, value in self.groups.items():
            if record.get(name) != value:
                return False
        if self.range_condition is not None:
            return self.range_condition.matches(record.get(self.range_condition.field))
        return True

    def __str__(self) -> str:
        parts = [f"{k}={v!r}" for k, v in self.groups.items()]
        if self.exclude_id is not None:
            parts.append(f"id!={self.exclude_id!r}")
        if self.range_condition is not None:
            parts.append(str(self.range_condition))
        return " AND ".join(parts) or "<all>"


__all__ = [
    "OPERATORS",
    "Comparison",
    "RangeCondition",
    "RecordFilter",
]
