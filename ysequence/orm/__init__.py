"""ORM 集成模块

在 SQLAlchemy flush 过程中自动维护序号字段。

导出:
    - SequenceFieldMixin: 序号字段 Mixin（提供 order 字段）
    - SequenceMixin: 序号维护 Mixin（注册 flush 事件）
    - SQLAlchemyStore: 基于 Connection/Session 的序号存储

使用示例:
    from ysequence.orm import SequenceFieldMixin, SequenceMixin

    class Task(SequenceFieldMixin, SequenceMixin, Base):
        __tablename__ = "task"
        __sequence_group_by__ = ["board_id", "column_id"]

        id: Mapped[int] = mapped_column(primary_key=True)
        board_id: Mapped[int]
        column_id: Mapped[Optional[int]]

    tasks = Task.get_sequence(session, {"board_id": 1, "column_id": None})
"""

from .sequence_fields import SequenceFieldMixin
from .sequence_mixin import SequenceMixin
from .store import SQLAlchemyStore

__all__ = [
    "SequenceFieldMixin",
    "SequenceMixin",
    "SQLAlchemyStore",
]
