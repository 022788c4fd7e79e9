"""序号字段定义

提供标准的序号字段定义 Mixin，简化模型定义。

使用示例:
    from ysequence.orm import SequenceFieldMixin, SequenceMixin

    class Task(SequenceFieldMixin, SequenceMixin, Base):
        __tablename__ = "task"
        __sequence_group_by__ = "list_id"

        id: Mapped[int] = mapped_column(primary_key=True)
        list_id: Mapped[int]
        # order 字段由 SequenceFieldMixin 自动提供
"""

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class SequenceFieldMixin:
    """序号字段 Mixin

    提供标准的 order 字段定义。

    字段说明:
        - order: 分组内的连续序号，由 SequenceMixin 自动维护，无需手动赋值
    """

    # 不设默认值：未赋值表示追加到分组末尾
    order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="序号",
    )


__all__ = [
    "SequenceFieldMixin",
]
