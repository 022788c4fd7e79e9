"""序号维护 Mixin 使用示例

演示 SequenceMixin 的各种使用场景：
1. 简单列表（无分组）的追加、插入、移动、删除
2. 单字段分组与跨组移动
3. 多字段分组 + 自定义序号字段 + 起始序号
"""

from typing import Optional

from sqlalchemy import Integer, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from ysequence import SequenceFieldMixin, SequenceMixin, setup_root_logger
from ysequence.config import LoggingSettings


class Base(DeclarativeBase):
    pass


# ==================== 示例 1: 简单列表 ====================

class Banner(SequenceFieldMixin, SequenceMixin, Base):
    """轮播图模型 - 无分组，所有记录共用一个序号序列"""
    __tablename__ = "demo_banner"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(100), comment="标题")


# ==================== 示例 2: 单字段分组 ====================

class Task(SequenceFieldMixin, SequenceMixin, Base):
    """任务模型 - 同一清单内的任务共用一个序号序列"""
    __tablename__ = "demo_task"
    __sequence_group_by__ = "list_id"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    list_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="清单ID")
    title: Mapped[str] = mapped_column(String(100), comment="标题")


# ==================== 示例 3: 多字段分组 ====================

class Card(SequenceMixin, Base):
    """看板卡片 - 按 (board_id, column_id) 分组，序号字段为 position，从 1 开始"""
    __tablename__ = "demo_card"
    __sequence_field__ = "position"
    __sequence_group_by__ = ["board_id", "column_id"]
    __sequence_start_at__ = 1

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    board_id: Mapped[int] = mapped_column(Integer, comment="看板ID")
    column_id: Mapped[int] = mapped_column(Integer, comment="列ID")
    position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="位置")
    title: Mapped[str] = mapped_column(String(100), comment="标题")


# ==================== 演示函数 ====================

def print_items(items, field="order", indent="  "):
    for item in items:
        print(f"{indent}{getattr(item, field)}. {item.title}")


def add_all(session: Session, items):
    """一次提交多条追加，同一分组内的序号依次顺延"""
    session.add_all(items)
    session.commit()


def demo_simple_sequence(session: Session):
    """演示简单列表"""
    print("\n" + "=" * 60)
    print("Demo 1: Simple List (Banner)")
    print("=" * 60)

    add_all(session, [Banner(title=f"Banner {i}") for i in range(1, 5)])
    print("\n[Appended]")
    print_items(Banner.get_sequence(session))

    print("\n[Insert 'Banner X' at 1]")
    session.add(Banner(title="Banner X", order=1))
    session.commit()
    print_items(Banner.get_sequence(session))

    banner4 = session.scalars(Banner.sequence_select().where(Banner.title == "Banner 4")).one()
    print(f"\n[Move '{banner4.title}' to top]")
    banner4.order = 0
    session.commit()
    print_items(Banner.get_sequence(session))

    print("\n[Delete 'Banner X']")
    session.delete(session.scalars(Banner.sequence_select().where(Banner.title == "Banner X")).one())
    session.commit()
    print_items(Banner.get_sequence(session))


def demo_grouped_sequence(session: Session):
    """演示分组与跨组移动"""
    print("\n" + "=" * 60)
    print("Demo 2: Grouped Sequence (Task by list)")
    print("=" * 60)

    add_all(session, [Task(list_id=1, title=f"Task A{i}") for i in range(1, 4)])
    add_all(session, [Task(list_id=2, title=f"Task B{i}") for i in range(1, 3)])

    task = session.scalars(Task.sequence_select({"list_id": 1}).where(Task.title == "Task A2")).one()
    print(f"\n[Move '{task.title}' to list 2 at 0]")
    task.list_id = 2
    task.order = 0
    session.commit()

    for list_id in (1, 2):
        print(f"  List {list_id}:")
        print_items(Task.get_sequence(session, {"list_id": list_id}), indent="    ")
        print(f"    highest = {Task.highest_sequence_order(session, {'list_id': list_id})}")


def demo_multi_group_sequence(session: Session):
    """演示多字段分组"""
    print("\n" + "=" * 60)
    print("Demo 3: Multi-field Groups (Card by board + column)")
    print("=" * 60)

    add_all(session, [Card(board_id=1, column_id=1, title=f"Card {i}") for i in range(1, 4)])
    add_all(session, [Card(board_id=1, column_id=2, title="Card Z")])

    # 超出范围的序号被收拢到末尾
    card = session.scalars(Card.sequence_select({"board_id": 1, "column_id": 1})).first()
    print(f"\n[Move '{card.title}' to position 99 in the same column]")
    card.position = 99
    session.commit()

    for column_id in (1, 2):
        print(f"  Column {column_id}:")
        print_items(
            Card.get_sequence(session, {"board_id": 1, "column_id": column_id}),
            field="position",
            indent="    ",
        )


def main():
    """主函数"""
    print("=" * 60)
    print("SequenceMixin Demo")
    print("=" * 60)

    setup_root_logger(config=LoggingSettings(level="WARNING"))

    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        demo_simple_sequence(session)
        demo_grouped_sequence(session)
        demo_multi_group_sequence(session)

    print("\n" + "=" * 60)
    print("All demos completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
