"""SQLAlchemy 序号存储测试"""

from typing import Optional

import pytest
from sqlalchemy import Integer, String, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ysequence.exceptions import (
    RecordNotFoundError,
    SequenceConfigurationError,
    StoreUpdateFailedError,
)
from ysequence.orm import SQLAlchemyStore
from ysequence.sequence import RangeCondition, RecordFilter, SequenceConfig, Sequencer


class StoreBase(DeclarativeBase):
    pass


class GhostBase(DeclarativeBase):
    pass


class StoreItem(StoreBase):
    """普通模型，不挂载 SequenceMixin，直接测试存储"""
    __tablename__ = "test_store_item"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(50))


class GhostItem(GhostBase):
    """表不会被创建的模型"""
    __tablename__ = "test_store_ghost"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order: Mapped[int] = mapped_column(Integer)


class TestSQLAlchemyStore:
    """SQLAlchemyStore 测试"""

    @pytest.fixture(autouse=True)
    def setup_db(self, memory_engine, db_session):
        StoreBase.metadata.create_all(bind=memory_engine)
        self.session = db_session
        rows = [
            StoreItem(id=1, group_id=1, order=0, title="A"),
            StoreItem(id=2, group_id=1, order=1, title="B"),
            StoreItem(id=3, group_id=1, order=2, title="C"),
            StoreItem(id=4, group_id=None, order=0, title="N"),
            StoreItem(id=5, group_id=1, order=None, title="legacy"),
        ]
        self.session.add_all(rows)
        self.session.commit()
        self.store = SQLAlchemyStore(StoreItem, self.session)

    def _orders(self, group_id):
        column = StoreItem.group_id
        where = column.is_(None) if group_id is None else column == group_id
        return self.session.execute(
            select(StoreItem.title, StoreItem.order).where(where).order_by(StoreItem.id)
        ).all()

    def test_collection_is_table_name(self):
        """测试集合名为表名"""
        assert self.store.collection == "test_store_item"

    def test_read_field(self):
        """测试读取字段"""
        assert self.store.read_field(2, "order") == 1
        assert self.store.read_field(4, "group_id") is None

    def test_read_field_missing_record(self):
        """测试读取不存在的记录"""
        with pytest.raises(RecordNotFoundError) as exc_info:
            self.store.read_field(99, "order")

        assert exc_info.value.collection == "test_store_item"

    def test_unknown_column(self):
        """测试不存在的列"""
        with pytest.raises(SequenceConfigurationError) as exc_info:
            self.store.read_field(1, "position")

        assert exc_info.value.field == "position"

    def test_find_one_highest(self):
        """测试查找最大序号，NULL 序号不参与"""
        row = self.store.find_one(RecordFilter(groups={"group_id": 1}), "order")

        assert row == {"id": 3, "order": 2}

    def test_find_one_null_group(self):
        """测试 NULL 分组编译为 IS NULL"""
        row = self.store.find_one(RecordFilter(groups={"group_id": None}), "order")

        assert row["id"] == 4

    def test_find_one_empty(self):
        """测试没有匹配记录"""
        assert self.store.find_one(RecordFilter(groups={"group_id": 7}), "order") is None

    def test_bulk_update(self):
        """测试区间移位"""
        record_filter = RecordFilter(
            groups={"group_id": 1},
            exclude_id=1,
            range_condition=RangeCondition.of("order", (">=", 0), ("<", 2)),
        )

        affected = self.store.bulk_update(record_filter, "order", +1)
        self.session.expire_all()

        assert affected == 1
        assert [tuple(r) for r in self._orders(1)] == [
            ("A", 0), ("B", 2), ("C", 2), ("legacy", None),
        ]
        assert [tuple(r) for r in self._orders(None)] == [("N", 0)]

    def test_sequencer_over_session(self):
        """测试 Sequencer 直接使用 Session 存储"""
        sequencer = Sequencer(SequenceConfig(group_fields="group_id"), self.store)

        plan = sequencer.before_delete(1)
        self.session.delete(self.session.get(StoreItem, 1))
        self.session.flush()
        sequencer.after_delete(plan)
        self.session.expire_all()

        assert [tuple(r) for r in self._orders(1)] == [
            ("B", 0), ("C", 1), ("legacy", None),
        ]
        assert sequencer.highest_order({"group_id": 1}) == 1

    def test_bulk_update_failure_wrapped(self, db_session):
        """测试数据库错误转换为 StoreUpdateFailedError"""
        store = SQLAlchemyStore(GhostItem, db_session)
        record_filter = RecordFilter(range_condition=RangeCondition.of("order", (">", 0)))

        with pytest.raises(StoreUpdateFailedError) as exc_info:
            store.bulk_update(record_filter, "order", -1)

        assert exc_info.value.__cause__ is not None
        assert exc_info.value.extra["collection"] == "test_store_ghost"
