"""序号维护器测试

通过生命周期钩子在 MemoryStore 上执行完整操作，验证序号始终连续
"""

import logging

import pytest

from ysequence.exceptions import SequenceError, StoreUpdateFailedError
from ysequence.sequence import (
    CommitResult,
    MemoryStore,
    OperationKind,
    SequenceConfig,
    Sequencer,
)
from tests.helpers import (
    insert,
    update,
    delete,
    titles_in_order,
    orders_in_group,
    is_contiguous,
)


class TestUngroupedSequence:
    """不分组序号测试（A..E 的经典场景）"""

    @pytest.fixture(autouse=True)
    def setup_records(self, memory_store, make_sequencer):
        self.store = memory_store
        self.sequencer = make_sequencer()
        self.ids = {title: insert(self.sequencer, title=title) for title in "ABCDE"}

    def test_insert_append(self):
        """测试依次插入得到 0..N-1"""
        assert titles_in_order(self.store) == list("ABCDE")
        assert orders_in_group(self.store) == [0, 1, 2, 3, 4]

    def test_insert_at_position(self):
        """测试在第 2 位插入 F"""
        insert(self.sequencer, title="F", order=2)

        assert titles_in_order(self.store) == ["A", "B", "F", "C", "D", "E"]
        assert is_contiguous(orders_in_group(self.store))

    def test_move_up(self):
        """测试 E 上移到第 2 位"""
        update(self.sequencer, self.ids["E"], order=2)

        assert titles_in_order(self.store) == ["A", "B", "E", "C", "D"]
        assert is_contiguous(orders_in_group(self.store))

    def test_move_down(self):
        """测试 A 下移到第 3 位"""
        update(self.sequencer, self.ids["A"], order=3)

        assert titles_in_order(self.store) == ["B", "C", "D", "A", "E"]
        assert is_contiguous(orders_in_group(self.store))

    def test_delete(self):
        """测试删除 C"""
        delete(self.sequencer, self.ids["C"])

        assert titles_in_order(self.store) == ["A", "B", "D", "E"]
        assert orders_in_group(self.store) == [0, 1, 2, 3]

    def test_noop_update_is_idempotent(self):
        """测试无变化的更新不影响任何记录"""
        before = self.store.records()

        plan = update(self.sequencer, self.ids["C"], order=2, title="C2")

        assert plan.is_noop
        after = self.store.records()
        assert [r["order"] for _, r in after] == [r["order"] for _, r in before]

    def test_move_to_first_and_last(self):
        """测试移到首位和末位"""
        update(self.sequencer, self.ids["C"], order=0)
        update(self.sequencer, self.ids["A"], order=4)

        assert titles_in_order(self.store) == ["C", "B", "D", "E", "A"]
        assert is_contiguous(orders_in_group(self.store))

    def test_random_operations_keep_contiguity(self):
        """测试一系列混合操作后序号仍然连续"""
        insert(self.sequencer, title="F", order=0)
        update(self.sequencer, self.ids["B"], order=5)
        delete(self.sequencer, self.ids["D"])
        insert(self.sequencer, title="G")
        update(self.sequencer, self.ids["E"], order=1)
        delete(self.sequencer, self.ids["A"])

        assert titles_in_order(self.store) == ["F", "E", "C", "B", "G"]
        assert is_contiguous(orders_in_group(self.store))

    def test_highest_order(self):
        """测试最大序号查询"""
        assert self.sequencer.highest_order() == 4

    def test_before_write_writes_assigned_order_into_payload(self):
        """测试 before_write 把序号写回 payload"""
        payload = {"title": "F"}

        plan = self.sequencer.before_write(payload)

        assert payload["order"] == 5
        assert plan.assigned_order == 5


class TestStartAt:
    """起始序号测试"""

    def test_start_at_one(self, make_sequencer, memory_store):
        """测试从 1 开始编号"""
        sequencer = make_sequencer(start_at=1)

        for title in "ABC":
            insert(sequencer, title=title)

        assert orders_in_group(memory_store) == [1, 2, 3]
        assert sequencer.highest_order() == 3

    def test_empty_group_highest(self, make_sequencer):
        """测试空分组的最大序号为 start_at - 1"""
        assert make_sequencer(start_at=1).highest_order() == 0
        assert make_sequencer().highest_order() == -1

    def test_custom_order_field(self, make_sequencer, memory_store):
        """测试自定义排序字段"""
        sequencer = make_sequencer(order_field="position")

        insert(sequencer, title="A")
        insert(sequencer, title="B", position=0)

        assert titles_in_order(memory_store, order_field="position") == ["B", "A"]


class TestGroupedSequence:
    """分组序号测试"""

    @pytest.fixture(autouse=True)
    def setup_records(self, memory_store, make_sequencer):
        self.store = memory_store
        self.sequencer = make_sequencer(group_fields="list_id")
        self.ids = {}
        for title in "ABC":
            self.ids[title] = insert(self.sequencer, title=title, list_id=1)
        for title in "XYZ":
            self.ids[title] = insert(self.sequencer, title=title, list_id=2)

    def test_groups_numbered_independently(self):
        """测试每个分组独立编号"""
        assert orders_in_group(self.store, {"list_id": 1}) == [0, 1, 2]
        assert orders_in_group(self.store, {"list_id": 2}) == [0, 1, 2]

    def test_insert_only_shifts_own_group(self):
        """测试插入只移位本组"""
        insert(self.sequencer, title="W", list_id=2, order=0)

        assert titles_in_order(self.store, {"list_id": 1}) == ["A", "B", "C"]
        assert titles_in_order(self.store, {"list_id": 2}) == ["W", "X", "Y", "Z"]

    def test_cross_group_move_without_order_appends(self):
        """测试跨组移动未指定序号时追加到新组末尾"""
        update(self.sequencer, self.ids["A"], list_id=2)

        assert titles_in_order(self.store, {"list_id": 1}) == ["B", "C"]
        assert orders_in_group(self.store, {"list_id": 1}) == [0, 1]
        assert titles_in_order(self.store, {"list_id": 2}) == ["X", "Y", "Z", "A"]
        assert orders_in_group(self.store, {"list_id": 2}) == [0, 1, 2, 3]

    def test_cross_group_move_with_order(self):
        """测试跨组移动并指定序号：旧组收拢、新组腾位"""
        update(self.sequencer, self.ids["B"], list_id=2, order=1)

        assert titles_in_order(self.store, {"list_id": 1}) == ["A", "C"]
        assert orders_in_group(self.store, {"list_id": 1}) == [0, 1]
        assert titles_in_order(self.store, {"list_id": 2}) == ["X", "B", "Y", "Z"]
        assert orders_in_group(self.store, {"list_id": 2}) == [0, 1, 2, 3]

    def test_cross_group_move_into_empty_group(self):
        """测试移动到空分组"""
        update(self.sequencer, self.ids["C"], list_id=3, order=5)

        assert orders_in_group(self.store, {"list_id": 3}) == [0]
        assert orders_in_group(self.store, {"list_id": 1}) == [0, 1]

    def test_delete_only_shifts_own_group(self):
        """测试删除只收拢本组"""
        delete(self.sequencer, self.ids["X"])

        assert orders_in_group(self.store, {"list_id": 1}) == [0, 1, 2]
        assert titles_in_order(self.store, {"list_id": 2}) == ["Y", "Z"]
        assert orders_in_group(self.store, {"list_id": 2}) == [0, 1]

    def test_null_group(self):
        """测试 NULL 分组与其他分组互不影响"""
        n1 = insert(self.sequencer, title="N1", list_id=None)
        insert(self.sequencer, title="N2")

        assert titles_in_order(self.store, {"list_id": None}) == ["N1", "N2"]
        assert orders_in_group(self.store, {"list_id": None}) == [0, 1]

        update(self.sequencer, n1, list_id=1, order=0)

        assert titles_in_order(self.store, {"list_id": None}) == ["N2"]
        assert orders_in_group(self.store, {"list_id": None}) == [0]
        assert titles_in_order(self.store, {"list_id": 1}) == ["N1", "A", "B", "C"]


class TestMultiGroupSequence:
    """多字段分组测试"""

    @pytest.fixture(autouse=True)
    def setup_records(self, memory_store, make_sequencer):
        self.store = memory_store
        self.sequencer = make_sequencer(group_fields=("board_id", "column_id"))
        self.ids = {}
        for board_id, column_id, titles in [(1, 1, "AB"), (1, 2, "CD"), (2, 1, "EF")]:
            for title in titles:
                self.ids[title] = insert(
                    self.sequencer, title=title, board_id=board_id, column_id=column_id
                )

    def test_partial_group_change(self):
        """测试只修改一个分组字段"""
        update(self.sequencer, self.ids["A"], column_id=2)

        assert titles_in_order(self.store, {"board_id": 1, "column_id": 1}) == ["B"]
        assert orders_in_group(self.store, {"board_id": 1, "column_id": 1}) == [0]
        assert titles_in_order(self.store, {"board_id": 1, "column_id": 2}) == ["C", "D", "A"]
        # 另一个看板的同名列不受影响
        assert orders_in_group(self.store, {"board_id": 2, "column_id": 1}) == [0, 1]

    def test_same_value_group_fields_is_noop(self):
        """测试给出相同的分组值不算移动"""
        plan = update(self.sequencer, self.ids["C"], board_id=1, column_id=2)

        assert plan.is_noop


class TestCommit:
    """两阶段 API 测试"""

    def test_plan_then_commit(self, memory_store, make_sequencer):
        """测试先生成计划，写入后再提交"""
        sequencer = make_sequencer()
        a = memory_store.insert({"title": "A", "order": 0})

        plan = sequencer.plan(OperationKind.INSERT, {"title": "B", "order": 0})
        b = memory_store.insert({"title": "B", "order": plan.assigned_order})
        result = sequencer.commit(plan, b)

        assert isinstance(result, CommitResult)
        assert result.success
        assert result.applied == 1
        assert result.affected_rows == 1
        assert memory_store.get(a)["order"] == 1

    def test_commit_without_record_id_rejected(self, memory_store, make_sequencer):
        """测试有移位的插入计划必须提供主键"""
        sequencer = make_sequencer()
        memory_store.insert({"title": "A", "order": 0})
        plan = sequencer.plan_insert({"order": 0})

        with pytest.raises(SequenceError):
            sequencer.commit(plan)

    def test_commit_noop(self, make_sequencer):
        """测试空计划"""
        sequencer = make_sequencer()

        result = sequencer.commit(sequencer.plan_insert({}))

        assert result.success
        assert result.applied == 0


class FailingStore(MemoryStore):
    """第 N 次移位失败的内存存储"""

    def __init__(self, fail_on_calls=(1,)):
        super().__init__("flaky")
        self.fail_on_calls = set(fail_on_calls)
        self.calls = 0

    def bulk_update(self, record_filter, field_name, delta):
        self.calls += 1
        if self.calls in self.fail_on_calls:
            raise StoreUpdateFailedError("模拟数据库错误")
        return super().bulk_update(record_filter, field_name, delta)


class TestShiftFailures:
    """移位失败汇总测试"""

    @pytest.fixture(autouse=True)
    def setup_records(self):
        self.store = FailingStore(fail_on_calls=())
        self.sequencer = Sequencer(SequenceConfig(group_fields="list_id"), self.store)
        self.ids = {}
        for list_id, titles in [(1, "AB"), (2, "XY")]:
            for title in titles:
                self.ids[title] = insert(self.sequencer, title=title, list_id=list_id)

    def test_all_instructions_attempted(self):
        """测试第一条指令失败后仍然执行第二条"""
        self.store.calls = 0
        self.store.fail_on_calls = {1}
        plan = self.sequencer.plan_update({"list_id": 2, "order": 0}, self.ids["A"])
        self.store.update(self.ids["A"], {"list_id": 2, "order": plan.assigned_order})

        result = self.sequencer.commit(plan, self.ids["A"])

        assert result.success is False
        assert result.applied == 1
        assert len(result.errors) == 1
        assert result.errors[0][0] is plan.shifts[0]
        # 第二条（新组腾位）已经执行
        assert self.store.get(self.ids["X"])["order"] == 1

    def test_after_write_raises_aggregated_error(self):
        """测试 after_write 汇总失败并抛出"""
        self.store.calls = 0
        self.store.fail_on_calls = {1, 2}
        payload = {"list_id": 2, "order": 0}
        plan = self.sequencer.before_write(payload, self.ids["A"])
        self.store.update(self.ids["A"], payload)

        with pytest.raises(StoreUpdateFailedError) as exc_info:
            self.sequencer.after_write(plan, self.ids["A"])

        error = exc_info.value
        assert error.result.applied == 0
        assert len(error.details) == 2
        assert error.instruction is plan.shifts[0]

    def test_after_delete_raises(self):
        """测试删除后移位失败"""
        self.store.calls = 0
        self.store.fail_on_calls = {1}
        plan = self.sequencer.before_delete(self.ids["A"])
        self.store.delete(self.ids["A"])

        with pytest.raises(StoreUpdateFailedError):
            self.sequencer.after_delete(plan)

    def test_failure_logged(self, caplog):
        """测试失败记录 ERROR 日志"""
        self.store.calls = 0
        self.store.fail_on_calls = {1}
        plan = self.sequencer.plan_delete(self.ids["A"])

        with caplog.at_level(logging.ERROR, logger="ysequence.sequence.sequencer"):
            self.sequencer.commit(plan)

        assert "序号移位失败" in caplog.text


class TestPlanLogging:
    """计划日志测试"""

    def test_plan_logged_at_debug(self, make_sequencer, caplog):
        """测试计划在 DEBUG 级别输出"""
        sequencer = make_sequencer()

        with caplog.at_level(logging.DEBUG, logger="ysequence.sequence.sequencer"):
            sequencer.plan_insert({"order": 0})

        assert "序号计划" in caplog.text
        assert "order >= 0" in caplog.text

    def test_noop_logged(self, make_sequencer, caplog):
        """测试无变化的更新也有日志"""
        sequencer = make_sequencer()

        with caplog.at_level(logging.DEBUG, logger="ysequence.sequence.sequencer"):
            sequencer.plan_update({"title": "x"}, 1)

        assert "序号无变化" in caplog.text
