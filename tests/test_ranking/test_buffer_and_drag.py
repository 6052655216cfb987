"""排序缓冲区与拖拽协调器测试"""

import pytest

from yrank.ranking import DragCoordinator, OrderBuffer, array_move
from yrank.ranking.types import Item, Page


class TestArrayMove:
    """array_move 测试"""

    def test_move_forward(self):
        """测试向前移动"""
        assert array_move(list("ABCDEF"), 4, 1) == list("AEBCDF")

    def test_move_backward(self):
        """测试向后移动"""
        assert array_move(list("ABCDEF"), 0, 5) == list("BCDEFA")

    def test_same_index_returns_copy(self):
        """测试原地移动返回新列表"""
        source = list("ABC")
        result = array_move(source, 1, 1)
        assert result == source
        assert result is not source

    def test_source_untouched(self):
        """测试不修改原序列"""
        source = ("A", "B", "C")
        array_move(source, 0, 2)
        assert source == ("A", "B", "C")

    def test_out_of_range(self):
        """测试索引越界"""
        with pytest.raises(IndexError):
            array_move(["A"], 0, 1)
        with pytest.raises(IndexError):
            array_move([], 0, 0)


class TestOrderBuffer:
    """OrderBuffer 测试"""

    def test_seed_from_page(self, make_page):
        """测试从页初始化"""
        buffer = OrderBuffer()
        buffer.seed(make_page("ABC"))
        assert buffer.current() == ("A", "B", "C")
        assert len(buffer) == 3

    def test_seed_none_clears(self):
        """测试 seed(None) 清空缓冲区"""
        buffer = OrderBuffer(["A"])
        buffer.seed(None)
        assert buffer.current() == ()

    def test_move_to_position_of_target(self):
        """测试移动到目标所在位置"""
        buffer = OrderBuffer(list("ABCDEF"))
        assert buffer.move("E", "B") is True
        assert buffer.current() == tuple("AEBCDF")

    def test_move_composes(self):
        """测试连续移动基于当前顺序"""
        buffer = OrderBuffer(list("ABCD"))
        buffer.move("D", "A")
        assert buffer.current() == ("D", "A", "B", "C")
        buffer.move("A", "D")
        assert buffer.current() == ("A", "D", "B", "C")

    def test_noop_moves(self):
        """测试无效移动不改变顺序"""
        buffer = OrderBuffer(list("ABC"))
        assert buffer.move("A", "A") is False
        assert buffer.move("X", "A") is False
        assert buffer.move("A", "X") is False
        assert buffer.current() == ("A", "B", "C")

    def test_move_to_clamps_index(self):
        """测试 move_to 限制在有效范围内"""
        buffer = OrderBuffer(list("ABC"))
        assert buffer.move_to("A", 99) is True
        assert buffer.current() == ("B", "C", "A")
        assert buffer.move_to("A", -5) is True
        assert buffer.current() == ("A", "B", "C")
        assert buffer.move_to("A", 0) is False

    def test_matches_page(self, make_page):
        """测试与页顺序比较"""
        page = make_page("ABC")
        buffer = OrderBuffer()
        buffer.seed(page)
        assert buffer.matches(page)
        buffer.move("C", "A")
        assert not buffer.matches(page)
        buffer.move("C", "B")
        assert buffer.current() == ("A", "B", "C")
        assert buffer.matches(page)

    def test_current_is_snapshot(self):
        """测试 current() 返回不可变快照"""
        buffer = OrderBuffer(list("AB"))
        snapshot = buffer.current()
        buffer.move("B", "A")
        assert snapshot == ("A", "B")
        assert isinstance(snapshot, tuple)

    def test_membership_and_index(self):
        """测试成员判断和位置查询"""
        buffer = OrderBuffer(list("ABC"))
        assert "B" in buffer
        assert "Z" not in buffer
        assert buffer.index_of("C") == 2
        assert buffer.index_of("Z") == -1
        assert list(buffer) == ["A", "B", "C"]
        assert buffer[1] == "B"


class TestDragCoordinator:
    """DragCoordinator 测试"""

    def make(self, ids="ABCDEF", armed=True):
        state = {"armed": armed}
        buffer = OrderBuffer(list(ids))
        coordinator = DragCoordinator(buffer, is_armed=lambda: state["armed"])
        return coordinator, buffer, state

    def test_drag_end_moves(self):
        """测试拖拽结束移动记录"""
        coordinator, buffer, _ = self.make()
        assert coordinator.on_drag_end("E", "B") is True
        assert buffer.current() == tuple("AEBCDF")

    def test_drag_ignored_when_not_armed(self):
        """测试未就绪时忽略拖拽"""
        coordinator, buffer, _ = self.make(armed=False)
        assert coordinator.on_drag_end("E", "B") is False
        assert buffer.current() == tuple("ABCDEF")

    def test_drag_onto_self_or_outside(self):
        """测试拖到自身或列表外"""
        coordinator, buffer, _ = self.make()
        assert coordinator.on_drag_end("C", "C") is False
        assert coordinator.on_drag_end("C", None) is False
        assert buffer.current() == tuple("ABCDEF")

    def test_armed_is_evaluated_per_gesture(self):
        """测试每次操作时重新判断是否就绪"""
        coordinator, buffer, state = self.make()
        coordinator.on_drag_end("B", "A")
        state["armed"] = False
        coordinator.on_drag_end("F", "A")
        assert buffer.current() == tuple("BACDEF")

    def test_keyboard_moves(self):
        """测试键盘移动"""
        coordinator, buffer, _ = self.make("ABCD")
        assert coordinator.move_down("A") is True
        assert buffer.current() == tuple("BACD")
        assert coordinator.move_up("A") is True
        assert coordinator.move_to_bottom("A") is True
        assert buffer.current() == tuple("BCDA")
        assert coordinator.move_to_top("D") is True
        assert buffer.current() == tuple("DBCA")

    def test_keyboard_moves_bounded_by_page(self):
        """测试键盘移动不越过页边界"""
        coordinator, buffer, _ = self.make("ABC")
        assert coordinator.move_up("A") is False
        assert coordinator.move_down("C") is False
        assert coordinator.move_to_top("A") is False
        assert coordinator.move_to_bottom("C") is False
        assert coordinator.move_up("Z") is False
        assert buffer.current() == tuple("ABC")

    def test_keyboard_moves_not_armed(self):
        """测试未就绪时忽略键盘移动"""
        coordinator, buffer, _ = self.make("ABC", armed=False)
        assert coordinator.move_down("A") is False
        assert coordinator.move_to_bottom("A") is False
        assert buffer.current() == tuple("ABC")


class TestPage:
    """Page 测试"""

    def test_rejects_oversized_page(self):
        """测试记录数超过页大小"""
        items = [Item(id=i, rank=i) for i in range(3)]
        with pytest.raises(ValueError):
            Page(items, page_size=2)

    def test_rejects_invalid_numbers(self):
        """测试非法页码和页大小"""
        with pytest.raises(ValueError):
            Page([], page_number=0)
        with pytest.raises(ValueError):
            Page([], page_size=0)

    def test_identity_comparison(self, make_page):
        """测试页按对象身份比较"""
        assert make_page("AB") != make_page("AB")

    def test_item_payload_not_compared(self):
        """测试 payload 不参与比较"""
        assert Item(id=1, rank=2, payload={"a": 1}) == Item(id=1, rank=2, payload={"b": 2})
