"""排序缓冲区

保存拖拽过程中的本地 id 顺序。缓冲区只会被重新排列，不会增删条目，
因此在任何时刻它都是当前页 id 的一个排列。
"""

from typing import Hashable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from .types import Page

T = TypeVar("T")


def array_move(seq: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """把 from_index 处的元素移动到 to_index，返回新列表

    先取出再插入，中间元素依次平移:

    >>> array_move(["A", "B", "C", "D", "E", "F"], 4, 1)
    ['A', 'E', 'B', 'C', 'D', 'F']

    Raises:
        IndexError: 索引越界
    """
    size = len(seq)
    if not 0 <= from_index < size:
        raise IndexError(f"from_index {from_index} out of range for length {size}")
    if not 0 <= to_index < size:
        raise IndexError(f"to_index {to_index} out of range for length {size}")

    result = list(seq)
    element = result.pop(from_index)
    result.insert(to_index, element)
    return result


class OrderBuffer:
    """排序缓冲区

    使用示例:
        buffer = OrderBuffer()
        buffer.seed(page)              # 从当前页初始化
        buffer.move("E", "B")          # E 移动到 B 所在位置
        buffer.current()               # ('A', 'E', 'B', 'C', 'D', 'F')
    """

    def __init__(self, ids: Optional[Sequence[Hashable]] = None):
        self._ids: List[Hashable] = list(ids or [])

    def seed(self, page: Optional[Page]) -> None:
        """用页中的 id 顺序替换缓冲区内容，page 为 None 时清空"""
        self._ids = page.ids if page is not None else []

    def clear(self) -> None:
        self._ids = []

    def current(self) -> Tuple[Hashable, ...]:
        """当前 id 顺序的快照"""
        return tuple(self._ids)

    def index_of(self, item_id: Hashable) -> int:
        """id 在缓冲区中的位置，不存在时返回 -1"""
        try:
            return self._ids.index(item_id)
        except ValueError:
            return -1

    def move(self, active_id: Hashable, over_id: Hashable) -> bool:
        """把 active_id 移动到 over_id 当前所在的位置

        两个 id 相同或任一 id 不在缓冲区中时不做任何事。

        Returns:
            是否发生了移动
        """
        if active_id == over_id:
            return False
        old_index = self.index_of(active_id)
        new_index = self.index_of(over_id)
        if old_index < 0 or new_index < 0:
            return False
        self._ids = array_move(self._ids, old_index, new_index)
        return True

    def move_to(self, item_id: Hashable, index: int) -> bool:
        """把 item_id 移动到指定位置，index 会被限制在有效范围内

        Returns:
            是否发生了移动
        """
        old_index = self.index_of(item_id)
        if old_index < 0 or not self._ids:
            return False
        new_index = min(max(index, 0), len(self._ids) - 1)
        if new_index == old_index:
            return False
        self._ids = array_move(self._ids, old_index, new_index)
        return True

    def matches(self, page: Optional[Page]) -> bool:
        """缓冲区顺序是否与页中顺序完全一致"""
        if page is None:
            return not self._ids
        return self._ids == page.ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(tuple(self._ids))

    def __contains__(self, item_id: Hashable) -> bool:
        return item_id in self._ids

    def __getitem__(self, index: int) -> Hashable:
        return self._ids[index]

    def __repr__(self) -> str:
        return f"OrderBuffer({self._ids!r})"


__all__ = [
    "array_move",
    "OrderBuffer",
]
