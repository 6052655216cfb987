"""拖拽协调器

把拖拽结束事件和键盘移动操作转换为对排序缓冲区的一次 array-move。
是否允许操作由调用方提供的 is_armed 决定（筛选守卫通过、排序开关打开、且不在保存中）。
"""

from typing import Callable, Hashable

from yrank.log import get_logger
from .buffer import OrderBuffer

logger = get_logger()


class DragCoordinator:
    """拖拽协调器

    每次操作都基于缓冲区的当前状态，连续的拖拽会依次叠加。

    Args:
        buffer: 排序缓冲区
        is_armed: 无参可调用对象，返回当前是否允许拖拽

    使用示例:
        coordinator = DragCoordinator(buffer, is_armed=lambda: True)
        coordinator.on_drag_end("E", "B")
        coordinator.move_to_top("D")
    """

    def __init__(self, buffer: OrderBuffer, is_armed: Callable[[], bool]):
        self.buffer = buffer
        self._is_armed = is_armed

    @property
    def armed(self) -> bool:
        return bool(self._is_armed())

    def on_drag_end(self, active_id: Hashable, over_id: Hashable) -> bool:
        """拖拽结束

        Args:
            active_id: 被拖动的记录 id
            over_id: 放下位置处的记录 id，拖到列表外时为 None

        Returns:
            缓冲区是否发生变化
        """
        if over_id is None or active_id == over_id:
            return False
        if not self.armed:
            logger.debug(f"Drag ignored, ranking not armed: {active_id} -> {over_id}")
            return False
        return self.buffer.move(active_id, over_id)

    def move_up(self, item_id: Hashable) -> bool:
        """上移一位，已在顶部时返回 False"""
        return self._move_by(item_id, -1)

    def move_down(self, item_id: Hashable) -> bool:
        """下移一位，已在底部时返回 False"""
        return self._move_by(item_id, 1)

    def move_to_top(self, item_id: Hashable) -> bool:
        """移动到本页第一位"""
        if not self.armed:
            return False
        return self.buffer.move_to(item_id, 0)

    def move_to_bottom(self, item_id: Hashable) -> bool:
        """移动到本页最后一位"""
        if not self.armed:
            return False
        return self.buffer.move_to(item_id, len(self.buffer) - 1)

    def _move_by(self, item_id: Hashable, offset: int) -> bool:
        if not self.armed:
            return False
        index = self.buffer.index_of(item_id)
        if index < 0:
            return False
        target = index + offset
        if not 0 <= target < len(self.buffer):
            return False
        return self.buffer.move_to(item_id, target)


__all__ = ["DragCoordinator"]
