"""排名策略

把页内从 0 开始的索引换算为持久化的排名值:

    rank = page_base_offset + index + (1 if one_based else 0)
    page_base_offset = (page_number - 1) * page_size

不同实体类型的排名字段名和起点不同，因此策略作为参数传给 Diff Engine，
不在计算逻辑中写死。
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RankingPolicy:
    """排名策略值对象

    Attributes:
        field_name: 持久化排名字段名
        one_based: True 表示第一条记录的排名为 base+1，False 为 base+0
    """
    field_name: str = "display_order"
    one_based: bool = False

    @staticmethod
    def page_base_offset(page_number: int, page_size: int) -> int:
        """当前页之前所有记录的数量"""
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        return (page_number - 1) * page_size

    def rank_for(self, index: int, page_base_offset: int = 0) -> int:
        """页内索引换算为排名值"""
        if index < 0:
            raise ValueError(f"index must be >= 0, got {index}")
        return page_base_offset + index + (1 if self.one_based else 0)

    def index_for(self, rank: int, page_base_offset: int = 0) -> Optional[int]:
        """排名值反算页内索引，排名不在本页范围时返回 None"""
        index = rank - page_base_offset - (1 if self.one_based else 0)
        return index if index >= 0 else None


# 区域：attraction_rank，从 1 开始
ATTRACTION_RANK = RankingPolicy(field_name="attraction_rank", one_based=True)

# 图集、活动、视频：display_order，从 0 开始
DISPLAY_ORDER = RankingPolicy(field_name="display_order", one_based=False)


__all__ = [
    "RankingPolicy",
    "ATTRACTION_RANK",
    "DISPLAY_ORDER",
]
