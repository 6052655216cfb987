"""筛选守卫

只有在列表未被收窄时才允许排序。搜索结果或分类子集中的位置与全局排名无关，
在其中拖拽会把错误的排名写回。
"""

from typing import Optional

from .types import FilterState


def can_rank(filter_state: Optional[FilterState]) -> bool:
    """当前筛选条件下是否允许排序

    搜索关键字去掉空白后为空，且所有分类筛选都为 "all"（或未设置）时返回 True。

    >>> can_rank(FilterState())
    True
    >>> can_rank(FilterState(search_text="  "))
    True
    >>> can_rank(FilterState(search_text="bali"))
    False
    >>> can_rank(FilterState(categories={"province": "Bali"}))
    False
    """
    if filter_state is None:
        return True
    if filter_state.search_text.strip():
        return False
    return not filter_state.active_categories()


__all__ = ["can_rank"]
