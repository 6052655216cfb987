"""排序组件的数据类型

- Item: 可排序的记录（id + 排名）
- FilterState: 当前列表的搜索和分类筛选条件
- Page: 一次获取到的一页记录，会话按对象身份跟踪
- FetchResult: Collection Fetcher 的返回值
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Tuple

# 表示"不筛选"的分类取值
UNFILTERED_VALUES = (None, "", "all")


@dataclass(frozen=True)
class Item:
    """可排序的记录

    Attributes:
        id: 稳定且不透明的记录 id
        rank: 当前持久化的排名值
        payload: 列表渲染用的附加数据，排序逻辑不读取，也不参与相等比较
    """
    id: Hashable
    rank: int
    payload: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class FilterState:
    """列表筛选条件

    Attributes:
        search_text: 搜索关键字
        categories: 分类筛选，如 {"province": "Bali"}，取值为 "all" 或 None 表示不筛选
    """
    search_text: str = ""
    categories: Dict[str, Optional[str]] = field(default_factory=dict)

    def active_categories(self) -> Dict[str, str]:
        """实际生效的分类筛选"""
        return {
            name: value
            for name, value in self.categories.items()
            if value not in UNFILTERED_VALUES
        }

    def with_search(self, search_text: str) -> "FilterState":
        return FilterState(search_text=search_text, categories=dict(self.categories))

    def with_category(self, name: str, value: Optional[str]) -> "FilterState":
        categories = dict(self.categories)
        categories[name] = value
        return FilterState(search_text=self.search_text, categories=categories)

    def to_query(self) -> Dict[str, str]:
        """转换为 HTTP 查询参数"""
        query = dict(self.active_categories())
        if self.search_text.strip():
            query["search"] = self.search_text.strip()
        return query

    def __hash__(self):
        return hash((self.search_text, tuple(sorted(self.categories.items(), key=str))))


class Page:
    """一页记录

    记录按排名升序排列。会话跟踪的是页对象本身（谁是"当前页"），
    所以 Page 按对象身份比较，不按内容比较。

    Args:
        items: 本页记录
        page_number: 页码，从 1 开始
        page_size: 每页数量
        total_pages: 总页数
        filter_state: 获取本页时使用的筛选条件

    Raises:
        ValueError: 页码或页大小小于 1，或记录数超过页大小
    """

    __slots__ = ("_items", "page_number", "page_size", "total_pages", "filter_state")

    def __init__(
        self,
        items: List[Item],
        page_number: int = 1,
        page_size: int = 20,
        total_pages: int = 1,
        filter_state: Optional[FilterState] = None,
    ):
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        if len(items) > page_size:
            raise ValueError(
                f"page holds {len(items)} items but page_size is {page_size}"
            )
        self._items: Tuple[Item, ...] = tuple(items)
        self.page_number = page_number
        self.page_size = page_size
        self.total_pages = max(1, total_pages)
        self.filter_state = filter_state or FilterState()

    @property
    def items(self) -> Tuple[Item, ...]:
        return self._items

    @property
    def ids(self) -> List[Hashable]:
        return [item.id for item in self._items]

    def get(self, item_id: Hashable) -> Optional[Item]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index: int) -> Item:
        return self._items[index]

    def __repr__(self) -> str:
        return (
            f"Page(page_number={self.page_number}, page_size={self.page_size}, "
            f"total_pages={self.total_pages}, ids={self.ids})"
        )


@dataclass(frozen=True)
class FetchResult:
    """Collection Fetcher 的返回值"""
    items: List[Item]
    total_pages: int = 1


__all__ = [
    "UNFILTERED_VALUES",
    "Item",
    "FilterState",
    "Page",
    "FetchResult",
]
