"""差异计算

按位置比较获取到的页和排序缓冲区，得出需要回写的最小变更集:
索引 i 处的 id 变了，就给缓冲区中该位置的记录写入位置 i 对应的排名。

一次移动会使中间所有被平移的记录都进入变更集；没有移动时变更集为空。
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Hashable, Iterator, List, Optional, Tuple

from yrank.exceptions import BufferMismatchError
from .buffer import OrderBuffer
from .policy import RankingPolicy
from .types import Page


@dataclass(frozen=True)
class ChangeEntry:
    """一条排名变更

    Attributes:
        id: 记录 id
        rank: 新排名
        index: 记录在缓冲区中的页内位置
        previous_rank: 获取页时记录的排名，回滚时写回该值
    """
    id: Hashable
    rank: int
    index: int
    previous_rank: Optional[int] = None


class Changeset:
    """有序的排名变更集合"""

    def __init__(self, entries: Optional[List[ChangeEntry]] = None):
        self._entries: Tuple[ChangeEntry, ...] = tuple(entries or ())

    @property
    def entries(self) -> Tuple[ChangeEntry, ...]:
        return self._entries

    @property
    def ids(self) -> List[Hashable]:
        return [entry.id for entry in self._entries]

    def get(self, item_id: Hashable) -> Optional[ChangeEntry]:
        for entry in self._entries:
            if entry.id == item_id:
                return entry
        return None

    def as_dict(self) -> Dict[Hashable, int]:
        """id -> 新排名"""
        return {entry.id: entry.rank for entry in self._entries}

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[ChangeEntry]:
        return iter(self._entries)

    def __eq__(self, other) -> bool:
        if isinstance(other, Changeset):
            return self._entries == other._entries
        return NotImplemented

    def __repr__(self) -> str:
        return f"Changeset({self.as_dict()!r})"


def _check_permutation(page_ids: List[Hashable], buffer_ids: Tuple[Hashable, ...]) -> None:
    page_counts = Counter(page_ids)
    buffer_counts = Counter(buffer_ids)
    if page_counts == buffer_counts:
        return
    raise BufferMismatchError(
        missing=list((page_counts - buffer_counts).elements()),
        unexpected=list((buffer_counts - page_counts).elements()),
    )


def diff(
    page: Page,
    buffer: OrderBuffer,
    policy: RankingPolicy,
    page_base_offset: Optional[int] = None,
) -> Changeset:
    """计算需要回写的排名变更

    Args:
        page: 获取到的当前页
        buffer: 排序缓冲区
        policy: 排名策略
        page_base_offset: 当前页之前的记录数，省略时按页码和页大小计算

    Returns:
        变更集，缓冲区与页一致时为空

    Raises:
        BufferMismatchError: 缓冲区不是当前页 id 的一个排列
    """
    buffer_ids = buffer.current()
    page_ids = page.ids
    _check_permutation(page_ids, buffer_ids)

    if page_base_offset is None:
        page_base_offset = policy.page_base_offset(page.page_number, page.page_size)

    fetched_ranks = {item.id: item.rank for item in page}
    entries = [
        ChangeEntry(
            id=buffer_id,
            rank=policy.rank_for(index, page_base_offset),
            index=index,
            previous_rank=fetched_ranks[buffer_id],
        )
        for index, (page_id, buffer_id) in enumerate(zip(page_ids, buffer_ids))
        if page_id != buffer_id
    ]
    return Changeset(entries)


__all__ = [
    "ChangeEntry",
    "Changeset",
    "diff",
]
