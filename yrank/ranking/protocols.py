"""协作方协议

排序会话只依赖以下接口，具体实现可以是数据库（yrank.orm.SqlRankStore）、
HTTP 客户端（yrank.client.HttpRankClient）或测试替身。
"""

from typing import Any, Awaitable, Callable, Hashable, Optional, Protocol, Union, runtime_checkable

from .types import FetchResult, FilterState


@runtime_checkable
class CollectionFetcher(Protocol):
    """分页获取可排序记录

    返回的记录必须按排名升序排列，且数量不超过 limit。
    """

    async def list_page(
        self,
        page: int,
        limit: int,
        filters: Optional[FilterState] = None,
    ) -> FetchResult:
        ...


@runtime_checkable
class RankWriter(Protocol):
    """单条排名写入

    同步或异步实现均可。抛出异常或返回 False 视为写入失败。
    """

    def update_rank(self, item_id: Hashable, rank: int) -> Union[Any, Awaitable[Any]]:
        ...


# 缓存失效回调：无参数，同步或异步
CacheInvalidator = Callable[[], Union[None, Awaitable[None]]]


__all__ = [
    "CollectionFetcher",
    "RankWriter",
    "CacheInvalidator",
]
