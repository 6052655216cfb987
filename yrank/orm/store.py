"""基于 SQLAlchemy 的列表获取器和排名写入器"""

import asyncio
import functools
import math
from typing import Any, Callable, ContextManager, Hashable, Optional

from sqlalchemy.orm import Session

from yrank.log import get_logger
from yrank.ranking.types import FetchResult, FilterState
from .db_session import db_session_scope

logger = get_logger()


class SqlRankStore:
    """同时实现 CollectionFetcher 和 RankWriter

    数据库操作是同步的：list_page 在默认线程池中执行，
    update_rank 为同步方法，由 PersistenceDispatcher 放入线程池。
    SQLite 内存库只有一个连接，回写时应配合 max_concurrency=1 使用。

    Args:
        model: 继承 RankedMixin 的模型类
        session_scope: 返回 session 上下文管理器的可调用对象，默认 db_session_scope

    使用示例:
        store = SqlRankStore(Region)
        session = RankingSession(ATTRACTION_RANK, PersistenceDispatcher(store), fetcher=store)
    """

    def __init__(
        self,
        model: Any,
        session_scope: Optional[Callable[[], ContextManager[Session]]] = None,
    ):
        self.model = model
        self.session_scope = session_scope or db_session_scope

    def fetch_page(self, page: int, limit: int, filters: Optional[FilterState] = None) -> FetchResult:
        """同步获取一页"""
        with self.session_scope() as session:
            rows, total = self.model.list_page(session, page, limit, filters)
            items = [row.to_item() for row in rows]
        return FetchResult(items=items, total_pages=max(1, math.ceil(total / limit)))

    async def list_page(self, page: int, limit: int, filters: Optional[FilterState] = None) -> FetchResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self.fetch_page, page, limit, filters)
        )

    def update_rank(self, item_id: Hashable, rank: int) -> bool:
        with self.session_scope() as session:
            self.model.set_rank(session, item_id, rank)
        return True


__all__ = ["SqlRankStore"]
