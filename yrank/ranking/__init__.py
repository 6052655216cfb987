"""排序模块

在分页管理列表中拖拽调整顺序，只回写排名发生变化的记录。

组成:
    - guard.can_rank: 筛选守卫
    - OrderBuffer: 本地排序缓冲区
    - DragCoordinator: 拖拽和键盘移动
    - diff: 计算最小变更集
    - PersistenceDispatcher: 并发回写，逐条报告结果
    - RankingSession: 串联以上组件的状态机

快速开始:
    from yrank.ranking import ATTRACTION_RANK, PersistenceDispatcher, RankingSession

    session = RankingSession(ATTRACTION_RANK, PersistenceDispatcher(writer), fetcher=fetcher)
    await session.load(1)
    session.enable_ranking()
    session.drag("E", "B")
    outcome = await session.save()
"""

from .policy import RankingPolicy, ATTRACTION_RANK, DISPLAY_ORDER
from .types import UNFILTERED_VALUES, Item, FilterState, Page, FetchResult
from .guard import can_rank
from .buffer import array_move, OrderBuffer
from .drag import DragCoordinator
from .diff import ChangeEntry, Changeset, diff
from .dispatcher import (
    FailurePolicy,
    OutcomeStatus,
    ItemOutcome,
    DispatchResult,
    CancellationToken,
    PersistenceDispatcher,
)
from .notifier import Notifier, LoggingNotifier, MemoryNotifier
from .protocols import CollectionFetcher, RankWriter, CacheInvalidator
from .session import (
    SessionState,
    RefreshPolicy,
    SaveStatus,
    SaveOutcome,
    RankingSession,
)
from .factory import build_dispatcher, build_session

__all__ = [
    "RankingPolicy",
    "ATTRACTION_RANK",
    "DISPLAY_ORDER",
    "UNFILTERED_VALUES",
    "Item",
    "FilterState",
    "Page",
    "FetchResult",
    "can_rank",
    "array_move",
    "OrderBuffer",
    "DragCoordinator",
    "ChangeEntry",
    "Changeset",
    "diff",
    "FailurePolicy",
    "OutcomeStatus",
    "ItemOutcome",
    "DispatchResult",
    "CancellationToken",
    "PersistenceDispatcher",
    "Notifier",
    "LoggingNotifier",
    "MemoryNotifier",
    "CollectionFetcher",
    "RankWriter",
    "CacheInvalidator",
    "SessionState",
    "RefreshPolicy",
    "SaveStatus",
    "SaveOutcome",
    "RankingSession",
    "build_dispatcher",
    "build_session",
]
