"""
YRank - 分页管理列表的拖拽排序组件

提供筛选守卫、排序缓冲区、差异计算、并发回写和排序会话状态机，
以及基于 SQLAlchemy 的存储和 FastAPI 接口。
"""

__version__ = "0.1.0"

from .ranking import (
    RankingPolicy,
    ATTRACTION_RANK,
    DISPLAY_ORDER,
    Item,
    FilterState,
    Page,
    FetchResult,
    can_rank,
    array_move,
    OrderBuffer,
    DragCoordinator,
    ChangeEntry,
    Changeset,
    diff,
    FailurePolicy,
    DispatchResult,
    CancellationToken,
    PersistenceDispatcher,
    SessionState,
    RefreshPolicy,
    SaveStatus,
    SaveOutcome,
    RankingSession,
    build_dispatcher,
    build_session,
)

from .exceptions import (
    ErrorCode,
    RankingException,
    BufferMismatchError,
    Err,
    register_exception_handlers,
)

from .log import get_logger, setup_logger, setup_root_logger

__all__ = [
    "__version__",
    "RankingPolicy",
    "ATTRACTION_RANK",
    "DISPLAY_ORDER",
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
    "DispatchResult",
    "CancellationToken",
    "PersistenceDispatcher",
    "SessionState",
    "RefreshPolicy",
    "SaveStatus",
    "SaveOutcome",
    "RankingSession",
    "build_dispatcher",
    "build_session",
    "ErrorCode",
    "RankingException",
    "BufferMismatchError",
    "Err",
    "register_exception_handlers",
    "get_logger",
    "setup_logger",
    "setup_root_logger",
]
