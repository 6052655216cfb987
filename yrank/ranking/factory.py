"""根据配置组装排序组件

使用示例:
    from yrank.config import AppSettings
    from yrank.ranking import build_session

    settings = AppSettings()
    session = build_session("regions", writer=store, fetcher=store, settings=settings.ranking)
"""

from typing import Any, Optional, Union

from .dispatcher import FailurePolicy, PersistenceDispatcher
from .policy import RankingPolicy
from .protocols import CacheInvalidator, CollectionFetcher
from .session import RankingSession, RefreshPolicy


def _default_settings():
    from yrank.config import RankingSettings

    return RankingSettings()


def build_dispatcher(writer: Any, settings=None) -> PersistenceDispatcher:
    """按 RankingSettings 创建回写调度器"""
    settings = settings or _default_settings()
    return PersistenceDispatcher(
        writer,
        max_concurrency=settings.max_concurrency,
        failure_policy=FailurePolicy(settings.failure_policy),
        write_timeout=settings.write_timeout,
    )


def build_session(
    policy: Union[str, RankingPolicy],
    writer: Any,
    fetcher: Optional[CollectionFetcher] = None,
    settings=None,
    notifier: Any = None,
    invalidator: Optional[CacheInvalidator] = None,
) -> RankingSession:
    """按 RankingSettings 创建排序会话

    Args:
        policy: 排名策略，或 settings.policies 中配置的实体类型名
        writer: RankWriter 实现
        fetcher: CollectionFetcher 实现
        settings: RankingSettings，省略时使用默认配置（读取环境变量）
        notifier: 通知实现
        invalidator: 缓存失效回调

    Raises:
        KeyError: 实体类型名未配置
    """
    settings = settings or _default_settings()
    if isinstance(policy, str):
        policy = settings.get_policy(policy)

    return RankingSession(
        policy=policy,
        dispatcher=build_dispatcher(writer, settings),
        fetcher=fetcher,
        notifier=notifier,
        invalidator=invalidator,
        refresh_policy=RefreshPolicy(settings.refresh_policy),
        page_size=settings.page_size,
    )


__all__ = [
    "build_dispatcher",
    "build_session",
]
