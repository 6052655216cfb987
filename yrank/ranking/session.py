"""排序会话

把筛选守卫、排序缓冲区、拖拽协调器、差异计算和回写调度组合为一个状态机:

    disabled -> idle -> dirty -> saving -> (idle | error)

- disabled: 排序开关关闭、列表被收窄、或刚翻页，拖拽被忽略
- idle:     可以拖拽，缓冲区与当前页一致
- dirty:    有未保存的拖拽
- saving:   回写进行中，拖拽被忽略
- error:    上次回写部分或全部失败，可以继续拖拽或重新保存

使用示例:
    session = RankingSession(
        policy=ATTRACTION_RANK,
        dispatcher=PersistenceDispatcher(store),
        fetcher=store,
    )
    await session.load(page_number=1)
    session.enable_ranking()
    session.drag("E", "B")
    outcome = await session.save()
"""

import asyncio
import inspect
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Hashable, List, Optional

from yrank.exceptions import Err
from yrank.log import get_logger
from yrank.statemachine import StateMachineMixin
from .buffer import OrderBuffer
from .diff import Changeset, diff
from .dispatcher import CancellationToken, DispatchResult, PersistenceDispatcher
from .drag import DragCoordinator
from .guard import can_rank
from .notifier import (
    LoggingNotifier,
    MSG_CLEAR_FILTERS,
    MSG_FETCH_FAILED,
    MSG_NO_CHANGES,
    MSG_RANK_SAVED,
    MSG_RANK_SAVE_FAILED,
)
from .policy import RankingPolicy
from .protocols import CacheInvalidator, CollectionFetcher
from .types import FilterState, Page

logger = get_logger()


class SessionState(str, Enum):
    """排序会话状态"""
    DISABLED = "disabled"
    IDLE = "idle"
    DIRTY = "dirty"
    SAVING = "saving"
    ERROR = "error"


class RefreshPolicy(str, Enum):
    """回写结束后的刷新策略"""
    ON_SUCCESS = "on_success"   # 仅全部成功时刷新，失败时保留本地顺序以便重试
    ALWAYS = "always"           # 无论成败都刷新


class SaveStatus(str, Enum):
    """保存结果"""
    SAVED = "saved"
    NO_CHANGES = "no_changes"
    GUARD_VIOLATION = "guard_violation"
    NOT_ENABLED = "not_enabled"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SaveOutcome:
    """一次保存的结果

    Attributes:
        status: 保存结果
        changeset: 本次计算出的变更集，未执行差异计算时为空
        result: 回写结果，未执行回写时为 None
    """
    status: SaveStatus
    changeset: Changeset = field(default_factory=Changeset)
    result: Optional[DispatchResult] = None

    @property
    def ok(self) -> bool:
        return self.status in (SaveStatus.SAVED, SaveStatus.NO_CHANGES)

    def raise_for_status(self) -> "SaveOutcome":
        """保存被拒绝或失败时抛出对应的业务异常

        Raises:
            FilterConflictException: 列表被搜索或筛选收窄
            DispatchFailedException: 回写部分或全部失败，result 为本次 DispatchResult
        """
        if self.status is SaveStatus.GUARD_VIOLATION:
            raise Err.filter_conflict()
        if self.status is SaveStatus.FAILED:
            failed = self.result.failed if self.result is not None else []
            raise Err.dispatch_failed(
                details=[f"{o.id}: {o.error!r}" if o.error is not None else f"{o.id}: rejected" for o in failed],
                result=self.result,
            )
        return self


class RankingSession(StateMachineMixin):
    """排序会话

    Args:
        policy: 排名策略
        dispatcher: 回写调度器
        fetcher: 列表获取器；为 None 时保存成功后在本地更新当前页，
            调用方通过 adopt_page() 提供页数据
        notifier: 通知实现，默认写日志
        invalidator: 有写入成功后调用的缓存失效回调
        refresh_policy: 回写结束后的刷新策略
        page_size: 每页数量
    """

    State = SessionState

    __state_enum__ = SessionState
    __state_initial__ = SessionState.DISABLED
    __state_transitions__ = {
        SessionState.DISABLED: [SessionState.IDLE],
        SessionState.IDLE: [SessionState.DIRTY, SessionState.DISABLED],
        SessionState.DIRTY: [SessionState.SAVING, SessionState.IDLE, SessionState.DISABLED],
        SessionState.SAVING: [SessionState.IDLE, SessionState.ERROR, SessionState.DISABLED],
        SessionState.ERROR: [
            SessionState.SAVING,
            SessionState.DIRTY,
            SessionState.IDLE,
            SessionState.DISABLED,
        ],
    }

    def __init__(
        self,
        policy: RankingPolicy,
        dispatcher: PersistenceDispatcher,
        fetcher: Optional[CollectionFetcher] = None,
        notifier: Any = None,
        invalidator: Optional[CacheInvalidator] = None,
        refresh_policy: RefreshPolicy = RefreshPolicy.ON_SUCCESS,
        page_size: int = 20,
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.init_state()
        self.policy = policy
        self.dispatcher = dispatcher
        self.fetcher = fetcher
        self.notifier = notifier or LoggingNotifier()
        self.invalidator = invalidator
        self.refresh_policy = RefreshPolicy(refresh_policy)
        self.page_size = page_size

        self.page: Optional[Page] = None
        self.filter_state = FilterState()
        self.ranking_enabled = False
        self.buffer = OrderBuffer()
        self.coordinator = DragCoordinator(self.buffer, is_armed=self._is_armed)

        self._token: Optional[CancellationToken] = None
        self._save_lock: Optional[asyncio.Lock] = None
        # 翻页、筛选、关闭时递增，用于丢弃过期的获取和回写结果
        self._generation = 0
        self._closed = False

    # ==================== 状态查询 ====================

    @property
    def can_rank(self) -> bool:
        """当前筛选条件下是否允许排序"""
        return can_rank(self.filter_state)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def order(self) -> List[Hashable]:
        """缓冲区中的当前 id 顺序"""
        return list(self.buffer.current())

    def pending_changes(self) -> Changeset:
        """预览保存时将要写入的变更"""
        if self.page is None:
            return Changeset()
        return diff(self.page, self.buffer, self.policy)

    def _is_armed(self) -> bool:
        return (
            not self._closed
            and self.ranking_enabled
            and self.can_rank
            and self.is_any_state(SessionState.IDLE, SessionState.DIRTY, SessionState.ERROR)
        )

    # ==================== 状态机钩子 ====================

    def guard_can_idle(self) -> bool:
        return self.can_rank and self.page is not None

    def guard_can_saving(self) -> bool:
        return self.can_rank

    def on_enter_idle(self, **context):
        self.buffer.seed(self.page)

    def on_enter_disabled(self, **context):
        # 未保存的拖拽被丢弃
        self.buffer.seed(self.page)

    def on_transition_saving_disabled(self, **context):
        if self._token is not None:
            self._token.cancel()

    # ==================== 排序开关 ====================

    def enable_ranking(self) -> bool:
        """打开排序开关

        列表被搜索或筛选收窄时拒绝打开，并提示先清除筛选条件。

        Returns:
            会话是否进入可拖拽状态
        """
        if self._closed:
            return False
        if not self.can_rank:
            self.ranking_enabled = False
            self.notifier.error(MSG_CLEAR_FILTERS)
            return False
        if self.ranking_enabled and not self.is_state(SessionState.DISABLED):
            return True

        self.ranking_enabled = True
        if not self.transition_to(SessionState.IDLE, raise_on_error=False):
            self.ranking_enabled = False
            return False
        return True

    def disable_ranking(self) -> None:
        """关闭排序开关，丢弃未保存的拖拽"""
        self._discard("ranking disabled")

    # ==================== 拖拽 ====================

    def drag(self, active_id: Hashable, over_id: Hashable) -> bool:
        """拖拽结束：把 active_id 移动到 over_id 所在位置"""
        return self._after_move(self.coordinator.on_drag_end(active_id, over_id))

    def move_up(self, item_id: Hashable) -> bool:
        return self._after_move(self.coordinator.move_up(item_id))

    def move_down(self, item_id: Hashable) -> bool:
        return self._after_move(self.coordinator.move_down(item_id))

    def move_to_top(self, item_id: Hashable) -> bool:
        return self._after_move(self.coordinator.move_to_top(item_id))

    def move_to_bottom(self, item_id: Hashable) -> bool:
        return self._after_move(self.coordinator.move_to_bottom(item_id))

    def _after_move(self, moved: bool) -> bool:
        if not moved:
            return False
        # 拖回原顺序时回到 idle
        if self.buffer.matches(self.page):
            self.transition_to(SessionState.IDLE)
        else:
            self.transition_to(SessionState.DIRTY)
        return True

    # ==================== 加载与导航 ====================

    def adopt_page(self, page: Page) -> None:
        """直接采用调用方获取的页（未配置 fetcher 时使用）

        等同于一次导航：未保存的拖拽被丢弃，会话进入 disabled。
        """
        self._discard("page adopted")
        self.page = page
        self.filter_state = page.filter_state or FilterState()
        self.buffer.seed(page)

    async def load(
        self,
        page_number: Optional[int] = None,
        filter_state: Optional[FilterState] = None,
    ) -> Optional[Page]:
        """获取指定页

        这是一次导航：未保存的拖拽被丢弃，进行中的回写被取消，会话进入 disabled。
        请求的页码超过总页数时改为获取第 1 页。

        Returns:
            获取到的页，获取失败或结果已过期时返回 None
        """
        if page_number is None:
            page_number = self.page.page_number if self.page is not None else 1
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")

        self._discard("navigation")
        if filter_state is not None:
            self.filter_state = filter_state
        return await self._fetch(page_number)

    async def set_page(self, page_number: int) -> Optional[Page]:
        """翻页"""
        return await self.load(page_number=page_number)

    async def apply_filter(self, filter_state: FilterState) -> Optional[Page]:
        """更新搜索和筛选条件

        排序开关被关闭，回到第 1 页。配置了 fetcher 时重新获取列表。
        """
        logger.debug(f"Filter changed: {filter_state}")
        if self.fetcher is None:
            self._discard("filter changed")
            self.filter_state = filter_state
            return self.page
        return await self.load(page_number=1, filter_state=filter_state)

    async def refresh(self) -> Optional[Page]:
        """重新获取当前页，保持排序开关

        未保存的拖拽会被丢弃，回写进行中时不刷新。
        """
        if self.is_state(SessionState.SAVING):
            logger.warning("Refresh ignored while saving")
            return self.page
        page_number = self.page.page_number if self.page is not None else 1
        page = await self._fetch(page_number)
        if page is not None and self.ranking_enabled and not self.is_state(SessionState.DISABLED):
            self.transition_to(SessionState.IDLE)
        return page

    async def _fetch(self, page_number: int) -> Optional[Page]:
        if self.fetcher is None:
            raise RuntimeError("未配置 Collection Fetcher，请使用 adopt_page() 提供页数据")

        generation = self._generation
        filter_state = self.filter_state
        try:
            result = await self.fetcher.list_page(page_number, self.page_size, filter_state)
        except Exception as e:
            if generation != self._generation:
                return None
            return self._fetch_failed(page_number, e)

        if generation != self._generation:
            logger.debug(f"Stale fetch result discarded: page {page_number}")
            return None

        if page_number > 1 and page_number > result.total_pages:
            logger.info(f"Page {page_number} exceeds total pages {result.total_pages}, loading page 1")
            return await self._fetch(1)

        try:
            page = Page(
                result.items,
                page_number=page_number,
                page_size=self.page_size,
                total_pages=result.total_pages,
                filter_state=filter_state,
            )
        except ValueError as e:
            # 返回的条目数超过每页数量
            return self._fetch_failed(page_number, e)
        self.page = page
        self.buffer.seed(page)
        return page

    def _fetch_failed(self, page_number: int, error: Exception) -> None:
        logger.error(f"Failed to fetch page {page_number}: {error}", exc_info=error)
        self.notifier.error(MSG_FETCH_FAILED)
        self._discard("fetch failed")
        self.page = Page([], page_number=1, page_size=self.page_size, filter_state=self.filter_state)
        self.buffer.seed(self.page)
        return None

    # ==================== 保存 ====================

    @property
    def _lock(self) -> asyncio.Lock:
        if self._save_lock is None:
            self._save_lock = asyncio.Lock()
        return self._save_lock

    async def save(self) -> SaveOutcome:
        """保存拖拽结果

        同一会话的保存依次执行，后一次保存基于前一次刷新后的页计算差异。
        """
        async with self._lock:
            return await self._save()

    async def _save(self) -> SaveOutcome:
        if not self.can_rank:
            logger.warning(f"Save rejected, list is filtered: {self.filter_state}")
            self.notifier.error(MSG_CLEAR_FILTERS)
            return SaveOutcome(SaveStatus.GUARD_VIOLATION)

        if self._closed or not self.ranking_enabled or self.page is None \
                or self.is_state(SessionState.DISABLED):
            return SaveOutcome(SaveStatus.NOT_ENABLED)

        changeset = diff(self.page, self.buffer, self.policy)
        if not changeset:
            self.notifier.info(MSG_NO_CHANGES)
            if self.is_state(SessionState.ERROR):
                self.transition_to(SessionState.IDLE)
            return SaveOutcome(SaveStatus.NO_CHANGES, changeset)

        token = CancellationToken()
        generation = self._generation
        self._token = token
        self.transition_to(SessionState.SAVING, changeset=changeset)
        try:
            result = await self.dispatcher.dispatch(changeset, token)
        finally:
            if self._token is token:
                self._token = None

        if token.cancelled or generation != self._generation:
            logger.info(f"Save result discarded: {len(changeset)} change(s)")
            return SaveOutcome(SaveStatus.CANCELLED, changeset, result)

        if result.succeeded:
            await self._invalidate()

        if result.ok:
            self.notifier.success(MSG_RANK_SAVED)
            await self._reconcile(changeset)
            if self.is_state(SessionState.SAVING):
                self.transition_to(SessionState.IDLE)
            return SaveOutcome(SaveStatus.SAVED, changeset, result)

        self.notifier.error(MSG_RANK_SAVE_FAILED)
        if self.refresh_policy is RefreshPolicy.ALWAYS and self.fetcher is not None:
            await self._fetch(self.page.page_number)
        if self.is_state(SessionState.SAVING):
            self.transition_to(SessionState.ERROR, result=result)
        return SaveOutcome(SaveStatus.FAILED, changeset, result)

    async def _reconcile(self, changeset: Changeset) -> None:
        """回写成功后让当前页与持久化排名一致"""
        if self.fetcher is not None:
            await self._fetch(self.page.page_number)
            return

        ranks = changeset.as_dict()
        items = []
        for item_id in self.buffer.current():
            item = self.page.get(item_id)
            items.append(replace(item, rank=ranks.get(item_id, item.rank)))
        self.page = Page(
            items,
            page_number=self.page.page_number,
            page_size=self.page.page_size,
            total_pages=self.page.total_pages,
            filter_state=self.page.filter_state,
        )
        self.buffer.seed(self.page)

    async def _invalidate(self) -> None:
        if self.invalidator is None:
            return
        try:
            result = self.invalidator()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Cache invalidation failed: {e}")

    # ==================== 关闭 ====================

    def close(self) -> None:
        """关闭会话

        取消进行中的回写，之后到达的回写结果被丢弃，不再通知或刷新。
        """
        self._closed = True
        self._discard("session closed")

    def _discard(self, reason: str) -> None:
        self._generation += 1
        self.ranking_enabled = False
        if not self.is_state(SessionState.DISABLED):
            logger.debug(f"Ranking session disabled: {reason}")
        self.transition_to(SessionState.DISABLED, reason=reason)
        self.buffer.seed(self.page)


__all__ = [
    "SessionState",
    "RefreshPolicy",
    "SaveStatus",
    "SaveOutcome",
    "RankingSession",
]
