"""排名回写调度

把变更集中的每一条变更各自调用一次 RankWriter.update_rank，所有写入并发执行，
并逐条报告结果。写入之间没有事务，部分失败时由 FailurePolicy 决定如何处理。

使用示例:
    dispatcher = PersistenceDispatcher(writer, max_concurrency=8)
    result = await dispatcher.dispatch(changeset)
    if not result.ok:
        for outcome in result.failed:
            print(outcome.id, outcome.error)
"""

import asyncio
import functools
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Hashable, List, Optional, Sequence, Tuple

from yrank.log import get_logger
from .diff import Changeset

logger = get_logger()


class FailurePolicy(str, Enum):
    """部分失败处理策略"""
    KEEP_APPLIED = "keep_applied"   # 保留已成功的写入
    ROLLBACK = "rollback"           # 把已成功的条目写回原排名


class OutcomeStatus(str, Enum):
    """单条写入结果"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"     # 超时，写入可能仍在执行，结果未知
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ItemOutcome:
    """单条写入的结果

    Attributes:
        id: 记录 id
        rank: 写入的排名
        status: 结果状态
        error: 失败原因，写入器返回 False 时为 None
    """
    id: Hashable
    rank: int
    status: OutcomeStatus
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED


@dataclass(frozen=True)
class DispatchResult:
    """一次回写的汇总结果

    Attributes:
        outcomes: 每条变更的写入结果，顺序与变更集一致
        rollback_outcomes: ROLLBACK 策略下写回原排名的结果
        was_cancelled: 回写是否被取消
    """
    outcomes: Tuple[ItemOutcome, ...] = ()
    rollback_outcomes: Tuple[ItemOutcome, ...] = ()
    was_cancelled: bool = False

    @property
    def ok(self) -> bool:
        """全部写入成功（空变更集视为成功）"""
        return not self.was_cancelled and all(o.succeeded for o in self.outcomes)

    @property
    def succeeded(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.SUCCEEDED]

    @property
    def failed(self) -> List[ItemOutcome]:
        """失败的写入，包含超时"""
        return [
            o for o in self.outcomes
            if o.status in (OutcomeStatus.FAILED, OutcomeStatus.TIMED_OUT)
        ]

    @property
    def timed_out(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.TIMED_OUT]

    @property
    def cancelled(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.CANCELLED]

    @property
    def rolled_back(self) -> bool:
        """已生效的写入是否全部写回了原排名

        有超时的写入时返回 False：同步写入器在线程中超时后仍可能提交，
        写回的原排名可能被随后到达的新排名覆盖。
        """
        if not self.rollback_outcomes or self.timed_out:
            return False
        return all(o.succeeded for o in self.rollback_outcomes)

    @property
    def partially_applied(self) -> bool:
        """是否有部分写入生效而整体未成功，即持久化排名处于新旧混合状态"""
        if self.ok or not (self.succeeded or self.timed_out):
            return False
        return not self.rolled_back


class CancellationToken:
    """取消令牌

    cancel() 后，正在执行的写入任务会被取消，尚未开始的写入不再执行。
    """

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], Any]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], Any]) -> None:
        """注册取消回调，令牌已取消时立即调用"""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], Any]) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"


class PersistenceDispatcher:
    """排名回写调度器

    Args:
        writer: RankWriter 实现，update_rank 可以是同步或异步方法；
            也可以直接传入 (item_id, rank) 可调用对象
        max_concurrency: 并发写入上限，None 表示不限制
        failure_policy: 部分失败处理策略
        write_timeout: 单条写入超时（秒），超时视为失败，None 表示不超时
    """

    def __init__(
        self,
        writer: Any,
        max_concurrency: Optional[int] = None,
        failure_policy: FailurePolicy = FailurePolicy.KEEP_APPLIED,
        write_timeout: Optional[float] = None,
    ):
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        if write_timeout is not None and write_timeout <= 0:
            raise ValueError(f"write_timeout must be > 0, got {write_timeout}")
        self.writer = writer
        self.max_concurrency = max_concurrency
        self.failure_policy = FailurePolicy(failure_policy)
        self.write_timeout = write_timeout

    async def dispatch(
        self,
        changeset: Changeset,
        token: Optional[CancellationToken] = None,
    ) -> DispatchResult:
        """执行一批排名写入

        Args:
            changeset: 变更集
            token: 取消令牌，已取消时不执行任何写入

        Returns:
            DispatchResult，逐条报告写入结果
        """
        token = token or CancellationToken()
        entries = list(changeset)

        if not entries:
            return DispatchResult()

        if token.cancelled:
            logger.info(f"Dispatch skipped, token already cancelled: {len(entries)} entries")
            return DispatchResult(
                outcomes=tuple(
                    ItemOutcome(e.id, e.rank, OutcomeStatus.CANCELLED) for e in entries
                ),
                was_cancelled=True,
            )

        logger.info(f"Dispatching {len(entries)} rank update(s): {changeset.as_dict()}")
        outcomes = await self._write_all([(e.id, e.rank) for e in entries], token)
        result = DispatchResult(outcomes=outcomes, was_cancelled=token.cancelled)

        if result.ok:
            logger.info(f"Dispatch succeeded: {len(outcomes)} rank update(s)")
            return result

        if result.was_cancelled:
            logger.info(
                f"Dispatch cancelled: {len(result.succeeded)} applied, "
                f"{len(result.cancelled)} cancelled"
            )
            return result

        logger.warning(
            f"Dispatch failed: {len(result.failed)} of {len(outcomes)} rank update(s) failed, "
            f"{len(result.succeeded)} applied"
        )

        if self.failure_policy is FailurePolicy.ROLLBACK and (result.succeeded or result.timed_out):
            result = await self._rollback(changeset, result)

        return result

    async def _rollback(self, changeset: Changeset, result: DispatchResult) -> DispatchResult:
        targets = []
        # 超时的写入可能已经提交，一并写回
        for outcome in result.succeeded + result.timed_out:
            entry = changeset.get(outcome.id)
            if entry is None or entry.previous_rank is None:
                logger.warning(f"Rollback skipped, previous rank unknown: {outcome.id}")
                continue
            targets.append((entry.id, entry.previous_rank))

        logger.info(f"Rolling back {len(targets)} applied rank update(s)")
        rollback_outcomes = await self._write_all(targets, CancellationToken())

        failed = [o for o in rollback_outcomes if not o.succeeded]
        if failed:
            logger.error(
                f"Rollback incomplete: {len(failed)} record(s) left with new rank: "
                f"{[o.id for o in failed]}"
            )

        return DispatchResult(
            outcomes=result.outcomes,
            rollback_outcomes=rollback_outcomes,
            was_cancelled=result.was_cancelled,
        )

    async def _write_all(
        self,
        targets: Sequence[Tuple[Hashable, int]],
        token: CancellationToken,
    ) -> Tuple[ItemOutcome, ...]:
        if not targets:
            return ()

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        tasks = [
            asyncio.ensure_future(self._write_one(item_id, rank, semaphore))
            for item_id, rank in targets
        ]

        def cancel_pending():
            for task in tasks:
                if not task.done():
                    task.cancel()

        token.add_callback(cancel_pending)
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            token.remove_callback(cancel_pending)

        outcomes = []
        for (item_id, rank), value in zip(targets, results):
            if isinstance(value, asyncio.CancelledError):
                outcomes.append(ItemOutcome(item_id, rank, OutcomeStatus.CANCELLED))
            elif isinstance(value, asyncio.TimeoutError):
                logger.warning(f"Rank update timed out: id={item_id}, rank={rank}")
                outcomes.append(ItemOutcome(item_id, rank, OutcomeStatus.TIMED_OUT, value))
            elif isinstance(value, BaseException):
                logger.warning(f"Rank update failed: id={item_id}, rank={rank}, error={value!r}")
                outcomes.append(ItemOutcome(item_id, rank, OutcomeStatus.FAILED, value))
            elif value is False:
                logger.warning(f"Rank update rejected: id={item_id}, rank={rank}")
                outcomes.append(ItemOutcome(item_id, rank, OutcomeStatus.FAILED))
            else:
                outcomes.append(ItemOutcome(item_id, rank, OutcomeStatus.SUCCEEDED))
        return tuple(outcomes)

    async def _write_one(self, item_id: Hashable, rank: int, semaphore: Optional[asyncio.Semaphore]) -> Any:
        if semaphore is None:
            return await self._invoke(item_id, rank)
        async with semaphore:
            return await self._invoke(item_id, rank)

    async def _invoke(self, item_id: Hashable, rank: int) -> Any:
        call = self._call_writer(item_id, rank)
        if self.write_timeout is not None:
            result = await asyncio.wait_for(call, self.write_timeout)
        else:
            result = await call
        if inspect.isawaitable(result):
            result = await result
        return result

    def _call_writer(self, item_id: Hashable, rank: int):
        update = getattr(self.writer, "update_rank", self.writer)
        if inspect.iscoroutinefunction(update):
            return update(item_id, rank)
        # 同步写入器在线程池中执行
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(None, functools.partial(update, item_id, rank))


__all__ = [
    "FailurePolicy",
    "OutcomeStatus",
    "ItemOutcome",
    "DispatchResult",
    "CancellationToken",
    "PersistenceDispatcher",
]
