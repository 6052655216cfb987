"""状态机模块

为普通对象提供状态转换校验、守卫和钩子回调。
排序会话 (yrank.ranking.session) 基于此实现 disabled/idle/dirty/saving/error 流转。
"""

from .exceptions import (
    StateMachineError,
    InvalidStateError,
    InvalidTransitionError,
    TransitionGuardError,
    TransitionCallbackError,
)
from .state_machine import StateChange, StateMachineMixin

__all__ = [
    "StateMachineError",
    "InvalidStateError",
    "InvalidTransitionError",
    "TransitionGuardError",
    "TransitionCallbackError",
    "StateChange",
    "StateMachineMixin",
]
