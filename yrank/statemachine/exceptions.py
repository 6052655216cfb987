"""状态机异常

状态机异常属于排序业务异常体系，注册 register_exception_handlers 后
会话状态错误与其他业务异常一样返回统一的 JSON 响应。

    InvalidStateError        422  目标状态不属于状态枚举
    InvalidTransitionError   409  当前状态不允许转换到目标状态
    TransitionGuardError     409  守卫方法拒绝了转换
    TransitionCallbackError  500  钩子执行失败，状态已回滚
"""

from typing import Any, List

from fastapi import status

from yrank.exceptions import ErrorCode, RankingException


def _value(state: Any) -> Any:
    return getattr(state, "value", state)


class StateMachineError(RankingException):
    """状态机异常基类

    extra 中记录 from_state / to_state 的原始值，调试模式下随响应返回。
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_TRANSITION,
        status_code: int = status.HTTP_409_CONFLICT,
        details: List[str] = None,
        **extra: Any
    ):
        super().__init__(message, code=code, status_code=status_code, details=details, **extra)


class InvalidStateError(StateMachineError):
    """目标状态无效"""

    def __init__(self, state: Any, valid_states: List[Any]):
        self.state = state
        self.valid_states = valid_states
        super().__init__(
            f"无效的状态: {_value(state)}",
            code=ErrorCode.INVALID_STATE,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=[f"可用状态: {', '.join(str(_value(s)) for s in valid_states)}"],
            state=_value(state),
        )


class InvalidTransitionError(StateMachineError):
    """当前状态不允许该转换

    Attributes:
        allowed_transitions: 当前状态允许的目标状态
    """

    def __init__(self, from_state: Any, to_state: Any, allowed_transitions: List[Any]):
        self.from_state = from_state
        self.to_state = to_state
        self.allowed_transitions = allowed_transitions
        allowed = ", ".join(str(_value(s)) for s in allowed_transitions) or "无"
        super().__init__(
            f"不能从 {_value(from_state)} 转换到 {_value(to_state)}",
            details=[f"允许的目标状态: {allowed}"],
            from_state=_value(from_state),
            to_state=_value(to_state),
        )


class TransitionGuardError(StateMachineError):
    """守卫方法拒绝了转换，例如列表被筛选时进入 idle"""

    def __init__(self, from_state: Any, to_state: Any, guard_name: str, message: str = None):
        self.from_state = from_state
        self.to_state = to_state
        self.guard_name = guard_name
        super().__init__(
            message or f"{guard_name} 拒绝了从 {_value(from_state)} 到 {_value(to_state)} 的转换",
            code=ErrorCode.TRANSITION_REJECTED,
            from_state=_value(from_state),
            to_state=_value(to_state),
            guard=guard_name,
        )


class TransitionCallbackError(StateMachineError):
    """钩子执行失败

    Attributes:
        callback_name: 出错的钩子方法名
        original_error: 钩子抛出的原始异常
    """

    def __init__(self, from_state: Any, to_state: Any, callback_name: str, original_error: Exception):
        self.from_state = from_state
        self.to_state = to_state
        self.callback_name = callback_name
        self.original_error = original_error
        super().__init__(
            "状态转换失败",
            code=ErrorCode.TRANSITION_FAILED,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=[f"{callback_name}: {type(original_error).__name__}"],
            from_state=_value(from_state),
            to_state=_value(to_state),
        )


__all__ = [
    "StateMachineError",
    "InvalidStateError",
    "InvalidTransitionError",
    "TransitionGuardError",
    "TransitionCallbackError",
]
