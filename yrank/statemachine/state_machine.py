"""内存状态机 Mixin

为普通 Python 对象提供状态转换校验和钩子回调，状态保存在实例属性上。

使用示例:
    from enum import Enum
    from yrank.statemachine import StateMachineMixin

    class Editor(StateMachineMixin):
        class State(str, Enum):
            IDLE = "idle"
            DIRTY = "dirty"

        __state_enum__ = State
        __state_initial__ = State.IDLE
        __state_transitions__ = {
            State.IDLE: [State.DIRTY],
            State.DIRTY: [State.IDLE],
        }

        def __init__(self):
            self.init_state()

        def on_enter_dirty(self, **context):
            print("有未保存的修改")

    editor = Editor()
    editor.transition_to(Editor.State.DIRTY)
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from yrank.log import get_logger
from .exceptions import (
    InvalidStateError,
    InvalidTransitionError,
    TransitionGuardError,
    TransitionCallbackError,
)

logger = get_logger()


def _normalize_state_name(state: Any) -> str:
    """将状态值规范化为方法名格式

    例如:
        State.SAVING -> "saving"
        "SAVING" -> "saving"
    """
    if isinstance(state, Enum):
        return state.name.lower()
    return str(state).lower()


@dataclass(frozen=True)
class StateChange:
    """一次状态变更记录"""
    from_state: Any
    to_state: Any
    at: float = field(default_factory=time.monotonic)
    context: Dict[str, Any] = field(default_factory=dict)


class StateMachineMixin:
    """状态机 Mixin

    配置属性（子类可覆盖）:
        __state_field__: str = "state"
            保存当前状态的实例属性名

        __state_transitions__: Dict[Any, List[Any]] = {}
            状态转换规则，key 为源状态，value 为允许的目标状态列表

        __state_initial__: Any = None
            初始状态

        __state_enum__: Type[Enum] = None
            状态枚举类

        __state_history_limit__: int = 50
            保留的最近状态变更条数，0 表示不记录

    钩子方法命名约定:
        on_enter_{state}(**context)             进入状态时触发
        on_exit_{state}(**context)              离开状态时触发
        on_transition_{from}_{to}(**context)    特定转换时触发
        guard_can_{state}() -> bool             转换守卫条件
    """

    __state_field__: str = "state"
    __state_transitions__: Dict[Any, List[Any]] = {}
    __state_initial__: Any = None
    __state_enum__: Type[Enum] = None
    __state_history_limit__: int = 50

    # ==================== 内部方法 ====================

    def _normalize_state(self, state: Any) -> Any:
        """将值或名称转换为枚举成员，无法转换时原样返回"""
        state_enum = self.__class__.__state_enum__
        if state_enum is None or isinstance(state, state_enum):
            return state

        try:
            return state_enum(state)
        except ValueError:
            pass

        if isinstance(state, str):
            try:
                return state_enum[state.upper()]
            except KeyError:
                pass

        return state

    def _call_hook(self, hook_name: str, **context) -> Optional[bool]:
        hook = getattr(self, hook_name, None)
        if hook is not None and callable(hook):
            return hook(**context)
        return None

    def _call_guard(self, to_state: Any) -> bool:
        guard = getattr(self, f"guard_can_{_normalize_state_name(to_state)}", None)
        if guard is not None and callable(guard):
            return bool(guard())
        return True

    def _record_state_change(self, from_state: Any, to_state: Any, **context) -> None:
        limit = self.__class__.__state_history_limit__
        if limit <= 0:
            return
        history = self.__dict__.setdefault("_state_history", [])
        history.append(StateChange(from_state, to_state, context=dict(context)))
        if len(history) > limit:
            del history[:len(history) - limit]

    # ==================== 核心方法 ====================

    def get_state(self) -> Any:
        """获取当前状态（配置了枚举时返回枚举成员）"""
        raw_value = getattr(self, self.__class__.__state_field__, None)
        return self._normalize_state(raw_value)

    def set_state(self, new_state: Any) -> None:
        """直接设置状态，跳过校验和钩子（内部使用）"""
        setattr(self, self.__class__.__state_field__, new_state)

    def init_state(self) -> None:
        """设置为配置的初始状态，通常在 __init__ 中调用"""
        initial = self.__class__.__state_initial__
        if initial is not None:
            self.set_state(self._normalize_state(initial))
        self.__dict__["_state_history"] = []

    def transition_to(
        self,
        new_state: Any,
        *,
        force: bool = False,
        raise_on_error: bool = True,
        **context
    ) -> bool:
        """执行状态转换

        顺序: 转换规则校验 -> 守卫 -> before_transition -> on_exit_x
        -> 变更状态 -> on_enter_y -> on_transition_x_y -> after_transition。

        Args:
            new_state: 目标状态
            force: 是否跳过转换规则和守卫校验
            raise_on_error: 转换失败时是否抛出异常
            **context: 传递给钩子的上下文参数

        Returns:
            是否转换成功；目标状态与当前状态相同时直接返回 True

        Raises:
            InvalidStateError: 无效的状态值
            InvalidTransitionError: 转换不合法
            TransitionGuardError: 守卫条件不满足
            TransitionCallbackError: 钩子执行失败
        """
        new_state = self._normalize_state(new_state)
        current_state = self.get_state()

        state_enum = self.__class__.__state_enum__
        if state_enum is not None and not isinstance(new_state, state_enum):
            if raise_on_error:
                raise InvalidStateError(new_state, list(state_enum))
            return False

        if current_state == new_state:
            return True

        if not force:
            if not self.can_transition_to(new_state):
                if raise_on_error:
                    raise InvalidTransitionError(
                        current_state, new_state, self.get_available_transitions()
                    )
                return False

            if not self._call_guard(new_state):
                if raise_on_error:
                    raise TransitionGuardError(
                        current_state,
                        new_state,
                        f"guard_can_{_normalize_state_name(new_state)}",
                    )
                return False

        if self.before_transition(current_state, new_state, **context) is False:
            return False

        exit_hook = f"on_exit_{_normalize_state_name(current_state)}"
        try:
            self._call_hook(exit_hook, **context)
        except Exception as e:
            if raise_on_error:
                raise TransitionCallbackError(current_state, new_state, exit_hook, e) from e
            return False

        old_state = current_state
        self.set_state(new_state)

        enter_hook = f"on_enter_{_normalize_state_name(new_state)}"
        try:
            self._call_hook(enter_hook, **context)
        except Exception as e:
            # 进入钩子失败时回滚状态
            self.set_state(old_state)
            if raise_on_error:
                raise TransitionCallbackError(old_state, new_state, enter_hook, e) from e
            return False

        transition_hook = (
            f"on_transition_"
            f"{_normalize_state_name(old_state)}_"
            f"{_normalize_state_name(new_state)}"
        )
        self._call_hook(transition_hook, **context)
        self.after_transition(old_state, new_state, **context)
        self._record_state_change(old_state, new_state, **context)

        logger.debug(
            f"{self.__class__.__name__} state: "
            f"{_normalize_state_name(old_state)} -> {_normalize_state_name(new_state)}"
        )
        return True

    def can_transition_to(self, new_state: Any) -> bool:
        """检查当前状态是否允许转换到目标状态（不执行守卫）"""
        new_state = self._normalize_state(new_state)
        current_state = self.get_state()
        if current_state == new_state:
            return True
        return new_state in self.__class__.__state_transitions__.get(current_state, [])

    def get_available_transitions(self) -> List[Any]:
        """获取当前状态可转换到的目标列表"""
        return list(self.__class__.__state_transitions__.get(self.get_state(), []))

    # ==================== 状态查询 ====================

    def is_state(self, state: Any) -> bool:
        """判断是否为指定状态"""
        return self.get_state() == self._normalize_state(state)

    def is_any_state(self, *states) -> bool:
        """判断是否为指定状态之一"""
        current = self.get_state()
        return any(self._normalize_state(s) == current for s in states)

    @property
    def state_history(self) -> List[StateChange]:
        """最近的状态变更记录（从旧到新）"""
        return list(self.__dict__.get("_state_history", []))

    # ==================== 钩子方法（子类可覆盖）====================

    def before_transition(self, from_state: Any, to_state: Any, **context) -> bool:
        """转换前钩子，返回 False 可阻止转换"""
        return True

    def after_transition(self, from_state: Any, to_state: Any, **context) -> None:
        """转换后钩子"""
        pass

    @classmethod
    def get_all_states(cls) -> List[Any]:
        """获取所有状态"""
        if cls.__state_enum__ is not None:
            return list(cls.__state_enum__)

        states = set(cls.__state_transitions__.keys())
        for targets in cls.__state_transitions__.values():
            states.update(targets)
        return list(states)


__all__ = [
    "StateChange",
    "StateMachineMixin",
]
