"""用户通知

会话通过 Notifier 向操作者反馈结果（成功、提示、错误），
默认实现只写日志，界面层可以替换为消息提示组件。
"""

from typing import List, Protocol, Tuple, runtime_checkable

from yrank.log import get_logger

logger = get_logger()


# 通知文案
MSG_CLEAR_FILTERS = "请先清除搜索和筛选条件再调整排序"
MSG_NO_CHANGES = "排名没有变化，无需保存"
MSG_RANK_SAVED = "排名已更新"
MSG_RANK_SAVE_FAILED = "排名更新失败"
MSG_FETCH_FAILED = "列表加载失败"


@runtime_checkable
class Notifier(Protocol):
    """通知接口"""

    def success(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """把通知写入日志的默认实现"""

    def success(self, message: str) -> None:
        logger.info(f"[success] {message}")

    def info(self, message: str) -> None:
        logger.info(f"[info] {message}")

    def error(self, message: str) -> None:
        logger.warning(f"[error] {message}")


class MemoryNotifier:
    """把通知按顺序保存在内存中

    适合命令行工具和测试，messages 中每项为 (级别, 文案)。
    """

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def of_level(self, level: str) -> List[str]:
        return [message for lvl, message in self.messages if lvl == level]

    def clear(self) -> None:
        self.messages.clear()


__all__ = [
    "MSG_CLEAR_FILTERS",
    "MSG_NO_CHANGES",
    "MSG_RANK_SAVED",
    "MSG_RANK_SAVE_FAILED",
    "MSG_FETCH_FAILED",
    "Notifier",
    "LoggingNotifier",
    "MemoryNotifier",
]
