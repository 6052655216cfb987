"""日志模块

提供日志配置与获取工具。

使用示例:
    from yrank.log import setup_logger, get_logger

    # 创建自定义日志记录器
    logger = setup_logger("yrank", level="DEBUG", log_file="logs/rank.log")

    # 模块内获取日志器
    logger = get_logger()
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    LoggingConfigProtocol,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "LoggingConfigProtocol",
    "logger",
    "get_logger",
]
