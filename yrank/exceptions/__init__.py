"""异常处理模块

提供排序业务异常类和 FastAPI 全局异常处理器。

使用示例:
    from yrank.exceptions import Err, register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)

    raise Err.not_found("区域不存在", item_id=12)
"""

from .exceptions import (
    ErrorCode,
    ErrorCodeType,
    RankingException,
    FetchFailedException,
    FilterConflictException,
    DispatchFailedException,
    RankTargetNotFoundException,
    InvalidRankException,
    BufferMismatchError,
    Err,
)

from .handlers import (
    translate_validation_error,
    ranking_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    general_exception_handler,
    register_exception_handlers,
)

__all__ = [
    "ErrorCode",
    "ErrorCodeType",
    "RankingException",
    "FetchFailedException",
    "FilterConflictException",
    "DispatchFailedException",
    "RankTargetNotFoundException",
    "InvalidRankException",
    "BufferMismatchError",
    "Err",
    "translate_validation_error",
    "ranking_exception_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "general_exception_handler",
    "register_exception_handlers",
]
