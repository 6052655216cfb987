"""业务异常类定义

定义排序组件使用的业务异常类体系。
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from fastapi import status


class ErrorCode(str, Enum):
    """错误代码枚举

    继承自 str，可以直接作为字符串使用。

    使用示例:
        from yrank.exceptions import ErrorCode, RankingException

        raise RankingException("排序保存失败", code=ErrorCode.DISPATCH_FAILED)
    """

    # ==================== 通用错误 ====================
    BUSINESS_ERROR = "BUSINESS_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    # ==================== 资源相关 (404) ====================
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RANK_TARGET_NOT_FOUND = "RANK_TARGET_NOT_FOUND"

    # ==================== 冲突相关 (409) ====================
    FILTER_CONFLICT = "FILTER_CONFLICT"

    # ==================== 验证相关 (422) ====================
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_RANK = "INVALID_RANK"

    # ==================== 外部协作方 (502/503) ====================
    FETCH_FAILED = "FETCH_FAILED"
    DISPATCH_FAILED = "DISPATCH_FAILED"

    # ==================== 会话状态 (409/422/500) ====================
    INVALID_STATE = "INVALID_STATE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    TRANSITION_REJECTED = "TRANSITION_REJECTED"
    TRANSITION_FAILED = "TRANSITION_FAILED"


# 类型别名，支持枚举和字符串
ErrorCodeType = Union[str, ErrorCode]


class RankingException(Exception):
    """排序业务异常基类

    属性:
        message: 错误消息（面向用户）
        code: 错误代码（用于程序判断）
        status_code: HTTP 状态码
        details: 详细错误信息列表
        extra: 额外的上下文信息

    使用示例:
        raise RankingException(
            message="排序保存失败",
            code=ErrorCode.DISPATCH_FAILED,
            extra_field="value",
        )
    """

    def __init__(
        self,
        message: str,
        code: ErrorCodeType = ErrorCode.BUSINESS_ERROR,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or []
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式

        Returns:
            包含异常信息的字典
        """
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            # 返回深拷贝，避免调用方修改返回值反向污染异常对象
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra)
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"status_code={self.status_code})"
        )


class FetchFailedException(RankingException):
    """列表获取失败异常

    Collection Fetcher 调用失败时抛出，会话层将其转换为通知和空列表。
    """

    def __init__(
        self,
        message: str = "列表加载失败",
        code: ErrorCodeType = ErrorCode.FETCH_FAILED,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
            **extra
        )


class FilterConflictException(RankingException):
    """筛选冲突异常

    列表被搜索或分类筛选收窄时尝试排序。
    """

    def __init__(
        self,
        message: str = "请先清除搜索和筛选条件再调整排序",
        code: ErrorCodeType = ErrorCode.FILTER_CONFLICT,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            **extra
        )


class DispatchFailedException(RankingException):
    """排名回写失败异常

    Attributes:
        result: 本批次的 DispatchResult，包含每条写入的结果
    """

    def __init__(
        self,
        message: str = "排序更新失败",
        code: ErrorCodeType = ErrorCode.DISPATCH_FAILED,
        details: Optional[List[str]] = None,
        result: Any = None,
        **extra: Any
    ):
        self.result = result
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
            **extra
        )


class RankTargetNotFoundException(RankingException):
    """排名写入目标不存在异常"""

    def __init__(
        self,
        message: str = "要更新排名的记录不存在",
        code: ErrorCodeType = ErrorCode.RANK_TARGET_NOT_FOUND,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            **extra
        )


class InvalidRankException(RankingException):
    """排名值非法异常"""

    def __init__(
        self,
        message: str = "排名值非法",
        code: ErrorCodeType = ErrorCode.INVALID_RANK,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            **extra
        )


class BufferMismatchError(ValueError):
    """排序缓冲区与当前页不是同一组 id

    拖拽排序期间不允许增删条目，出现此异常说明调用方破坏了该约束。

    Attributes:
        missing: 页中有、缓冲区中没有的 id
        unexpected: 缓冲区中有、页中没有的 id
    """

    def __init__(self, missing: List[Any], unexpected: List[Any]):
        self.missing = missing
        self.unexpected = unexpected
        super().__init__(
            f"Order buffer is not a permutation of the page ids. "
            f"missing={missing}, unexpected={unexpected}"
        )


class Err:
    """异常快捷创建类

    使用示例:
        from yrank.exceptions import Err

        raise Err.not_found("区域不存在", item_id=12)
        raise Err.filter_conflict()
        raise Err.invalid_rank("排名不能为负数", rank=-1)
    """

    @staticmethod
    def fetch_failed(message: str = "列表加载失败", **kwargs) -> FetchFailedException:
        """列表获取失败 (503)"""
        return FetchFailedException(message, **kwargs)

    @staticmethod
    def filter_conflict(
        message: str = "请先清除搜索和筛选条件再调整排序", **kwargs
    ) -> FilterConflictException:
        """筛选冲突 (409)"""
        return FilterConflictException(message, **kwargs)

    @staticmethod
    def dispatch_failed(message: str = "排序更新失败", **kwargs) -> DispatchFailedException:
        """回写失败 (502)"""
        return DispatchFailedException(message, **kwargs)

    @staticmethod
    def not_found(message: str = "要更新排名的记录不存在", **kwargs) -> RankTargetNotFoundException:
        """写入目标不存在 (404)"""
        return RankTargetNotFoundException(message, **kwargs)

    @staticmethod
    def invalid_rank(message: str = "排名值非法", **kwargs) -> InvalidRankException:
        """排名值非法 (422)"""
        return InvalidRankException(message, **kwargs)


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
]
