from datetime import datetime
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


# 泛型类型变量
T = TypeVar('T')


class ResponseStatus(str, Enum):
    """响应状态枚举

    用于标识响应的业务状态，与 HTTP 状态码独立。
    """
    SUCCESS = "success"   # 请求成功
    ERROR = "error"       # 请求失败（客户端或服务端错误）
    INFO = "info"         # 信息性响应


# ========== 泛型响应模型 ==========

class RankedItem(BaseModel):
    """排名列表中的单项，其余字段由模型的 to_payload() 决定"""
    model_config = ConfigDict(extra="allow")

    id: Any = Field(description="记录ID")
    rank: int = Field(description="排名值")


class PageData(BaseModel, Generic[T]):
    """泛型分页数据模型"""
    rows: List[T] = Field(description="数据列表")
    total_records: int = Field(description="总记录数")
    page: int = Field(description="当前页码")
    page_size: int = Field(description="每页数量")
    total_pages: int = Field(description="总页数")
    has_prev: bool = Field(description="是否有上一页")
    has_next: bool = Field(description="是否有下一页")


class PageResponse(BaseModel, Generic[T]):
    """泛型分页响应模型

    使用示例:
        @router.get("", response_model=PageResponse[RankedItem])
        def list_regions():
            ...
    """
    status: str = Field(default="success", description="响应状态")
    message: str = Field(default="请求成功", description="响应消息")
    msg_details: List[str] = Field(default=[], description="详细信息")
    data: PageData[T] = Field(description="分页数据")


class ItemResponse(BaseModel, Generic[T]):
    """泛型单项响应模型"""
    status: str = Field(default="success", description="响应状态")
    message: str = Field(default="请求成功", description="响应消息")
    msg_details: List[str] = Field(default=[], description="详细信息")
    data: T = Field(description="数据")


class ValidationErrorResponse(BaseModel):
    """验证错误响应模型（422）"""
    status: str = Field(default="error", description="响应状态")
    message: str = Field(default="请求参数验证失败", description="错误消息")
    msg_details: List[str] = Field(default=[], description="各字段验证错误详情")
    data: dict = Field(default={}, description="空数据")
    error_code: str = Field(default="VALIDATION_ERROR", description="错误码")


def _serialize_data(data: Any, _is_top_level: bool = True) -> Any:
    """递归序列化数据

    Args:
        data: 要序列化的数据
        _is_top_level: 是否为顶层调用，顶层 None 转为 {}，嵌套 None 保持为 None
    """
    if data is None:
        return {} if _is_top_level else None

    if isinstance(data, datetime):
        return data.strftime('%Y-%m-%d %H:%M:%S')

    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")

    if isinstance(data, list):
        return [_serialize_data(item, False) for item in data]

    if isinstance(data, dict):
        return {k: _serialize_data(v, False) for k, v in data.items()}

    return data


def _create_response(
    message: str,
    data: Any = None,
    msg_details: Optional[List[str]] = None,
    status_code: int = status.HTTP_200_OK,
    response_status: ResponseStatus = ResponseStatus.SUCCESS
) -> JSONResponse:
    """创建标准化响应"""
    content = {
        "status": response_status.value,
        "message": message,
        "msg_details": msg_details if msg_details is not None else [],
        "data": _serialize_data(data),
    }
    return JSONResponse(status_code=status_code, content=content)


def OK(data: Any = None, message: str = "请求成功") -> JSONResponse:
    """200 OK - 请求成功"""
    return _create_response(
        data=data,
        message=message,
        status_code=status.HTTP_200_OK,
        response_status=ResponseStatus.SUCCESS
    )


def page_data(
    rows: List[Any],
    total_records: int,
    page: int,
    page_size: int,
) -> dict:
    """组装分页数据字典

    Args:
        rows: 当前页数据
        total_records: 总记录数
        page: 当前页码（从1开始）
        page_size: 每页数量
    """
    total_pages = max(1, -(-total_records // page_size)) if page_size > 0 else 1
    return {
        "rows": rows,
        "total_records": total_records,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_prev": page > 1,
        "has_next": page < total_pages,
    }
