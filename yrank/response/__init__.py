"""响应模块

提供统一的 JSON 响应格式:
    {"status": ..., "message": ..., "msg_details": [...], "data": ...}

使用示例:
    from yrank.response import OK, page_data

    @router.get("")
    def list_items():
        return OK(page_data(rows, total, page, page_size))
"""

from .base_response import (
    ResponseStatus,
    RankedItem,
    PageData,
    PageResponse,
    ItemResponse,
    ValidationErrorResponse,
    OK,
    page_data,
)

__all__ = [
    "ResponseStatus",
    "RankedItem",
    "PageData",
    "PageResponse",
    "ItemResponse",
    "ValidationErrorResponse",
    "OK",
    "page_data",
]
