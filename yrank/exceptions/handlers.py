"""全局异常处理器

将排序组件的异常转换为统一的 JSON 响应格式。
"""

import os
import sys
import traceback
from typing import Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from yrank.log import get_logger
from yrank.response import ResponseStatus, ValidationErrorResponse
from .exceptions import RankingException

logger = get_logger()


# 需要上下文的错误类型模板
_CONTEXT_MESSAGES: Dict[str, str] = {
    "greater_than": "必须大于 {gt}",
    "greater_than_equal": "必须大于或等于 {ge}",
    "less_than": "必须小于 {lt}",
    "less_than_equal": "必须小于或等于 {le}",
    "string_too_long": "长度不能超过 {max_length} 个字符",
}

# 静态错误消息（Pydantic v2）
_STATIC_MESSAGES: Dict[str, str] = {
    "missing": "此字段为必填项",
    "int_type": "必须是整数",
    "int_parsing": "必须是整数",
    "str_type": "必须是字符串",
    "dict_type": "必须是对象",
    "json_invalid": "JSON 格式不正确",
    "model_attributes_type": "对象属性格式不正确",
}


def translate_validation_error(error: dict) -> Optional[str]:
    """将单条 Pydantic 验证错误翻译为中文

    Returns:
        翻译后的消息，无法翻译时返回 None
    """
    error_type = error.get("type", "")
    ctx = error.get("ctx") or {}

    if error_type in _CONTEXT_MESSAGES:
        try:
            return _CONTEXT_MESSAGES[error_type].format(**ctx)
        except (KeyError, IndexError):
            return _CONTEXT_MESSAGES[error_type]

    return _STATIC_MESSAGES.get(error_type)


def _is_debug() -> bool:
    return os.getenv("DEBUG", "false").lower() == "true"


async def ranking_exception_handler(
    request: Request,
    exc: RankingException
) -> JSONResponse:
    """排序业务异常处理器

    处理所有继承自 RankingException 的异常，转换为统一的 JSON 响应。
    """
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        f"Ranking exception occurred: {exc.code} - {exc.message}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "error_code": exc.code,
            "status_code": exc.status_code,
        }
    )

    content = {
        "status": ResponseStatus.ERROR.value,
        "message": exc.message,
        "msg_details": exc.details,
        "data": {}
    }

    if exc.code:
        content["error_code"] = exc.code

    if _is_debug() and exc.extra:
        content["debug_info"] = exc.extra

    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """请求参数验证异常处理器

    字段路径去掉 body/query/path 前缀，错误消息尽量翻译为中文。
    """
    request_id = getattr(request.state, "request_id", "unknown")

    errors = []
    for error in exc.errors():
        loc_parts = [
            str(loc) for loc in error["loc"]
            if loc not in ("body", "query", "path", "header", "cookie")
        ]
        field = ".".join(loc_parts) if loc_parts else "请求体"
        message = translate_validation_error(error) or error["msg"]
        errors.append(f"{field}: {message}")

    logger.warning(
        f"Validation error: {len(errors)} field(s) failed validation",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "errors": errors
        }
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": ResponseStatus.ERROR.value,
            "message": "请求参数验证失败",
            "msg_details": errors,
            "data": {},
            "error_code": "VALIDATION_ERROR"
        }
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """HTTP 异常处理器"""
    request_id = getattr(request.state, "request_id", "unknown")

    log_level = "warning" if exc.status_code < 500 else "error"
    getattr(logger, log_level)(
        f"HTTP exception: {exc.status_code} - {exc.detail}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": ResponseStatus.ERROR.value,
            "message": str(exc.detail),
            "msg_details": [],
            "data": {},
            "error_code": f"HTTP_{exc.status_code}"
        }
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """通用异常处理器

    捕获所有未被其他处理器处理的异常，记录完整堆栈，不向调用方暴露原始异常。
    """
    request_id = getattr(request.state, "request_id", "unknown")

    tb_lines = traceback.format_exception(*sys.exc_info())

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "traceback": "".join(tb_lines)
        }
    )

    content = {
        "status": ResponseStatus.ERROR.value,
        "message": "服务器内部错误",
        "msg_details": [],
        "data": {},
        "error_code": "INTERNAL_SERVER_ERROR"
    }

    if _is_debug():
        content["msg_details"] = [
            f"异常类型: {type(exc).__name__}",
            f"异常消息: {exc}"
        ]

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content
    )


def register_exception_handlers(app) -> None:
    """注册所有异常处理器到 FastAPI 应用

    使用示例:
        from fastapi import FastAPI
        from yrank.exceptions import register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(RankingException, ranking_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    # 兜底处理器放在最后
    app.add_exception_handler(Exception, general_exception_handler)

    app.router.responses[422] = {
        "description": "请求参数验证失败",
        "model": ValidationErrorResponse,
    }

    logger.info("Exception handlers registered successfully")
