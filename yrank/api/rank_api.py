"""排名管理 API

为继承 RankedMixin 的模型生成两个接口:

    GET  ""                   按排名分页列出记录，支持搜索和分类筛选
    PUT  "/{item_id}/rank"    更新单条记录的排名

使用示例:
    from fastapi import FastAPI
    from yrank.api import create_rank_router
    from yrank.exceptions import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(create_rank_router(Region), prefix="/admin/regions")
"""

from typing import Any, Callable, ContextManager, List, Optional

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from yrank.config import RankingSettings
from yrank.log import get_logger
from yrank.orm import db_session_scope
from yrank.ranking.types import FilterState
from yrank.response import OK, ItemResponse, PageResponse, RankedItem, page_data

logger = get_logger()


class RankUpdate(BaseModel):
    """排名更新请求体"""
    rank: int = Field(ge=0, description="新排名")


def _row_data(row: Any) -> dict:
    data = row.to_payload()
    data["id"] = row.id
    data["rank"] = row.get_rank()
    return data


def create_rank_router(
    model: Any,
    session_scope: Optional[Callable[[], ContextManager[Session]]] = None,
    settings: Optional[RankingSettings] = None,
    invalidator: Optional[Callable[[], Any]] = None,
    tags: Optional[List[str]] = None,
) -> APIRouter:
    """创建排名管理路由

    Args:
        model: 继承 RankedMixin 的模型类
        session_scope: 返回 session 上下文管理器的可调用对象，默认 db_session_scope
        settings: 排序配置，用于限制每页最大数量
        invalidator: 排名更新提交后调用的缓存失效回调（同步）
        tags: OpenAPI 标签

    Returns:
        APIRouter
    """
    settings = settings or RankingSettings()
    scope = session_scope or db_session_scope
    router = APIRouter(tags=tags or [model.__name__])

    @router.get("", response_model=PageResponse[RankedItem], summary=f"{model.__name__} 排名列表")
    def list_ranked(
        request: Request,
        page: int = Query(1, ge=1, description="页码"),
        limit: int = Query(10, ge=1, le=settings.max_page_size, description="每页数量"),
        search: str = Query("", description="搜索关键字"),
    ):
        categories = {
            name: request.query_params[name]
            for name in model.__rank_category_fields__
            if name in request.query_params
        }
        filters = FilterState(search_text=search, categories=categories)

        with scope() as session:
            rows, total = model.list_page(session, page, limit, filters)
            data = [_row_data(row) for row in rows]

        return OK(page_data(data, total, page, limit))

    @router.put(
        "/{item_id}/rank",
        response_model=ItemResponse[RankedItem],
        summary=f"更新 {model.__name__} 排名",
    )
    def update_rank(item_id: str, body: RankUpdate):
        with scope() as session:
            obj = model.set_rank(session, model.coerce_id(item_id), body.rank)
            data = {"id": obj.id, "rank": obj.get_rank()}

        logger.info(f"{model.__name__} {item_id} rank updated: {body.rank}")

        if invalidator is not None:
            try:
                invalidator()
            except Exception as e:
                logger.warning(f"Cache invalidation failed: {e}")

        return OK(data, "排名已更新")

    return router


__all__ = [
    "RankUpdate",
    "create_rank_router",
]
