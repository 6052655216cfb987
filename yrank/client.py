"""排名管理 API 的 HTTP 客户端

通过 yrank.api 生成的接口实现 CollectionFetcher 和 RankWriter，
让排序会话可以运行在管理后台之外（命令行工具、批处理脚本等）。

使用示例:
    import httpx
    from yrank.client import HttpRankClient

    async with httpx.AsyncClient(base_url="https://cms.example.com") as http:
        client = HttpRankClient(http, "/admin/regions")
        session = RankingSession(ATTRACTION_RANK, PersistenceDispatcher(client), fetcher=client)
        await session.load(1)
"""

from typing import Hashable, Optional, Type

import httpx

from yrank.exceptions import (
    ErrorCode,
    FetchFailedException,
    RankingException,
    RankTargetNotFoundException,
)
from yrank.log import get_logger
from yrank.ranking.types import FetchResult, FilterState, Item

logger = get_logger()


class HttpRankClient:
    """排名管理 API 客户端

    Args:
        client: httpx.AsyncClient，由调用方负责创建和关闭
        base_path: 路由挂载路径，如 "/admin/regions"
    """

    def __init__(self, client: httpx.AsyncClient, base_path: str = ""):
        self.client = client
        self.base_path = base_path.rstrip("/")

    async def list_page(
        self,
        page: int,
        limit: int,
        filters: Optional[FilterState] = None,
    ) -> FetchResult:
        params = {"page": page, "limit": limit}
        if filters is not None:
            params.update(filters.to_query())

        try:
            response = await self.client.get(self.base_path, params=params)
        except httpx.HTTPError as e:
            raise FetchFailedException(details=[str(e)]) from e

        body = self._unwrap(response, FetchFailedException)
        data = body.get("data") or {}
        items = [
            Item(id=row["id"], rank=row["rank"], payload=row)
            for row in data.get("rows", [])
        ]
        return FetchResult(items=items, total_pages=data.get("total_pages", 1))

    async def update_rank(self, item_id: Hashable, rank: int) -> bool:
        response = await self.client.put(
            f"{self.base_path}/{item_id}/rank",
            json={"rank": rank},
        )
        self._unwrap(response, RankingException)
        return True

    @staticmethod
    def _unwrap(response: httpx.Response, error_class: Type[RankingException]) -> dict:
        """检查响应状态并返回响应体

        Raises:
            RankTargetNotFoundException: 404
            error_class: 其他非 2xx 响应，或响应体 status 不是 success
        """
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_success and body.get("status") == "success":
            return body

        message = body.get("message") or f"HTTP {response.status_code}"
        details = body.get("msg_details") or []
        logger.warning(f"Rank API error: {response.request.method} {response.request.url} "
                       f"-> {response.status_code} {message}")

        if response.status_code == 404:
            raise RankTargetNotFoundException(message, details=details)
        if error_class is RankingException:
            raise RankingException(
                message,
                code=body.get("error_code") or ErrorCode.BUSINESS_ERROR,
                status_code=response.status_code,
                details=details,
            )
        raise error_class(message, details=details)


__all__ = ["HttpRankClient"]
