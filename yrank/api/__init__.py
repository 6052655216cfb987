"""HTTP 接口模块"""

from .rank_api import RankUpdate, create_rank_router

__all__ = [
    "RankUpdate",
    "create_rank_router",
]
