"""ORM 模块

- Base: 声明基类
- RankFieldMixin / RankedMixin: 排名字段与按排名查询、单条写入
- SqlRankStore: 供排序会话使用的数据库获取器和写入器
- init_database / db_session_scope / get_db: 数据库会话管理
"""

from .base import Base
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    get_db,
    db_session_scope,
)
from .ranked_mixin import RankFieldMixin, RankedMixin
from .store import SqlRankStore

__all__ = [
    "Base",
    "db_manager",
    "init_database",
    "get_engine",
    "get_db",
    "db_session_scope",
    "RankFieldMixin",
    "RankedMixin",
    "SqlRankStore",
]
