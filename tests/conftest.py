"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 临时目录和文件
- 内存数据库
- 内存版列表获取器 / 排名写入器
- 记录通知的 Notifier
- 挂载排名接口的 FastAPI 应用
"""

import asyncio
import os
import tempfile
from typing import Dict, Iterable, List, Optional, Set

import pytest
from fastapi import FastAPI
from sqlalchemy import Integer, String, create_engine
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from yrank.api import create_rank_router
from yrank.config import RankingSettings
from yrank.exceptions import register_exception_handlers
from yrank.orm import Base, RankedMixin, db_manager, db_session_scope, get_engine, init_database
from yrank.ranking import FetchResult, FilterState, Item, MemoryNotifier, Page


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        if os.path.dirname(filepath):
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def memory_engine():
    """创建内存数据库引擎

    使用 StaticPool 和 check_same_thread=False，
    让线程池中执行的查询和写入共用同一个连接。
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


# ==================== 排序协作方替身 ====================

class InMemoryCollection:
    """内存中的可排序集合，同时充当 CollectionFetcher 和 RankWriter

    Attributes:
        ranks: id -> 当前排名
        names: id -> 名称（参与搜索）
        provinces: id -> 省份（分类筛选字段 "province"）
        calls: update_rank 的调用记录 (id, rank)
        fetch_calls: list_page 的调用记录 (page, limit, filters)
        fail_ids: 写入这些 id 时抛出异常
        reject_ids: 写入这些 id 时返回 False
        fail_fetch: 为 True 时 list_page 抛出异常
        write_delay: 每次写入前等待的秒数
    """

    def __init__(self, ranks: Dict[str, int], provinces: Optional[Dict[str, str]] = None):
        self.ranks = dict(ranks)
        self.names = {item_id: f"Region {item_id}" for item_id in ranks}
        self.provinces = dict(provinces or {})
        self.calls: List[tuple] = []
        self.fetch_calls: List[tuple] = []
        self.fail_ids: Set[str] = set()
        self.reject_ids: Set[str] = set()
        self.fail_fetch = False
        self.write_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def _matches(self, item_id: str, filters: Optional[FilterState]) -> bool:
        if filters is None:
            return True
        search = filters.search_text.strip().lower()
        if search and search not in self.names[item_id].lower():
            return False
        province = filters.active_categories().get("province")
        if province and self.provinces.get(item_id) != province:
            return False
        return True

    def ordered_ids(self, filters: Optional[FilterState] = None) -> List[str]:
        ids = [i for i in self.ranks if self._matches(i, filters)]
        return sorted(ids, key=lambda i: (self.ranks[i], i))

    async def list_page(self, page: int, limit: int, filters: Optional[FilterState] = None) -> FetchResult:
        self.fetch_calls.append((page, limit, filters))
        await asyncio.sleep(0)
        if self.fail_fetch:
            raise ConnectionError("collection unavailable")
        ids = self.ordered_ids(filters)
        total_pages = max(1, -(-len(ids) // limit))
        window = ids[(page - 1) * limit: page * limit]
        return FetchResult(
            items=[Item(id=i, rank=self.ranks[i], payload={"name": self.names[i]}) for i in window],
            total_pages=total_pages,
        )

    async def update_rank(self, item_id: str, rank: int):
        self.calls.append((item_id, rank))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.write_delay:
                await asyncio.sleep(self.write_delay)
            else:
                await asyncio.sleep(0)
            if item_id in self.fail_ids:
                raise RuntimeError(f"write rejected for {item_id}")
            if item_id in self.reject_ids:
                return False
            if item_id not in self.ranks:
                raise KeyError(item_id)
            self.ranks[item_id] = rank
            return True
        finally:
            self.in_flight -= 1


def build_page(ids: Iterable[str], start_rank: int = 1, page_number: int = 1, page_size: int = 20) -> Page:
    """按给定顺序构造一页，排名从 start_rank 连续递增"""
    items = [Item(id=item_id, rank=start_rank + index) for index, item_id in enumerate(ids)]
    return Page(items, page_number=page_number, page_size=page_size)


@pytest.fixture
def make_collection():
    """创建 InMemoryCollection 的工厂函数

    默认生成 ids 的排名为 1, 2, 3...（attraction_rank 风格）
    """

    def _make(ids: Iterable[str] = "ABCDEF", start_rank: int = 1, provinces=None) -> InMemoryCollection:
        ranks = {item_id: start_rank + index for index, item_id in enumerate(ids)}
        return InMemoryCollection(ranks, provinces=provinces)

    return _make


@pytest.fixture
def collection(make_collection):
    """六条记录 A..F，排名 1..6"""
    return make_collection("ABCDEF")


@pytest.fixture
def make_page():
    """构造 Page 的工厂函数"""
    return build_page


@pytest.fixture
def notifier():
    return MemoryNotifier()


# ==================== 排名接口 Fixtures ====================

class ApiRegion(Base, RankedMixin):
    """接口测试用的区域模型，attraction_rank 从 1 开始"""
    __tablename__ = "api_test_regions"
    __rank_field__ = "attraction_rank"
    __rank_search_fields__ = ("name",)
    __rank_category_fields__ = ("province",)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    province: Mapped[str] = mapped_column(String(50), default="")
    attraction_rank: Mapped[int] = mapped_column(Integer, default=0, index=True)


API_REGIONS = [
    (1, "Ubud", "Bali"),
    (2, "Kuta", "Bali"),
    (3, "Bandung", "Java"),
    (4, "Yogyakarta", "Java"),
    (5, "Lombok", "NTB"),
    (6, "Komodo", "NTT"),
]


@pytest.fixture
def api_database():
    """内存数据库，区域 1..6 的排名为 1..6"""
    init_database("sqlite:///:memory:")
    Base.metadata.create_all(get_engine())
    with db_session_scope() as session:
        for rank, (item_id, name, province) in enumerate(API_REGIONS, start=1):
            session.add(ApiRegion(id=item_id, name=name, province=province, attraction_rank=rank))
    yield
    db_manager.dispose()


@pytest.fixture
def api_ranks(api_database):
    """读取当前持久化排名的函数"""

    def _ranks():
        with db_session_scope() as session:
            return {r.id: r.attraction_rank for r in session.query(ApiRegion).all()}

    return _ranks


@pytest.fixture
def make_rank_app(api_database):
    """创建挂载 /regions 排名接口的 FastAPI 应用的工厂函数"""

    def _make(invalidator=None, settings=None) -> FastAPI:
        app = FastAPI()
        register_exception_handlers(app)
        router = create_rank_router(
            ApiRegion,
            settings=settings or RankingSettings(max_page_size=50),
            invalidator=invalidator,
        )
        app.include_router(router, prefix="/regions")
        return app

    return _make


@pytest.fixture
def rank_app(make_rank_app):
    """app.state.invalidations 记录缓存失效回调的调用次数"""
    invalidations = []
    app = make_rank_app(invalidator=lambda: invalidations.append(1))
    app.state.invalidations = invalidations
    return app
