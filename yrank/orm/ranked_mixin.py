"""排名管理 Mixin

为模型提供按排名分页查询和单条排名写入。

使用示例:
    from yrank.orm import Base, RankFieldMixin, RankedMixin

    # 使用默认的 display_order 字段（从 0 开始）
    class Photo(Base, RankFieldMixin, RankedMixin):
        __tablename__ = "photos"
        __rank_search_fields__ = ("title",)
        __rank_category_fields__ = ("category",)

        id: Mapped[int] = mapped_column(primary_key=True)
        title: Mapped[str] = mapped_column(String(100))
        category: Mapped[str] = mapped_column(String(50))

    # 自定义排名字段
    class Region(Base, RankedMixin):
        __tablename__ = "regions"
        __rank_field__ = "attraction_rank"

        attraction_rank: Mapped[int] = mapped_column(Integer, default=0, index=True)

    with db_session_scope() as session:
        rows, total = Photo.list_page(session, page=2, limit=20)
        Photo.set_rank(session, 7, 21)
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Integer, func, or_, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from yrank.exceptions import Err
from yrank.log import get_logger
from yrank.ranking.types import FilterState, Item

logger = get_logger()


class RankFieldMixin:
    """排名字段 Mixin

    提供标准的 display_order 字段，值越小越靠前。
    """

    display_order: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        index=True,
        comment="排名序号"
    )


class RankedMixin:
    """排名管理 Mixin

    可配置属性（子类可覆盖）:
        - __rank_field__: 排名字段名，默认 "display_order"
        - __rank_tiebreak_fields__: 排名相同时的次级排序字段，默认 ("id",)
        - __rank_search_fields__: 参与关键字搜索的字符串字段
        - __rank_category_fields__: 允许作为分类筛选的字段
    """

    __rank_field__: str = "display_order"
    __rank_tiebreak_fields__: Sequence[str] = ("id",)
    __rank_search_fields__: Sequence[str] = ()
    __rank_category_fields__: Sequence[str] = ()

    # ==================== 内部方法 ====================

    @classmethod
    def _rank_column(cls):
        return getattr(cls, cls.__rank_field__)

    @classmethod
    def _apply_filters(cls, stmt, filters: Optional[FilterState]):
        if filters is None:
            return stmt

        search = filters.search_text.strip()
        if search and cls.__rank_search_fields__:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(*[
                getattr(cls, name).ilike(pattern) for name in cls.__rank_search_fields__
            ]))

        for name, value in filters.active_categories().items():
            if name not in cls.__rank_category_fields__:
                logger.debug(f"{cls.__name__}: ignored unknown category filter {name}")
                continue
            stmt = stmt.where(getattr(cls, name) == value)

        return stmt

    @classmethod
    def _ordered(cls, stmt):
        order_by = [cls._rank_column().asc()]
        order_by.extend(getattr(cls, name).asc() for name in cls.__rank_tiebreak_fields__)
        return stmt.order_by(*order_by)

    # ==================== 实例方法 ====================

    def get_rank(self) -> int:
        return getattr(self, self.__class__.__rank_field__, 0) or 0

    def to_payload(self) -> Dict[str, Any]:
        """列值字典，作为 Item.payload 供界面渲染"""
        return {column.key: getattr(self, column.key) for column in self.__table__.columns}

    def to_item(self) -> Item:
        return Item(id=self.id, rank=self.get_rank(), payload=self.to_payload())

    # ==================== 类方法 ====================

    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        """把路径参数等字符串 id 转换为主键的 Python 类型

        Raises:
            RankTargetNotFoundException: 无法转换时视为记录不存在
        """
        pk_column = list(cls.__table__.primary_key.columns)[0]
        try:
            python_type = pk_column.type.python_type
        except NotImplementedError:
            return value
        if isinstance(value, python_type):
            return value
        try:
            return python_type(value)
        except (TypeError, ValueError):
            raise Err.not_found(f"{cls.__name__} 不存在: {value}", item_id=value) from None

    @classmethod
    def list_page(
        cls,
        session: Session,
        page: int = 1,
        limit: int = 10,
        filters: Optional[FilterState] = None,
    ) -> Tuple[List[Any], int]:
        """按排名升序分页查询

        Args:
            session: 数据库会话
            page: 页码，从 1 开始
            limit: 每页数量
            filters: 搜索和分类筛选

        Returns:
            (当前页记录, 总记录数)
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        base = cls._apply_filters(select(cls), filters)
        total = session.scalar(select(func.count()).select_from(base.subquery())) or 0
        rows = session.scalars(
            cls._ordered(base).offset((page - 1) * limit).limit(limit)
        ).all()
        return list(rows), total

    @classmethod
    def get_ranked(cls, session: Session, filters: Optional[FilterState] = None) -> List[Any]:
        """获取全部记录，按排名升序"""
        stmt = cls._ordered(cls._apply_filters(select(cls), filters))
        return list(session.scalars(stmt).all())

    @classmethod
    def get_max_rank(cls, session: Session, filters: Optional[FilterState] = None) -> int:
        """获取最大排名值，无记录返回 0"""
        stmt = cls._apply_filters(select(func.max(cls._rank_column())), filters)
        return session.scalar(stmt) or 0

    @classmethod
    def set_rank(cls, session: Session, item_id: Any, rank: int):
        """更新单条记录的排名

        只修改这一条记录，其他记录的排名保持不变。

        Raises:
            InvalidRankException: 排名为负数
            RankTargetNotFoundException: 记录不存在
        """
        if rank < 0:
            raise Err.invalid_rank("排名不能为负数", rank=rank)

        obj = session.get(cls, item_id)
        if obj is None:
            raise Err.not_found(f"{cls.__name__} 不存在: {item_id}", item_id=item_id)

        setattr(obj, cls.__rank_field__, rank)
        session.flush()
        logger.debug(f"{cls.__name__} {item_id}: {cls.__rank_field__} = {rank}")
        return obj


__all__ = [
    "RankFieldMixin",
    "RankedMixin",
]
