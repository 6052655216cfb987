"""ORM 声明基类"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """所有排序模型的声明基类

    使用示例:
        class Region(Base, RankedMixin):
            __tablename__ = "regions"
            __rank_field__ = "attraction_rank"
            ...
    """
    pass


__all__ = ["Base"]
