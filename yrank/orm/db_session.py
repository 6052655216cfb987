"""
数据库会话管理模块

提供数据库引擎创建、会话管理等功能。

公开 API:
- db_manager: 数据库管理器单例
- init_database(): 初始化数据库连接
- get_engine(): 获取数据库引擎
- get_db(): FastAPI 依赖注入用的生成器
- db_session_scope(): 非 HTTP 场景的上下文管理器
"""

import logging
import os
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from yrank.log import get_logger

__all__ = [
    'db_manager',
    'init_database',
    'get_engine',
    'get_db',
    'db_session_scope',
]


class DatabaseManager:
    """数据库管理器（单例）

    使用示例:
        from yrank.orm import db_manager

        db_manager.init(database_url="sqlite:///./tour.db")
        engine = db_manager.engine
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._engine: Optional[Engine] = None
        self._session_maker: Optional[sessionmaker] = None
        self._initialized = True

    @property
    def engine(self) -> Engine:
        """获取数据库引擎

        Raises:
            RuntimeError: 数据库未初始化时
        """
        if self._engine is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def init(
        self,
        database_url: str = None,
        echo: bool = False,
        pool_pre_ping: bool = True,
        logger: logging.Logger = None,
        config: Any = None,
    ):
        """初始化数据库连接

        Args:
            database_url: 数据库连接URL（如果提供 config 则忽略）
            echo: 是否输出SQL语句（如果提供 config 则忽略）
            pool_pre_ping: 连接前是否ping（如果提供 config 则忽略）
            logger: 日志记录器
            config: 数据库配置对象（DatabaseSettings）

        Returns:
            tuple: (engine, sessionmaker)

        使用示例:
            from yrank.orm import init_database

            engine, SessionLocal = init_database(config=settings.database)
        """
        if config is not None:
            database_url = getattr(config, "url", database_url)
            echo = getattr(config, "echo", echo)
            pool_pre_ping = getattr(config, "pool_pre_ping", pool_pre_ping)

        if not database_url:
            raise ValueError("database_url 是必需的，请通过参数或 config 提供")

        if logger is None:
            logger = get_logger()

        logger.info(f"数据库配置URL: {database_url}")

        if self._engine is not None:
            self._engine.dispose()

        if database_url.startswith("sqlite://"):
            db_path = database_url[len("sqlite:///"):] if database_url.startswith("sqlite:///") else ""
            if db_path in ("", ":memory:"):
                # 内存数据库：所有会话共用一个连接，否则每个连接都是一个空库
                self._engine = create_engine(
                    database_url,
                    echo=echo,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                )
                logger.info("SQLite内存数据库引擎创建成功（StaticPool）")
            else:
                logger.info(f"SQLite文件数据库路径: {os.path.abspath(db_path)}")
                self._engine = create_engine(
                    database_url,
                    echo=echo,
                    connect_args={"check_same_thread": False},
                    pool_pre_ping=pool_pre_ping,
                )
        else:
            self._engine = create_engine(
                database_url,
                echo=echo,
                pool_pre_ping=pool_pre_ping,
            )
            logger.info("数据库引擎创建成功")

        self._session_maker = sessionmaker(autocommit=False, autoflush=True, bind=self._engine)
        return self._engine, self._session_maker

    def get_session(self) -> Session:
        """创建新的 Session，调用方负责关闭"""
        if self._session_maker is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._session_maker()

    def dispose(self) -> None:
        """释放连接池并重置为未初始化状态"""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_maker = None


db_manager = DatabaseManager()


def init_database(
    database_url: str = None,
    echo: bool = False,
    pool_pre_ping: bool = True,
    logger: logging.Logger = None,
    config: Any = None,
):
    """初始化数据库连接

    这是 db_manager.init() 的便捷包装函数。

    Returns:
        tuple: (engine, sessionmaker)
    """
    return db_manager.init(
        database_url=database_url,
        echo=echo,
        pool_pre_ping=pool_pre_ping,
        logger=logger,
        config=config,
    )


def get_engine() -> Engine:
    """获取数据库引擎"""
    return db_manager.engine


@contextmanager
def db_session_scope(auto_commit: bool = True) -> Generator[Session, None, None]:
    """session 上下文管理器

    正常退出时提交（auto_commit=True），异常时回滚，最后关闭 session。

    使用示例:
        with db_session_scope() as session:
            Region.set_rank(session, 12, 3)
        # 自动提交并关闭
    """
    session = db_manager.get_session()
    try:
        yield session
        if auto_commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """获取数据库 session（FastAPI 依赖注入）

    使用示例:
        @router.get("")
        def list_regions(db: Session = Depends(get_db)):
            ...
    """
    with db_session_scope() as session:
        yield session
