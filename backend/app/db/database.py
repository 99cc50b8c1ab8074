import logging
from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.crud.crud_gaze_log import GazeLogStore

logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """
    Heroku 注入的 ``postgres://`` 前缀 SQLAlchemy 不再接受，统一改写为 psycopg2 方言。
    """
    if database_url.startswith("postgres://"):
        return "postgresql+psycopg2://" + database_url[len("postgres://"):]
    if database_url.startswith("postgresql://"):
        return "postgresql+psycopg2://" + database_url[len("postgresql://"):]
    return database_url


def create_db_engine(database_url: str, settings: Settings) -> Engine:
    """
    根据连接串创建数据库引擎。

    PostgreSQL: 固定上限的连接池（不溢出），短回收窗口 + pre-ping，
    连接超时和语句超时，避免挂起的请求无限期占用连接。
    SQLite: 仅用于本地调试和测试，允许多线程访问；内存库共享同一个连接。

    Args:
        database_url: 数据库连接串
        settings: 应用配置

    Returns:
        Engine: SQLAlchemy 引擎
    """
    url = make_url(normalize_database_url(database_url))

    if url.get_backend_name() == "sqlite":
        # connect_args 是SQLite特有的，用于允许多线程访问
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    connect_args: Dict[str, Any] = {}
    if url.get_backend_name() == "postgresql":
        connect_args = {
            "sslmode": settings.DB_SSLMODE,
            "connect_timeout": settings.DB_CONNECT_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
        }

    return create_engine(
        url,
        connect_args=connect_args,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=0,
        pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
        pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,
    )


def create_gaze_log_store(settings: Settings) -> Optional[GazeLogStore]:
    """
    按配置创建存储适配器；未配置 DATABASE_URL 时返回 None（skip 模式，不是错误）。
    """
    if not settings.DATABASE_URL:
        logger.info("DATABASE_URL 未配置，/save 将跳过持久化")
        return None

    engine = create_db_engine(settings.DATABASE_URL, settings)
    logger.info(f"Gaze log store ready: dialect={engine.dialect.name}")
    return GazeLogStore(engine)
