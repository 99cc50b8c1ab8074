import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, inspect, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.schema import CreateIndex, CreateTable

from app.core.errors import StorageError
from app.models.gaze_log import ADDITIVE_COLUMNS, GazeLog
from app.schemas.gaze_log import GazeLogCreate

logger = logging.getLogger(__name__)


class GazeLogStore:
    """
    gaze_logs 表的存储适配器。

    持有一个带连接池的引擎，进程内共享；每次 save 借出一个连接，
    依次执行建表检查和插入，然后归还。只追加，不更新、不删除。
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.model = GazeLog
        self.table = GazeLog.__table__

    def ensure_schema(self, connection: Optional[Connection] = None) -> None:
        """
        幂等地保证表存在，并补齐旧版本表上缺失的列。

        每次请求都可以调用；并发调用时每条语句各自幂等，不需要加锁。

        Args:
            connection: 可选，复用调用方借出的连接

        Raises:
            StorageError: 连接或 DDL 执行失败
        """
        try:
            if connection is None:
                with self.engine.begin() as conn:
                    self._provision(conn)
            else:
                with connection.begin():
                    self._provision(connection)
        except SQLAlchemyError as e:
            raise StorageError(f"ensure schema failed: {e}") from e

    def _provision(self, conn: Connection) -> None:
        conn.execute(CreateTable(self.table, if_not_exists=True))
        for index in self.table.indexes:
            conn.execute(CreateIndex(index, if_not_exists=True))

        existing = {column["name"] for column in inspect(conn).get_columns(self.table.name)}
        for name, ddl in ADDITIVE_COLUMNS:
            if name in existing:
                continue
            if conn.dialect.name == "postgresql":
                statement = f"ALTER TABLE {self.table.name} ADD COLUMN IF NOT EXISTS {name} {ddl}"
            else:
                statement = f"ALTER TABLE {self.table.name} ADD COLUMN {name} {ddl}"
            logger.info(f"Adding column {name} to {self.table.name}")
            conn.execute(text(statement))

    def insert(self, obj_in: GazeLogCreate, connection: Optional[Connection] = None) -> GazeLog:
        """
        在单个事务里插入一行日志。

        Args:
            obj_in: 待插入的数据
            connection: 可选，复用调用方借出的连接

        Returns:
            GazeLog: 插入的记录（含 id 和 created_at）

        Raises:
            StorageError: 连接、约束或序列化失败，事务已回滚
        """
        db = Session(bind=connection if connection is not None else self.engine)
        try:
            db_obj = self.model(**obj_in.model_dump())
            db.add(db_obj)
            db.commit()
            db.refresh(db_obj)
            return db_obj
        except (SQLAlchemyError, TypeError, ValueError) as e:
            db.rollback()
            raise StorageError(f"insert failed: {e}") from e
        finally:
            db.close()

    def save(self, obj_in: GazeLogCreate) -> GazeLog:
        """借出一个连接，先 ensure_schema 再 insert。"""
        try:
            with self.engine.connect() as conn:
                self.ensure_schema(conn)
                return self.insert(obj_in, conn)
        except SQLAlchemyError as e:
            # 借连接本身失败（连接池耗尽、数据库不可达）
            raise StorageError(f"connection failed: {e}") from e

    def get_multi(
        self,
        *,
        skip: int = 0,
        limit: int = 100,
        filter_conditions: Optional[Dict[str, Any]] = None
    ) -> List[GazeLog]:
        """
        按插入顺序倒序获取多条记录（支持分页和简单相等筛选）。

        Args:
            skip: 跳过的记录数
            limit: 返回的记录数限制
            filter_conditions: 筛选条件字典，例如 {"prolific_pid": "abc"}

        Returns:
            List[GazeLog]: 记录列表
        """
        query = select(self.model)
        for field, value in (filter_conditions or {}).items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)
        query = query.order_by(desc(self.model.id)).offset(skip).limit(limit)
        with Session(self.engine) as db:
            return list(db.scalars(query).all())

    def count(self, *, filter_conditions: Optional[Dict[str, Any]] = None) -> int:
        """获取符合条件的记录总数。"""
        query = select(func.count()).select_from(self.model)
        for field, value in (filter_conditions or {}).items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)
        with Session(self.engine) as db:
            return db.scalar(query) or 0

    def dispose(self) -> None:
        """关闭连接池中的所有连接。"""
        self.engine.dispose()
