from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, JSON, Text, false, func
from sqlalchemy.dialects.postgresql import JSONB
from app.db.base_class import Base

# PostgreSQL 上存为 JSONB，其它方言（本地 SQLite）退回通用 JSON
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class GazeLog(Base):
    """眼动/决策实验日志模型

    每次 /save 提交对应一行，插入后不再更新或删除。

    Attributes:
        id: 自增ID
        created_at: 插入时间，由数据库服务端赋值
        prolific_pid: 参与者ID（summary 优先，其次 query 参数）
        prolific_study_id: 研究ID（query 参数）
        prolific_session_id: 会话ID（query 参数）
        user_agent: 客户端 User-Agent
        ip: 客户端IP（X-Forwarded-For 第一项优先）
        summary: 前端提交的 summary，原样保存
        rounds: 前端提交的 trial 序列，原样保存
        completed_trials: 服务端重新计算的 decision trial 数
        aborted: 前端上报的中止标记（仅供参考，未经服务端校验）
    """
    __tablename__ = "gaze_logs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    prolific_pid = Column(Text, index=True, nullable=True)
    prolific_study_id = Column(Text, nullable=True)
    prolific_session_id = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    ip = Column(Text, nullable=True)
    summary = Column(JSONDocument)
    rounds = Column(JSONDocument)
    # 这两列是后加的，旧表上由 ensure_schema 补齐
    completed_trials = Column(Integer)
    aborted = Column(Boolean, server_default=false(), default=False)


# ensure_schema 对已有表补齐的列：(列名, DDL 类型定义)
ADDITIVE_COLUMNS = (
    ("completed_trials", "INTEGER"),
    ("aborted", "BOOLEAN DEFAULT FALSE"),
)
