from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class GazeSubmission(BaseModel):
    """前端提交的一次实验数据（兼容 {summary, rounds} 或 {summary, trials}）

    只做宽松校验：字段缺失或类型不对时退回空结构，不会让请求失败。

    Attributes:
        summary: 自由结构的汇总对象，可能包含 prolific_pid 和 aborted
        rounds: trial 记录序列，每项可带 phase 标签
        aborted: 顶层的中止标记（原始值）
    """
    summary: Dict[str, Any] = Field(default_factory=dict, description="实验汇总，原样保存")
    rounds: List[Any] = Field(default_factory=list, description="trial 序列，原样保存")
    aborted: Any = Field(None, description="顶层中止标记")

    @classmethod
    def from_payload(cls, payload: Any) -> "GazeSubmission":
        """从未经校验的请求体构建提交对象，永不抛出异常。"""
        body = payload if isinstance(payload, dict) else {}

        summary = body.get("summary")
        if not isinstance(summary, dict):
            summary = {}

        # rounds 优先，其次 trials
        rounds = body.get("rounds")
        if rounds is None:
            rounds = body.get("trials")
        if not isinstance(rounds, list):
            rounds = []

        return cls(summary=summary, rounds=rounds, aborted=body.get("aborted"))


class IdentityContext(BaseModel):
    """由请求推导出的身份信息，均可为空"""
    prolific_pid: Optional[str] = None
    prolific_study_id: Optional[str] = None
    prolific_session_id: Optional[str] = None


class GazeLogBase(BaseModel):
    """持久化记录的通用字段"""
    prolific_pid: Optional[str] = None
    prolific_study_id: Optional[str] = None
    prolific_session_id: Optional[str] = None
    user_agent: Optional[str] = None
    ip: Optional[str] = None
    summary: Dict[str, Any] = Field(default_factory=dict)
    rounds: List[Any] = Field(default_factory=list)
    completed_trials: int = Field(0, ge=0, description="服务端计算的 decision trial 数")
    aborted: bool = Field(False, description="前端上报的中止标记，未经校验")


class GazeLogCreate(GazeLogBase):
    """插入一行日志所需的数据"""
    pass


class GazeLogInDB(GazeLogBase):
    """数据库中的日志记录

    Attributes:
        id: 自增ID
        created_at: 服务端插入时间
    """
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
