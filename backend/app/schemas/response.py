# backend/app/schemas/response.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class SaveResponse(BaseModel):
    """/save 的确认响应

    无论成功与否都返回 JSON，明确告诉前端数据是否真的落库。

    Attributes:
        ok: 是否处理成功
        skip: 未配置数据库时跳过持久化的原因
        completed_trials: 服务端计算的 decision trial 数（序列化为 completedTrials）
        error: 失败描述
    """
    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    skip: Optional[str] = None
    completed_trials: Optional[int] = Field(None, alias="completedTrials")
    error: Optional[str] = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class HealthResponse(BaseModel):
    """健康检查响应"""
    ok: bool = True
    ts: int = Field(..., description="服务器当前时间（epoch 毫秒）")
